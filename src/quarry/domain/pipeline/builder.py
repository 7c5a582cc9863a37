"""Contract between the pipeline and the code that maps rows to entities."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar, Protocol, runtime_checkable

from quarry.domain.pipeline.candidates import DurableRef

if TYPE_CHECKING:
    from datetime import datetime

    from quarry.domain.model import Category
    from quarry.domain.pipeline.candidates import AnyCandidate, BuildResult, EntityRef
    from quarry.domain.pipeline.context import ImportActor, ReferenceCache
    from quarry.domain.pipeline.identity import IdentityLookup
    from quarry.domain.pipeline.rows import RawRow


ALREADY_IMPORTED = "already imported"


class PendingView(Protocol):
    """Candidates buffered for the next commit, keyed like the identity index."""

    def pending(self, category: Category, external_key: str) -> AnyCandidate | None: ...

    def group_units(self, group_key: str | None) -> tuple[tuple[AnyCandidate, ...], ...]: ...

    def group_candidates(self, group_key: str | None) -> tuple[AnyCandidate, ...]: ...


@dataclass(frozen=True, slots=True)
class Lookups:
    """Read-only view of the run handed to builders."""

    identities: IdentityLookup
    buffer: PendingView
    references: ReferenceCache
    actor: ImportActor
    started_at: datetime

    def is_imported(self, category: Category, external_key: str | None) -> bool:
        return self.identities.lookup(category, external_key) is not None

    def is_buffered(self, category: Category, external_key: str | None) -> bool:
        return external_key is not None and self.buffer.pending(category, external_key) is not None

    def resolve(self, category: Category, external_key: str | None) -> EntityRef | None:
        """Return the committed record, else the buffered candidate, else ``None``."""

        if external_key is None:
            return None
        durable_id = self.identities.lookup(category, external_key)
        if durable_id is not None:
            return DurableRef(category, durable_id)
        return self.buffer.pending(category, external_key)

    def group_units(self, group_key: str | None) -> tuple[tuple[AnyCandidate, ...], ...]:
        return self.buffer.group_units(group_key)

    def group_candidates(self, group_key: str | None) -> tuple[AnyCandidate, ...]:
        return self.buffer.group_candidates(group_key)

    @property
    def actor_id(self) -> int | None:
        return self.actor.person_id


@runtime_checkable
class EntityBuilder(Protocol):
    """Maps one row to candidates and edges.

    ``build`` must not mutate ``lookups`` and must not raise for an unusable
    row: it returns ``BuildResult.skipped`` instead. ``RowConversionError`` is
    tolerated and treated as a skip by the driver. The first of
    ``seed_categories`` is the category the builder itself creates.
    """

    tag: ClassVar[str]
    seed_categories: ClassVar[tuple[Category, ...]]

    def build(self, row: RawRow, lookups: Lookups) -> BuildResult: ...

    def finish(self, lookups: Lookups) -> BuildResult | None:
        """Return trailing candidates once the source is exhausted."""
        ...
