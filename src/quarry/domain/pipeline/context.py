"""Per-run context shared by every stage of an import."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from quarry.domain.pipeline.builder import Lookups
from quarry.domain.pipeline.identity import IdentityIndex

if TYPE_CHECKING:
    from collections.abc import Sequence

    from quarry.domain.model import Category
    from quarry.domain.pipeline.builder import PendingView
    from quarry.domain.ports.persistence import CampusRecord, ReferenceQuery


log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ImportActor:
    """The person records are attributed to; ``person_id`` is ``None`` if unmatched."""

    name: str
    person_id: int | None = None


@dataclass(slots=True)
class ReferenceCache:
    """Reference data loaded once per run and read by builders."""

    campuses: tuple[CampusRecord, ...] = ()

    @classmethod
    def load(cls, query: ReferenceQuery) -> ReferenceCache:
        cache = cls(campuses=tuple(query.campuses()))
        log.debug("Loaded %d campuses", len(cache.campuses))
        return cache

    def campus_id(self, value: str | None) -> int | None:
        """Match ``value`` against campus names and short codes."""

        if not value:
            return None
        for campus in self.campuses:
            if campus.matches(value):
                return campus.id
        return None

    def campus_by_prefix(self, text: str | None) -> CampusRecord | None:
        """Return the campus whose name or short code starts ``text``, e.g. a batch name."""

        if not text:
            return None
        lowered = text.strip().casefold()
        for campus in self.campuses:
            prefixes = (campus.name, campus.short_code) if campus.short_code else (campus.name,)
            if any(lowered.startswith(prefix.casefold()) for prefix in prefixes):
                return campus
        return None

    def campus_id_by_prefix(self, text: str | None) -> int | None:
        campus = self.campus_by_prefix(text)
        return campus.id if campus is not None else None


@dataclass(slots=True)
class ImportRun:
    """State created when an import starts and discarded when it ends.

    The identity index and the reference cache are shared across every source
    of the run, so later sources resolve keys committed by earlier ones. Only
    the pipeline driver writes to them.
    """

    actor: ImportActor
    identities: IdentityIndex = field(default_factory=IdentityIndex)
    references: ReferenceCache = field(default_factory=ReferenceCache)
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    rows_seen: int = 0
    rows_committed: int = 0
    rows_skipped: int = 0
    rows_not_imported: int = 0

    @classmethod
    def start(cls, *, actor_name: str, references: ReferenceQuery | None = None) -> ImportRun:
        if references is None:
            return cls(actor=ImportActor(actor_name))
        actor = ImportActor(actor_name, references.find_person_id(actor_name))
        if actor.person_id is None:
            log.warning("Import actor %r not found; records will have no creator", actor_name)
        return cls(actor=actor, references=ReferenceCache.load(references))

    def lookups(self, pending: PendingView) -> Lookups:
        return Lookups(
            identities=self.identities,
            buffer=pending,
            references=self.references,
            actor=self.actor,
            started_at=self.started_at,
        )

    def existing_count(self, categories: Sequence[Category]) -> int:
        return sum(self.identities.count(category) for category in categories)

