"""Import run defaults and configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path

from .env import optional_int_env_var
from .errors import ConfigurationError

DEFAULT_BATCH_SIZE = 100
DEFAULT_IMPORT_ACTOR = "Admin"


@dataclass(frozen=True, slots=True)
class ImportConfig:
    """Caller-supplied settings for one import run."""

    batch_size: int = DEFAULT_BATCH_SIZE
    import_actor: str = DEFAULT_IMPORT_ACTOR
    source_paths: tuple[Path, ...] = field(default_factory=tuple[Path, ...])
    selected_categories: tuple[str, ...] = field(default_factory=tuple[str, ...])

    def __post_init__(self) -> None:
        if self.batch_size < 1:
            raise ConfigurationError(f"Batch size must be positive, got {self.batch_size}")

    def with_sources(self, *paths: Path | str) -> ImportConfig:
        return replace(self, source_paths=tuple(Path(path) for path in paths))

    def includes(self, category: str) -> bool:
        return not self.selected_categories or category in self.selected_categories


def get_import_config(
    *,
    batch_size: int | None = None,
    import_actor: str | None = None,
    source_paths: tuple[Path, ...] = (),
    selected_categories: tuple[str, ...] = (),
) -> ImportConfig:
    """Build an import config, falling back to ``QUARRY_*`` environment variables."""

    env_batch_size = optional_int_env_var("QUARRY_BATCH_SIZE")
    env_actor = os.getenv("QUARRY_IMPORT_ACTOR")
    return ImportConfig(
        batch_size=_first_set(batch_size, env_batch_size, DEFAULT_BATCH_SIZE),
        import_actor=import_actor or (env_actor.strip() if env_actor else DEFAULT_IMPORT_ACTOR),
        source_paths=source_paths,
        selected_categories=selected_categories,
    )


def _first_set(*values: int | None) -> int:
    for value in values:
        if value is not None:
            return value
    raise ConfigurationError("No batch size configured")
