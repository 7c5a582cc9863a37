"""Errors raised while assembling an import run from arguments and environment."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


class ConfigurationError(RuntimeError):
    """An import cannot start with the settings it was given."""


class MissingConfigurationError(ConfigurationError):
    """Raised when required configuration values are absent or blank."""


class UnknownCategoryError(ConfigurationError):
    """A category name or file name matches no registered import layout."""

    def __init__(self, subject: str, known: Iterable[str]) -> None:
        self.subject = subject
        self.known = tuple(known)
        super().__init__(f"{subject}; expected one of {', '.join(self.known)}")


class SourceFileError(ConfigurationError):
    """Source files passed to an import do not exist."""

    def __init__(self, paths: Iterable[str]) -> None:
        self.paths = tuple(paths)
        super().__init__(f"File(s) not found: {', '.join(self.paths)}")
