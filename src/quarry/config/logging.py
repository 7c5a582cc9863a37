"""Logging setup for the quarry command line."""

from __future__ import annotations

import logging
from typing import Final

# chatty libraries kept at WARNING unless the run is verbose
NOISY_LOGGERS: Final[tuple[str, ...]] = ("sqlalchemy.engine", "sqlalchemy.pool")


def configure_logging(*, verbose: bool = False, force: bool = False) -> None:
    """Initialise the root logger for an import run.

    A normal run logs at INFO: one line per source plus skips and aborts.
    ``verbose`` switches to DEBUG, which adds per-batch commits and session
    resets, and lets SQLAlchemy log its statements. Pass ``force=True`` to
    reconfigure during tests.
    """

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=force,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.NOTSET if verbose else logging.WARNING)
