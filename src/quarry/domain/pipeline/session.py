"""Ownership and periodic recycling of the persistence session."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Self

if TYPE_CHECKING:
    from types import TracebackType

    from quarry.domain.ports.persistence import PersistenceSession, SessionFactory


log = getLogger(__name__)


class SessionLifecycleManager:
    """Hands out the current session and replaces it once enough rows went through.

    The driver offers a reset after every flush and after every row once the
    threshold is reached, but only allows it when nothing is buffered, so a
    reset never separates rows that commit together.
    """

    def __init__(self, factory: SessionFactory, *, threshold: int) -> None:
        if threshold < 1:
            raise ValueError("threshold must be at least 1")
        self._factory = factory
        self.threshold = threshold
        self._session: PersistenceSession | None = None
        self.created = 0
        self.invocations = 0
        self.resets = 0

    @property
    def current(self) -> PersistenceSession:
        if self._session is None:
            self._session = self._factory()
            self.created += 1
        return self._session

    def maybe_reset(self, rows_since_reset: int, *, safe: bool = True) -> bool:
        """Dispose the session if ``rows_since_reset`` reached the threshold.

        ``safe`` is false while rows are buffered for the next commit; the
        reset then waits for a later call. Returns whether a reset happened;
        the next ``current`` access then opens a fresh session.
        """

        self.invocations += 1
        if not safe or rows_since_reset < self.threshold:
            return False
        self._dispose()
        self.resets += 1
        log.debug("Session reset after %d rows (reset #%d)", rows_since_reset, self.resets)
        return True

    def discard(self) -> None:
        """Drop a session whose transaction failed."""

        self._dispose()

    def close(self) -> None:
        self._dispose()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _dispose(self) -> None:
        session, self._session = self._session, None
        if session is not None:
            session.dispose()
