from __future__ import annotations

import pytest

from quarry.domain.pipeline import SessionLifecycleManager

from tests.helpers.pipeline import FakeStore


def test_current_session_is_created_lazily(store: FakeStore) -> None:
    sessions = SessionLifecycleManager(store.session_factory, threshold=3)

    assert store.sessions_opened == 0
    first = sessions.current

    assert sessions.current is first
    assert sessions.created == 1


def test_maybe_reset_disposes_once_threshold_is_reached(store: FakeStore) -> None:
    sessions = SessionLifecycleManager(store.session_factory, threshold=3)
    first = sessions.current

    assert not sessions.maybe_reset(2)
    assert sessions.current is first
    assert sessions.maybe_reset(3)

    assert sessions.current is not first
    assert store.sessions_disposed == 1
    assert sessions.invocations == 2
    assert sessions.resets == 1


def test_maybe_reset_waits_while_rows_are_buffered(store: FakeStore) -> None:
    sessions = SessionLifecycleManager(store.session_factory, threshold=3)
    first = sessions.current

    assert not sessions.maybe_reset(5, safe=False)

    assert sessions.current is first
    assert store.sessions_disposed == 0
    assert sessions.invocations == 1
    assert sessions.resets == 0


def test_discard_and_close_dispose_current_session(store: FakeStore) -> None:
    with SessionLifecycleManager(store.session_factory, threshold=3) as sessions:
        _ = sessions.current
        sessions.discard()
        _ = sessions.current

    assert store.sessions_opened == 2
    assert store.sessions_disposed == 2


def test_threshold_must_be_positive(store: FakeStore) -> None:
    with pytest.raises(ValueError, match="threshold"):
        SessionLifecycleManager(store.session_factory, threshold=0)
