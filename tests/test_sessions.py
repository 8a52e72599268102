"""Tests for the session registry's OAuth state bookkeeping."""

from tasktalk_service.models.auth import Credential
from tasktalk_service.services.sessions import SessionRegistry


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_state_is_accepted_once() -> None:
    registry = SessionRegistry(state_ttl_seconds=600, clock=FakeClock())
    state = registry.issue_state()

    assert registry.consume_state(state) is True
    assert registry.consume_state(state) is False


def test_expired_state_is_rejected() -> None:
    clock = FakeClock()
    registry = SessionRegistry(state_ttl_seconds=600, clock=clock)
    state = registry.issue_state()

    clock.now = 600.0

    assert registry.consume_state(state) is False
    assert registry.pending_state_count == 0


def test_abandoned_states_are_pruned_on_next_login() -> None:
    clock = FakeClock()
    registry = SessionRegistry(state_ttl_seconds=600, clock=clock)
    for _ in range(50):
        registry.issue_state()

    clock.now = 601.0
    fresh = registry.issue_state()

    assert registry.pending_state_count == 1
    assert registry.consume_state(fresh) is True


def test_unknown_state_is_rejected() -> None:
    registry = SessionRegistry()

    assert registry.consume_state("forged") is False
    assert registry.consume_state(None) is False


def test_removed_session_has_no_credential() -> None:
    registry = SessionRegistry()
    session_id = registry.create(Credential(access_token="a", expires_at=1.0))

    registry.remove(session_id)

    assert registry.get(session_id) is None
