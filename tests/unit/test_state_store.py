"""Tests for the step state store and lifecycle transitions."""

import pytest

from assetflow.contracts import StepStatus
from assetflow.errors import InternalStateError, InvalidTransitionError, UnknownStepError
from assetflow.state import StepStateStore, is_valid_transition


def _store(*names: str) -> StepStateStore:
    store = StepStateStore()
    for name in names:
        store.create(name)
    return store


def test_new_state_is_pending() -> None:
    state = _store("extract").get("extract")
    assert state.status is StepStatus.PENDING
    assert state.retry_count == 0
    assert state.started_at is None
    assert state.ended_at is None
    assert state.error_message is None


def test_running_then_completed_stamps_times_and_clears_error() -> None:
    store = _store("extract")
    store.transition("extract", StepStatus.RUNNING)
    store.transition(
        "extract", StepStatus.RUNNING, retry_count=1, error_message="boom"
    )
    state = store.transition("extract", StepStatus.COMPLETED)

    assert state.status is StepStatus.COMPLETED
    assert state.retry_count == 1
    assert state.error_message is None
    assert state.started_at is not None
    assert state.ended_at is not None
    assert state.ended_at >= state.started_at
    assert state.duration is not None and state.duration >= 0


def test_failed_keeps_error_message() -> None:
    store = _store("extract")
    store.transition("extract", StepStatus.RUNNING)
    store.transition("extract", StepStatus.FAILED, error_message="zip corrupt")
    state = store.get("extract")
    assert state.status is StepStatus.FAILED
    assert state.error_message == "zip corrupt"


@pytest.mark.parametrize(
    "terminal", [StepStatus.COMPLETED, StepStatus.FAILED, StepStatus.CANCELLED]
)
def test_no_transition_out_of_terminal_state(terminal) -> None:
    store = _store("s")
    store.transition("s", StepStatus.RUNNING)
    store.transition("s", terminal)
    with pytest.raises(InvalidTransitionError):
        store.transition("s", StepStatus.RUNNING)
    with pytest.raises(InternalStateError):
        store.transition("s", StepStatus.PENDING)


def test_pending_cannot_complete_directly() -> None:
    store = _store("s")
    with pytest.raises(InvalidTransitionError) as exc:
        store.transition("s", StepStatus.COMPLETED)
    assert exc.value.current == "pending"
    assert exc.value.target == "completed"
    assert store.get("s").status is StepStatus.PENDING


def test_skip_from_pending_is_allowed_but_not_from_running() -> None:
    assert is_valid_transition(StepStatus.PENDING, StepStatus.SKIPPED)
    assert not is_valid_transition(StepStatus.RUNNING, StepStatus.SKIPPED)
    assert not is_valid_transition(StepStatus.SKIPPED, StepStatus.PENDING)


def test_unknown_extra_field_rejected() -> None:
    store = _store("s")
    with pytest.raises(InternalStateError):
        store.transition("s", StepStatus.RUNNING, started_at=None)
    assert store.get("s").status is StepStatus.PENDING


def test_unknown_step_lookup() -> None:
    store = _store()
    with pytest.raises(UnknownStepError):
        store.get("missing")
    with pytest.raises(KeyError):
        store.transition("missing", StepStatus.RUNNING)


def test_snapshots_are_detached_copies() -> None:
    store = _store("a", "b")
    first = store.get_all()
    second = store.get_all()
    assert first == second
    assert list(first) == ["a", "b"]

    first["a"].status = StepStatus.FAILED
    assert store.get("a").status is StepStatus.PENDING


def test_progress_and_reset() -> None:
    store = _store("icons")
    store.update_progress("icons", 50, 100)
    state = store.get("icons")
    assert (state.progress, state.total) == (50, 100)

    store.transition("icons", StepStatus.RUNNING)
    store.transition("icons", StepStatus.COMPLETED)
    store.reset()
    state = store.get("icons")
    assert state.status is StepStatus.PENDING
    assert state.progress is None
    assert state.started_at is None


def test_summary_counts_every_status() -> None:
    store = _store("done", "broken", "skipped", "cancelled", "waiting")
    store.transition("done", StepStatus.RUNNING)
    store.transition("done", StepStatus.COMPLETED)
    store.transition("broken", StepStatus.RUNNING)
    store.transition("broken", StepStatus.FAILED)
    store.transition("skipped", StepStatus.SKIPPED)
    store.transition("cancelled", StepStatus.CANCELLED)

    summary = store.summary()
    assert summary.total == 5
    assert summary.completed == 1
    assert summary.failed == 1
    assert summary.skipped == 1
    assert summary.cancelled == 1
    assert summary.pending == 1
    assert summary.running == 0
    assert not summary.succeeded
