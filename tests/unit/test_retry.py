"""Tests for backoff computation and the retry controller."""

import pytest

from assetflow.contracts import StepDefinition, StepStatus
from assetflow.execute import FALSY_RESULT_MESSAGE, RetryController
from assetflow.state import StepStateStore
from assetflow.utils.retry import RetryPolicy, compute_backoff


class FlakyAction:
    """Fails ``failures`` times, then succeeds."""

    def __init__(self, failures: int, *, raise_error: bool = True) -> None:
        self.failures = failures
        self.raise_error = raise_error
        self.calls = 0

    async def __call__(self) -> bool:
        self.calls += 1
        if self.calls <= self.failures:
            if self.raise_error:
                raise RuntimeError(f"Attempt {self.calls} failed")
            return False
        return True


def _controller(*names: str, policy=None, sleep=None):
    store = StepStateStore()
    for name in names:
        store.create(name)
    kwargs = {"sleep": sleep} if sleep else {}
    return store, RetryController(store, policy, **kwargs)


def test_compute_backoff_growth_and_cap() -> None:
    assert compute_backoff(1, base=1, jitter=0) == 1
    assert compute_backoff(2, base=1, jitter=0) == 2
    assert compute_backoff(3, base=1, jitter=0) == 4
    assert compute_backoff(10, base=1, cap=10, jitter=0) == 10
    assert compute_backoff(5, base=0) == 0


def test_retry_policy_defaults_to_no_delay() -> None:
    assert RetryPolicy.none().delay_for(3) == 0
    assert RetryPolicy.exponential().delay_for(1) == 1
    assert RetryPolicy.exponential().delay_for(6) == 10


@pytest.mark.asyncio
async def test_succeeds_after_k_failures_with_retry_count_k() -> None:
    store, controller = _controller("retry-step")
    action = FlakyAction(failures=2)
    step = StepDefinition(
        name="retry-step", retryable=True, max_retries=2, action=action
    )

    assert await controller.run(step) is True
    assert action.calls == 3
    state = store.get("retry-step")
    assert state.status is StepStatus.COMPLETED
    assert state.retry_count == 2
    assert state.error_message is None


@pytest.mark.asyncio
async def test_fails_after_max_retries() -> None:
    store, controller = _controller("max-retry-step")
    action = FlakyAction(failures=10)
    step = StepDefinition(
        name="max-retry-step", retryable=True, max_retries=2, action=action
    )

    assert await controller.run(step) is False
    assert action.calls == 3
    state = store.get("max-retry-step")
    assert state.status is StepStatus.FAILED
    assert state.retry_count == 2
    assert state.error_message == "Attempt 3 failed"
    assert state.ended_at is not None


@pytest.mark.asyncio
async def test_not_retryable_fails_once() -> None:
    store, controller = _controller("once")
    action = FlakyAction(failures=1)
    step = StepDefinition(name="once", retryable=False, max_retries=5, action=action)

    assert await controller.run(step) is False
    assert action.calls == 1
    state = store.get("once")
    assert state.status is StepStatus.FAILED
    assert state.retry_count == 0


@pytest.mark.asyncio
async def test_false_result_and_exception_both_fail() -> None:
    store, controller = _controller("false-step", "throw-step")

    async def explode() -> bool:
        raise ValueError("Explicit error")

    false_step = StepDefinition(name="false-step", action=FlakyAction(1, raise_error=False))
    throw_step = StepDefinition(name="throw-step", action=explode)

    assert await controller.run(false_step) is False
    assert await controller.run(throw_step) is False
    assert store.get("false-step").error_message == FALSY_RESULT_MESSAGE
    assert store.get("throw-step").error_message == "Explicit error"


@pytest.mark.asyncio
async def test_exception_without_message_uses_type_name() -> None:
    store, controller = _controller("bare")

    async def bare() -> bool:
        raise KeyError()

    await controller.run(StepDefinition(name="bare", action=bare))
    assert store.get("bare").error_message == "KeyError"


@pytest.mark.asyncio
async def test_sync_action_runs_in_thread() -> None:
    store, controller = _controller("sync")
    calls = []

    def action() -> bool:
        calls.append(1)
        return True

    assert await controller.run(StepDefinition(name="sync", action=action)) is True
    assert calls == [1]


@pytest.mark.asyncio
async def test_backoff_delays_passed_to_sleep() -> None:
    delays = []

    async def fake_sleep(delay: float) -> None:
        delays.append(delay)

    store, controller = _controller(
        "slow", policy=RetryPolicy.exponential(), sleep=fake_sleep
    )
    step = StepDefinition(
        name="slow", retryable=True, max_retries=3, action=FlakyAction(failures=3)
    )

    assert await controller.run(step) is True
    assert delays == [1, 2, 4]
    assert store.get("slow").retry_count == 3
