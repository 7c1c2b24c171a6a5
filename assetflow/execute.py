"""Step execution with bounded retries."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional

from .contracts import StepDefinition, StepStatus
from .state import StepStateStore
from .utils.retry import RetryPolicy

logger = logging.getLogger(__name__)

FALSY_RESULT_MESSAGE = "step action reported failure"

SleepFn = Callable[[float], Awaitable[Any]]


async def invoke_action(action: Callable[[], Any]) -> Any:
    """Call a step action, awaiting coroutines and off-loading blocking callables."""
    if inspect.iscoroutinefunction(action):
        return await action()
    result = await asyncio.to_thread(action)
    if inspect.isawaitable(result):
        result = await result
    return result


def describe_error(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


class RetryController:
    """Runs a step's action until it succeeds or its retry budget is spent.

    All outcomes are written to the :class:`StepStateStore`; a failing step
    never raises out of :meth:`run`.
    """

    def __init__(
        self,
        store: StepStateStore,
        policy: Optional[RetryPolicy] = None,
        *,
        sleep: SleepFn = asyncio.sleep,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self._store = store
        self._policy = policy or RetryPolicy.none()
        self._sleep = sleep
        self._log = log or logger

    async def run(self, step: StepDefinition) -> bool:
        """Execute ``step`` and return ``True`` if it ended ``completed``."""
        self._store.transition(step.name, StepStatus.RUNNING)
        self._log.info(f"Starting step: {step.name} ({step.description})")

        attempt = 1
        while True:
            reason = await self._attempt(step)
            if reason is None:
                state = self._store.transition(step.name, StepStatus.COMPLETED)
                retries = f" after {state.retry_count} retries" if state.retry_count else ""
                self._log.info(
                    f"✓ Completed step: {step.name} in {state.duration or 0:.3f}s{retries}"
                )
                return True

            retry_count = attempt - 1
            if not step.retryable or retry_count >= step.max_retries:
                self._store.transition(
                    step.name, StepStatus.FAILED, error_message=reason
                )
                self._log.error(
                    f"✗ Step permanently failed: {step.name} after {attempt} attempt(s): {reason}"
                )
                return False

            self._store.transition(
                step.name,
                StepStatus.RUNNING,
                retry_count=retry_count + 1,
                error_message=reason,
            )
            delay = self._policy.delay_for(attempt)
            self._log.warning(
                f"Retrying step '{step.name}' in {delay:.2f}s "
                f"(attempt {attempt + 1}/{step.max_attempts})"
            )
            if delay > 0:
                await self._sleep(delay)
            attempt += 1

    async def _attempt(self, step: StepDefinition) -> Optional[str]:
        """Invoke the action once. Returns ``None`` on success, else the failure reason."""
        try:
            result = await invoke_action(step.action)
        except Exception as e:
            reason = describe_error(e)
            self._log.error(f"✗ Step failed: {step.name}: {reason}", exc_info=True)
            return reason
        if not result:
            self._log.error(f"✗ Step failed: {step.name}: {FALSY_RESULT_MESSAGE}")
            return FALSY_RESULT_MESSAGE
        return None
