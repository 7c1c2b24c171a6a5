"""Pipeline facade: register steps, run them, inspect the outcome."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, Iterable, Optional

from .contracts import PipelineSummary, StepDefinition, StepState
from .errors import PipelineBusyError
from .execute import RetryController, SleepFn
from .registry import StepRegistry
from .scheduler import RunStatus, StepScheduler
from .state import StepStateStore
from .utils.retry import RetryPolicy

logger = logging.getLogger(__name__)


class Pipeline:
    """Single-process controller for one dependency-aware run.

    Example::

        pipeline = Pipeline()
        pipeline.register_step("extract", extract)
        pipeline.register_step("images", images, dependencies=["extract"])
        ok = await pipeline.execute_all()
    """

    def __init__(
        self,
        *,
        retry_policy: Optional[RetryPolicy] = None,
        max_concurrency: int = 1,
        sleep: SleepFn = asyncio.sleep,
        log: Optional[logging.Logger] = None,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._log = log or logger
        self._registry = StepRegistry()
        self._store = StepStateStore()
        self._controller = RetryController(
            self._store, retry_policy, sleep=sleep, log=self._log
        )
        self._max_concurrency = max_concurrency
        self._cancel_requested = False
        self._running = False
        self._run_status = RunStatus.IDLE
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    # ------------------------------------------------------------------
    # Registration
    def add_step(self, definition: StepDefinition) -> StepDefinition:
        """Register a prepared :class:`StepDefinition`."""
        self._ensure_idle("register a step")
        self._registry.register(definition)
        self._store.create(definition.name)
        return definition

    def register_step(
        self,
        name: str,
        action: Callable[[], Any],
        *,
        description: str = "",
        dependencies: Iterable[str] = (),
        retryable: bool = False,
        max_retries: int = 0,
    ) -> StepDefinition:
        """Declare a step and its prerequisites.

        Dependencies may name steps registered later; the graph is checked
        when :meth:`execute_all` starts.
        """
        return self.add_step(
            StepDefinition(
                name=name,
                description=description,
                dependencies=tuple(dependencies),
                retryable=retryable,
                max_retries=max_retries,
                action=action,
            )
        )

    @property
    def steps(self) -> StepRegistry:
        return self._registry

    # ------------------------------------------------------------------
    # Execution
    async def execute_all(self) -> bool:
        """Run all registered steps.

        Step failures are recorded in state and reflected in the return
        value; they never raise.

        Raises:
            ConfigurationError: the step graph is invalid.
            PipelineBusyError: a run is already in progress on this pipeline.
        """
        self._ensure_idle("start a run")
        scheduler = StepScheduler(
            self._registry,
            self._store,
            self._controller,
            is_cancelled=lambda: self._cancel_requested,
            max_concurrency=self._max_concurrency,
            log=self._log,
        )
        self._running = True
        self._loop = asyncio.get_running_loop()
        try:
            return await scheduler.run()
        finally:
            self._run_status = scheduler.status
            self._running = False
            self._loop = None

    def cancel(self) -> None:
        """Request that no further steps start. Idempotent.

        Steps already running are allowed to finish.
        """
        if not self._cancel_requested:
            self._log.warning("Cancellation requested")
        self._cancel_requested = True

    def reset(self) -> None:
        """Return every step to ``pending`` and clear any cancellation request."""
        self._ensure_idle("reset")
        self._store.reset()
        self._cancel_requested = False
        self._run_status = RunStatus.IDLE

    # ------------------------------------------------------------------
    # Introspection
    def get_state(self) -> Dict[str, StepState]:
        return self._store.get_all()

    def get_summary(self) -> PipelineSummary:
        return self._store.summary()

    def update_progress(self, name: str, current: int, total: int) -> None:
        """Record progress reported by a running step's action.

        Safe to call from a sync action running in a worker thread; the
        write is handed to the event loop that owns the run.
        """
        loop = self._loop
        if loop is not None and not _on_loop(loop):
            loop.call_soon_threadsafe(self._record_progress, name, current, total)
            return
        self._record_progress(name, current, total)

    def _record_progress(self, name: str, current: int, total: int) -> None:
        self._store.update_progress(name, current, total)
        if total:
            self._log.info(
                f"Progress [{name}]: {current}/{total} ({current / total * 100:.1f}%)"
            )

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_requested

    @property
    def run_status(self) -> RunStatus:
        return RunStatus.RUNNING if self._running else self._run_status

    def _ensure_idle(self, action: str) -> None:
        if self._running:
            raise PipelineBusyError(f"Cannot {action} while the pipeline is running")


def _on_loop(loop: asyncio.AbstractEventLoop) -> bool:
    try:
        return asyncio.get_running_loop() is loop
    except RuntimeError:
        return False
