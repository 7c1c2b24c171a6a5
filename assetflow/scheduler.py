"""Dependency-respecting scheduler that drives a pipeline run."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Callable, Dict, List, Optional

from .contracts import StepStatus
from .errors import ConfigurationError
from .execute import RetryController
from .registry import StepRegistry
from .state import StepStateStore

logger = logging.getLogger(__name__)

CANCELLED_ACTION_MESSAGE = "step action was cancelled"


class RunStatus(str, Enum):
    """Lifecycle of a whole pipeline run."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"
    CANCELLED = "cancelled"

    def __str__(self) -> str:
        return self.value


class StepScheduler:
    """Executes registered steps in dependency order.

    Ready steps are picked by declaration order. With ``max_concurrency``
    above one, independent ready steps run as concurrent tasks; a step never
    starts before all of its dependencies are ``completed``.
    Cancellation is only observed between steps.
    """

    def __init__(
        self,
        registry: StepRegistry,
        store: StepStateStore,
        controller: RetryController,
        *,
        is_cancelled: Callable[[], bool],
        max_concurrency: int = 1,
        log: Optional[logging.Logger] = None,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._registry = registry
        self._store = store
        self._controller = controller
        self._is_cancelled = is_cancelled
        self._max_concurrency = max_concurrency
        self._log = log or logger
        self._order = {name: i for i, name in enumerate(registry.names())}
        self.status = RunStatus.IDLE

    async def run(self) -> bool:
        """Run every reachable step. Returns ``True`` iff all steps completed.

        Raises:
            ConfigurationError: if the step graph is invalid; no step runs.
        """
        try:
            self._registry.validate_graph()
        except ConfigurationError as e:
            self.status = RunStatus.ABORTED
            self._log.error(f"Pipeline configuration invalid, aborting: {e}")
            raise

        self.status = RunStatus.RUNNING
        self._log.info(
            f"Executing {len(self._registry)} steps "
            f"(max concurrency {self._max_concurrency})"
        )

        in_flight: Dict[asyncio.Task, str] = {}
        cancel_observed = False
        try:
            while True:
                if not cancel_observed and self._is_cancelled():
                    cancel_observed = True
                    self._log.warning("Cancellation requested, no further steps will start")

                if not cancel_observed:
                    running = set(in_flight.values())
                    for name in self._ready_steps():
                        if len(in_flight) >= self._max_concurrency:
                            break
                        if name in running:
                            continue
                        task = asyncio.create_task(
                            self._controller.run(self._registry.get(name)),
                            name=f"step:{name}",
                        )
                        in_flight[task] = name

                if not in_flight:
                    break

                done, _ = await asyncio.wait(
                    in_flight, return_when=asyncio.FIRST_COMPLETED
                )
                for task in sorted(done, key=lambda t: self._order[in_flight[t]]):
                    if task.cancelled():
                        succeeded = self._fail_cancelled_step(in_flight[task])
                    else:
                        succeeded = task.result()
                    name = in_flight.pop(task)
                    if not succeeded:
                        self._skip_dependents(name)
        except asyncio.CancelledError:
            await self._interrupt(in_flight)
            self.status = RunStatus.CANCELLED
            raise

        if cancel_observed:
            self._cancel_pending()
        self.status = RunStatus.CANCELLED if cancel_observed else RunStatus.COMPLETED

        summary = self._store.summary()
        self._log.info(
            f"Run finished: {summary.completed}/{summary.total} completed, "
            f"{summary.failed} failed, {summary.skipped} skipped, "
            f"{summary.cancelled} cancelled"
        )
        return summary.succeeded

    def _ready_steps(self) -> List[str]:
        ready = []
        for step in self._registry:
            if self._store.status_of(step.name) is not StepStatus.PENDING:
                continue
            if all(
                self._store.status_of(dep) is StepStatus.COMPLETED
                for dep in step.dependencies
            ):
                ready.append(step.name)
        return ready

    def _fail_cancelled_step(self, name: str) -> bool:
        # The step task ended cancelled while this run was not: the action
        # itself raised CancelledError.
        if self._store.status_of(name) is StepStatus.RUNNING:
            self._store.transition(
                name, StepStatus.FAILED, error_message=CANCELLED_ACTION_MESSAGE
            )
            self._log.error(f"Step {name} failed: {CANCELLED_ACTION_MESSAGE}")
        return False

    def _skip_dependents(self, failed: str) -> None:
        for name in self._registry.dependents_of(failed):
            if self._store.status_of(name) is StepStatus.PENDING:
                self._store.transition(
                    name,
                    StepStatus.SKIPPED,
                    error_message=f"upstream step '{failed}' failed",
                )
                self._log.warning(f"Skipping step {name}: upstream step '{failed}' failed")

    def _cancel_pending(self) -> int:
        count = 0
        for name in self._registry.names():
            if self._store.status_of(name) is StepStatus.PENDING:
                self._store.transition(
                    name, StepStatus.CANCELLED, error_message="Cancelled by user"
                )
                count += 1
        if count:
            self._log.warning(f"Cancelled {count} pending step(s)")
        return count

    async def _interrupt(self, in_flight: Dict[asyncio.Task, str]) -> None:
        """Tear down after the run itself was cancelled from outside."""
        for task in in_flight:
            task.cancel()
        await asyncio.gather(*in_flight, return_exceptions=True)
        for name in in_flight.values():
            if self._store.status_of(name) is StepStatus.RUNNING:
                self._store.transition(
                    name, StepStatus.CANCELLED, error_message="Interrupted"
                )
        self._cancel_pending()
