"""Core data contracts for assetflow pipelines."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class StepStatus(str, Enum):
    """Lifecycle status of a single step."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"

    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    def __str__(self) -> str:
        return self.value


TERMINAL_STATUSES = frozenset(
    {
        StepStatus.COMPLETED,
        StepStatus.FAILED,
        StepStatus.SKIPPED,
        StepStatus.CANCELLED,
    }
)


class StepDefinition(BaseModel):
    """Declares one unit of work in a pipeline.

    ``action`` is called with no arguments. Coroutine functions are awaited,
    plain callables run in a worker thread. A truthy result means success;
    a falsy result or a raised exception means failure.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    dependencies: Tuple[str, ...] = Field(default_factory=tuple)
    retryable: bool = False
    max_retries: int = Field(default=0, ge=0)
    action: Callable[[], Any]

    @field_validator("name")
    @classmethod
    def _ensure_name(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("step name must be a non-empty string")
        return v

    @field_validator("dependencies", mode="before")
    @classmethod
    def _dedupe_dependencies(cls, v: Any) -> Tuple[str, ...]:
        if v is None:
            return ()
        if isinstance(v, str):
            v = [v]
        # keep first occurrence so declaration order survives
        return tuple(dict.fromkeys(v))

    @property
    def max_attempts(self) -> int:
        """Total number of invocations the step is allowed."""
        return self.max_retries + 1 if self.retryable else 1


class StepState(BaseModel):
    """Mutable progress record of a step during a run."""

    name: str
    status: StepStatus = StepStatus.PENDING
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    retry_count: int = 0
    error_message: Optional[str] = None
    progress: Optional[int] = None
    total: Optional[int] = None

    @property
    def duration(self) -> Optional[float]:
        """Seconds spent running, once the step has left ``running``."""
        if self.started_at is None or self.ended_at is None:
            return None
        return (self.ended_at - self.started_at).total_seconds()

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal()


class PipelineSummary(BaseModel):
    """Counts of steps per status, derived from the state store."""

    total: int = 0
    completed: int = 0
    failed: int = 0
    skipped: int = 0
    cancelled: int = 0
    pending: int = 0
    running: int = 0

    @property
    def succeeded(self) -> bool:
        return self.completed == self.total
