"""Allowed step status transitions."""

from __future__ import annotations

from typing import Dict, FrozenSet

from ..contracts import StepStatus

VALID_TRANSITIONS: Dict[StepStatus, FrozenSet[StepStatus]] = {
    StepStatus.PENDING: frozenset(
        {StepStatus.RUNNING, StepStatus.SKIPPED, StepStatus.CANCELLED}
    ),
    # running -> running is a retry attempt
    StepStatus.RUNNING: frozenset(
        {
            StepStatus.RUNNING,
            StepStatus.COMPLETED,
            StepStatus.FAILED,
            StepStatus.CANCELLED,
        }
    ),
    StepStatus.COMPLETED: frozenset(),
    StepStatus.FAILED: frozenset(),
    StepStatus.SKIPPED: frozenset(),
    StepStatus.CANCELLED: frozenset(),
}


def is_valid_transition(from_status: StepStatus, to_status: StepStatus) -> bool:
    return to_status in VALID_TRANSITIONS.get(from_status, frozenset())
