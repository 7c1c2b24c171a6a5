"""In-memory store of per-step run state."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict

from ..contracts import PipelineSummary, StepState, StepStatus
from ..errors import InternalStateError, InvalidTransitionError, UnknownStepError
from .transitions import is_valid_transition

_EXTRA_FIELDS = frozenset({"retry_count", "error_message"})


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class StepStateStore:
    """Keep one :class:`StepState` per registered step.

    Readers always receive copies, so snapshots taken during a run never
    change underneath the caller. :meth:`transition` is the only way to move
    a step's status. State is not persisted across process restarts.
    """

    def __init__(self) -> None:
        self._states: Dict[str, StepState] = {}

    # ------------------------------------------------------------------
    def create(self, name: str) -> None:
        self._states[name] = StepState(name=name)

    def _require(self, name: str) -> StepState:
        try:
            return self._states[name]
        except KeyError:
            raise UnknownStepError(name) from None

    def get(self, name: str) -> StepState:
        return self._require(name).model_copy()

    def get_all(self) -> Dict[str, StepState]:
        return {name: state.model_copy() for name, state in self._states.items()}

    def status_of(self, name: str) -> StepStatus:
        return self._require(name).status

    def __contains__(self, name: object) -> bool:
        return name in self._states

    # ------------------------------------------------------------------
    def transition(self, name: str, new_status: StepStatus, **extra: Any) -> StepState:
        """Move ``name`` to ``new_status`` and apply ``extra`` field updates.

        Raises:
            InvalidTransitionError: if the move is not part of the lifecycle.
        """
        state = self._require(name)
        current = state.status
        if not is_valid_transition(current, new_status):
            raise InvalidTransitionError(name, str(current), str(new_status))

        unknown = set(extra) - _EXTRA_FIELDS
        if unknown:
            raise InternalStateError(
                f"Cannot set {sorted(unknown)} on step '{name}' during a transition"
            )

        now = _utc_now()
        if current is StepStatus.PENDING and new_status is StepStatus.RUNNING:
            state.started_at = now
        elif current is StepStatus.RUNNING and new_status is not StepStatus.RUNNING:
            state.ended_at = now
        if new_status is StepStatus.COMPLETED:
            state.error_message = None

        for key, value in extra.items():
            setattr(state, key, value)
        state.status = new_status
        return state.model_copy()

    def update_progress(self, name: str, current: int, total: int) -> None:
        state = self._require(name)
        state.progress = current
        state.total = total

    def reset(self) -> None:
        for name in self._states:
            self._states[name] = StepState(name=name)

    def summary(self) -> PipelineSummary:
        counts = {status: 0 for status in StepStatus}
        for state in self._states.values():
            counts[state.status] += 1
        return PipelineSummary(
            total=len(self._states),
            completed=counts[StepStatus.COMPLETED],
            failed=counts[StepStatus.FAILED],
            skipped=counts[StepStatus.SKIPPED],
            cancelled=counts[StepStatus.CANCELLED],
            pending=counts[StepStatus.PENDING],
            running=counts[StepStatus.RUNNING],
        )
