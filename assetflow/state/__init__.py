"""Run state bookkeeping for assetflow pipelines."""

from __future__ import annotations

from .store import StepStateStore
from .transitions import VALID_TRANSITIONS, is_valid_transition

__all__ = [
    "StepStateStore",
    "VALID_TRANSITIONS",
    "is_valid_transition",
]
