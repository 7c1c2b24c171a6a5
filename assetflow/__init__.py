"""assetflow: dependency-aware step orchestration for asset processing."""

from .contracts import PipelineSummary, StepDefinition, StepState, StepStatus
from .errors import (
    AssetflowError,
    ConfigurationError,
    CyclicDependencyError,
    DuplicateStepError,
    InternalStateError,
    InvalidTransitionError,
    PipelineBusyError,
    UnknownDependencyError,
)
from .pipeline import Pipeline
from .scheduler import RunStatus
from .utils.retry import RetryPolicy

__version__ = "0.1.0"
__all__ = [
    "Pipeline",
    "StepDefinition",
    "StepState",
    "StepStatus",
    "PipelineSummary",
    "RunStatus",
    "RetryPolicy",
    "AssetflowError",
    "ConfigurationError",
    "DuplicateStepError",
    "UnknownDependencyError",
    "CyclicDependencyError",
    "PipelineBusyError",
    "InternalStateError",
    "InvalidTransitionError",
]
