"""Exception hierarchy for assetflow."""

from __future__ import annotations


class AssetflowError(Exception):
    """Base class for all assetflow errors."""


class ConfigurationError(AssetflowError):
    """The declared step graph is invalid; nothing was executed."""


class DuplicateStepError(ConfigurationError):
    def __init__(self, step: str) -> None:
        super().__init__(f"Step '{step}' is already registered")
        self.step = step


class UnknownDependencyError(ConfigurationError):
    def __init__(self, step: str, dependency: str) -> None:
        super().__init__(f"Step '{step}' depends on unknown step '{dependency}'")
        self.step = step
        self.dependency = dependency


class CyclicDependencyError(ConfigurationError):
    def __init__(self, step: str) -> None:
        super().__init__(f"Circular dependency detected involving step '{step}'")
        self.step = step


class PipelineBusyError(AssetflowError):
    """Raised when a pipeline is mutated or re-entered while it is running."""


class InternalStateError(AssetflowError):
    """Step bookkeeping was driven outside its lifecycle.

    These indicate a bug in the caller, not a step failure.
    """


class InvalidTransitionError(InternalStateError):
    def __init__(self, step: str, current: str, target: str) -> None:
        super().__init__(f"Invalid transition for step '{step}': {current} → {target}")
        self.step = step
        self.current = current
        self.target = target


class UnknownStepError(InternalStateError, KeyError):
    def __init__(self, step: str) -> None:
        super().__init__(f"Unknown step: {step}")
        self.step = step

    def __str__(self) -> str:
        return str(self.args[0])