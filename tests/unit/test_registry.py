"""Tests for step registration and graph validation."""

import pytest
from pydantic import ValidationError

from assetflow.contracts import StepDefinition
from assetflow.errors import (
    ConfigurationError,
    CyclicDependencyError,
    DuplicateStepError,
    UnknownDependencyError,
)
from assetflow.registry import StepRegistry


async def _ok() -> bool:
    return True


def _step(name: str, *deps: str) -> StepDefinition:
    return StepDefinition(name=name, dependencies=deps, action=_ok)


def _registry(*steps: StepDefinition) -> StepRegistry:
    registry = StepRegistry()
    for step in steps:
        registry.register(step)
    return registry


def test_duplicate_name_rejected() -> None:
    registry = _registry(_step("extract"))
    with pytest.raises(DuplicateStepError) as exc:
        registry.register(_step("extract"))
    assert exc.value.step == "extract"
    assert isinstance(exc.value, ConfigurationError)


def test_dependency_may_be_registered_later() -> None:
    registry = _registry(_step("images", "extract"), _step("extract"))
    registry.validate_graph()
    assert registry.names() == ["images", "extract"]


def test_unknown_dependency_names_first_missing_reference() -> None:
    registry = _registry(
        _step("a"),
        _step("b", "a", "missing-1"),
        _step("c", "missing-2"),
    )
    with pytest.raises(UnknownDependencyError) as exc:
        registry.validate_graph()
    assert exc.value.step == "b"
    assert exc.value.dependency == "missing-1"
    assert "unknown step" in str(exc.value)


def test_two_step_cycle_detected() -> None:
    registry = _registry(_step("step-a", "step-b"), _step("step-b", "step-a"))
    with pytest.raises(CyclicDependencyError) as exc:
        registry.validate_graph()
    assert exc.value.step in {"step-a", "step-b"}
    assert "circular dependency" in str(exc.value).lower()


def test_self_dependency_is_a_cycle() -> None:
    registry = _registry(_step("loop", "loop"))
    with pytest.raises(CyclicDependencyError) as exc:
        registry.validate_graph()
    assert exc.value.step == "loop"


def test_cycle_behind_acyclic_prefix_detected() -> None:
    registry = _registry(
        _step("root"),
        _step("x", "root", "z"),
        _step("y", "x"),
        _step("z", "y"),
    )
    with pytest.raises(CyclicDependencyError) as exc:
        registry.validate_graph()
    assert exc.value.step in {"x", "y", "z"}


def test_diamond_is_valid() -> None:
    registry = _registry(
        _step("extract"),
        _step("images", "extract"),
        _step("database", "extract"),
        _step("package", "images", "database"),
    )
    registry.validate_graph()


def test_long_chain_validates_without_recursion_limit() -> None:
    steps = [_step("s0")] + [_step(f"s{i}", f"s{i - 1}") for i in range(1, 3000)]
    registry = _registry(*reversed(steps))
    registry.validate_graph()


def test_dependents_of_is_transitive_and_ordered() -> None:
    registry = _registry(
        _step("a"),
        _step("b", "a"),
        _step("unrelated"),
        _step("c", "b"),
        _step("d", "a", "c"),
    )
    assert registry.dependents_of("a") == ["b", "c", "d"]
    assert registry.dependents_of("c") == ["d"]
    assert registry.dependents_of("unrelated") == []


def test_topological_order_respects_dependencies_and_declaration() -> None:
    registry = _registry(
        _step("step-c", "step-a", "step-b"),
        _step("step-a"),
        _step("step-b", "step-a"),
        _step("other"),
    )
    assert registry.topological_order() == ["step-a", "step-b", "step-c", "other"]


def test_step_definition_validation() -> None:
    with pytest.raises(ValidationError):
        StepDefinition(name="", action=_ok)
    with pytest.raises(ValidationError):
        StepDefinition(name="neg", max_retries=-1, action=_ok)

    step = StepDefinition(name="x", dependencies=["a", "b", "a"], action=_ok)
    assert step.dependencies == ("a", "b")
    assert step.max_attempts == 1

    retrying = StepDefinition(name="y", retryable=True, max_retries=2, action=_ok)
    assert retrying.max_attempts == 3


def test_step_definition_is_immutable() -> None:
    step = _step("frozen")
    with pytest.raises(ValidationError):
        step.name = "changed"
