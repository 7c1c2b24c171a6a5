"""Step registry and dependency graph validation."""

from __future__ import annotations

from typing import Dict, Iterator, List, Set

from .contracts import StepDefinition
from .errors import CyclicDependencyError, DuplicateStepError, UnknownDependencyError

# DFS colour marks
_UNVISITED, _IN_PROGRESS, _DONE = 0, 1, 2


class StepRegistry:
    """Holds step definitions in declaration order.

    Dependency references are resolved lazily: a step may name a dependency
    that is registered later, so the graph is only checked by
    :meth:`validate_graph`.
    """

    def __init__(self) -> None:
        self._steps: Dict[str, StepDefinition] = {}

    def register(self, definition: StepDefinition) -> None:
        if definition.name in self._steps:
            raise DuplicateStepError(definition.name)
        self._steps[definition.name] = definition

    def get(self, name: str) -> StepDefinition:
        return self._steps[name]

    def names(self) -> List[str]:
        return list(self._steps)

    def __contains__(self, name: object) -> bool:
        return name in self._steps

    def __len__(self) -> int:
        return len(self._steps)

    def __iter__(self) -> Iterator[StepDefinition]:
        return iter(self._steps.values())

    def validate_graph(self) -> None:
        """Check every dependency reference and reject cycles.

        Raises:
            UnknownDependencyError: for the first dangling reference found.
            CyclicDependencyError: naming a step that lies on a cycle.
        """
        for step in self._steps.values():
            for dep in step.dependencies:
                if dep not in self._steps:
                    raise UnknownDependencyError(step.name, dep)

        marks = {name: _UNVISITED for name in self._steps}
        for name in self._steps:
            if marks[name] == _UNVISITED:
                self._visit(name, marks)

    def _visit(self, root: str, marks: Dict[str, int]) -> None:
        # iterative so long linear chains do not hit the recursion limit
        marks[root] = _IN_PROGRESS
        stack = [(root, iter(self._steps[root].dependencies))]
        while stack:
            name, deps = stack[-1]
            for dep in deps:
                if marks[dep] == _IN_PROGRESS:
                    raise CyclicDependencyError(dep)
                if marks[dep] == _UNVISITED:
                    marks[dep] = _IN_PROGRESS
                    stack.append((dep, iter(self._steps[dep].dependencies)))
                    break
            else:
                marks[name] = _DONE
                stack.pop()

    def dependents_of(self, name: str) -> List[str]:
        """Every step that transitively depends on ``name``, in declaration order."""
        downstream: Set[str] = set()
        frontier = {name}
        while frontier:
            frontier = {
                step.name
                for step in self._steps.values()
                if step.name not in downstream and frontier.intersection(step.dependencies)
            }
            downstream |= frontier
        return [n for n in self._steps if n in downstream]

    def topological_order(self) -> List[str]:
        """Dependency-respecting order, stable with respect to declaration order.

        Assumes :meth:`validate_graph` has passed.
        """
        order: List[str] = []
        placed: Set[str] = set()
        remaining = list(self._steps.values())
        while remaining:
            for step in remaining:
                if placed.issuperset(step.dependencies):
                    order.append(step.name)
                    placed.add(step.name)
                    remaining.remove(step)
                    break
            else:
                raise CyclicDependencyError(remaining[0].name)
        return order
