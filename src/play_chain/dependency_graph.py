"""Step-to-step dependencies implied by prompt_N placeholders."""

from __future__ import annotations

from collections import deque
from typing import Iterable, Sequence

from play_chain.interpolation import iter_placeholders, prompt_reference_index
from play_chain.models.play_step import PlayStep


class StepDependencyGraph:
    """
    Edges point from a step to the steps whose templates reference its output.
    Only literal {prompt_N} / {prompt_N?} placeholders count; references built
    dynamically inside variable values are not detected.
    """

    def __init__(self, steps: Sequence[PlayStep]) -> None:
        self._size = len(steps)
        self._dependencies: list[set[int]] = [set() for _ in steps]
        self._dependents: list[set[int]] = [set() for _ in steps]
        for index, step in enumerate(steps):
            for referenced in self._referenced_steps(step):
                self._dependencies[index].add(referenced)
                if referenced < self._size:
                    self._dependents[referenced].add(index)

    @staticmethod
    def _referenced_steps(step: PlayStep) -> set[int]:
        referenced: set[int] = set()
        for template in (step.system_template, step.user_template):
            for placeholder in iter_placeholders(template):
                target = prompt_reference_index(placeholder.name)
                if target is not None:
                    referenced.add(target)
        return referenced

    def __len__(self) -> int:
        return self._size

    def dependencies(self, index: int) -> set[int]:
        """Steps whose output ``index`` references, including invalid positions."""
        return set(self._dependencies[index])

    def dependents(self, index: int) -> set[int]:
        if index >= self._size:
            return set()
        return set(self._dependents[index])

    def downstream_closure(self, indices: Iterable[int]) -> set[int]:
        """``indices`` plus every step that transitively consumes their output."""
        seen = set(indices)
        queue = deque(seen)
        while queue:
            current = queue.popleft()
            for dependent in self.dependents(current):
                if dependent not in seen:
                    seen.add(dependent)
                    queue.append(dependent)
        return seen

    def upstream_closure(self, index: int) -> set[int]:
        """Valid steps ``index`` transitively needs, excluding ``index`` itself."""
        seen: set[int] = set()
        queue = deque([index])
        while queue:
            current = queue.popleft()
            for dependency in self._dependencies[current]:
                if dependency < self._size and dependency not in seen and dependency != index:
                    seen.add(dependency)
                    queue.append(dependency)
        return seen
