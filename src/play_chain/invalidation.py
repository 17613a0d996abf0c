"""Discards memoized outputs whose inputs changed."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping, Sequence

from play_chain.dependency_graph import StepDependencyGraph
from play_chain.memo import ChainMemo
from play_chain.models.play_step import PlayStep
from play_chain.variables import variables_key


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Invalidation:
    variables_changed: bool = False
    changed_steps: frozenset[int] = frozenset()
    cleared: frozenset[int] = frozenset()

    @property
    def has_changes(self) -> bool:
        return self.variables_changed or bool(self.changed_steps)


def changed_step_indices(previous: Sequence[PlayStep], current: Sequence[PlayStep]) -> set[int]:
    """Indices whose watched fields differ; added or removed positions count as changed."""
    changed: set[int] = set()
    for index in range(max(len(previous), len(current))):
        if index >= len(previous) or index >= len(current):
            changed.add(index)
        elif previous[index].watched_values() != current[index].watched_values():
            changed.add(index)
    return changed


class InvalidationTracker:
    def __init__(self, steps: Sequence[PlayStep], variables: Mapping[str, str]) -> None:
        self._previous_steps: list[PlayStep] = list(steps)
        self._previous_key: str = variables_key(variables)

    @property
    def steps(self) -> list[PlayStep]:
        return list(self._previous_steps)

    def apply(self, steps: Sequence[PlayStep], variables: Mapping[str, str], memo: ChainMemo) -> Invalidation:
        """
        Clears the whole memo when the bag changed, and the changed steps plus
        everything downstream of them when step definitions changed.
        """
        cleared: set[int] = set()

        key = variables_key(variables)
        variables_changed = key != self._previous_key
        if variables_changed:
            cleared |= memo.clear()
            self._previous_key = key

        changed = changed_step_indices(self._previous_steps, steps)
        if changed:
            graph = StepDependencyGraph(steps)
            changed = graph.downstream_closure(changed)
            cleared |= memo.discard(changed)
        self._previous_steps = list(steps)

        if variables_changed or changed:
            logger.debug(
                "Invalidated memo (variables_changed=%s, changed_steps=%s, cleared=%s)",
                variables_changed,
                sorted(changed),
                sorted(cleared),
            )
        return Invalidation(
            variables_changed=variables_changed,
            changed_steps=frozenset(changed),
            cleared=frozenset(cleared),
        )
