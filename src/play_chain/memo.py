"""Per-step output cache for one chain."""

from __future__ import annotations

from typing import Iterable, Iterator

from play_chain.models.step_output import StepOutput


class ChainMemo:
    """At most one cached output per step index."""

    def __init__(self) -> None:
        self._outputs: dict[int, StepOutput] = {}

    def __contains__(self, index: object) -> bool:
        return index in self._outputs

    def __len__(self) -> int:
        return len(self._outputs)

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self._outputs))

    def get(self, index: int) -> StepOutput | None:
        return self._outputs.get(index)

    def store(self, index: int, output: StepOutput) -> None:
        self._outputs[index] = output

    def discard(self, indices: Iterable[int]) -> set[int]:
        """Removes the given indices and returns the ones that were actually cached."""
        removed: set[int] = set()
        for index in indices:
            if self._outputs.pop(index, None) is not None:
                removed.add(index)
        return removed

    def clear(self) -> set[int]:
        removed = set(self._outputs)
        self._outputs.clear()
        return removed

    def snapshot(self) -> dict[int, StepOutput]:
        return dict(sorted(self._outputs.items()))
