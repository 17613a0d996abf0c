"""Prompt chain execution for a single play."""

from __future__ import annotations

import logging
from collections import deque
from typing import Any, Mapping, Sequence

from play_chain.dependency_graph import StepDependencyGraph
from play_chain.errors import StepNotReadyError
from play_chain.generation import TextGenerator
from play_chain.interpolation import prompt_variable_name
from play_chain.invalidation import Invalidation, InvalidationTracker
from play_chain.memo import ChainMemo
from play_chain.models.chain_readiness import ChainReadiness
from play_chain.models.play_spec import PlayOutputType
from play_chain.models.play_step import PlayStep
from play_chain.models.step_output import StepOutput
from play_chain.readiness import evaluate_chain_readiness, prepare_step
from play_chain.variables import clean_variables


logger = logging.getLogger(__name__)


class PlayChain:
    """
    Runtime for one play: evaluates readiness, runs steps in order and keeps
    a memo of step outputs that is invalidated whenever steps or variables change.

    Inputs are replaced through ``update``, which clears stale memo entries
    before returning, so no later run can read an output derived from old inputs.
    Only one ``run_chain`` may be in flight at a time; direct ``run_step`` calls
    are not serialized against it.
    """

    def __init__(
        self,
        steps: Sequence[PlayStep],
        variables: Mapping[str, Any] | None,
        generator: TextGenerator,
        *,
        output_type: PlayOutputType = PlayOutputType.FINAL,
    ) -> None:
        self._steps: list[PlayStep] = list(steps)
        self._variables: dict[str, str] = clean_variables(variables)
        self._generator: TextGenerator = generator
        self.output_type: PlayOutputType = output_type
        self._memo: ChainMemo = ChainMemo()
        self._tracker: InvalidationTracker = InvalidationTracker(self._steps, self._variables)
        self._bag_revision: int = 0
        self._step_revisions: dict[int, int] = {}
        self._running: bool = False
        self._cancel_requested: bool = False

    @property
    def steps(self) -> list[PlayStep]:
        return list(self._steps)

    @property
    def variables(self) -> dict[str, str]:
        return dict(self._variables)

    @property
    def is_running(self) -> bool:
        return self._running

    def update(
        self,
        *,
        steps: Sequence[PlayStep] | None = None,
        variables: Mapping[str, Any] | None = None,
    ) -> Invalidation:
        if steps is not None:
            self._steps = list(steps)
        if variables is not None:
            self._variables = clean_variables(variables)
        invalidation = self._tracker.apply(self._steps, self._variables, self._memo)
        if invalidation.variables_changed:
            self._bag_revision += 1
        for index in invalidation.changed_steps:
            self._step_revisions[index] = self._step_revisions.get(index, 0) + 1
        return invalidation

    def evaluate(self) -> ChainReadiness:
        return evaluate_chain_readiness(self._steps, self._variables, running=self._running)

    def is_step_ready(self, index: int) -> bool:
        self._check_index(index)
        return self.evaluate().is_step_ready(index)

    @property
    def is_ready_to_run_chain(self) -> bool:
        return self.evaluate().chain_ready

    @property
    def missing_variables(self) -> list[str]:
        return self.evaluate().missing_variables

    def memo_snapshot(self) -> dict[int, StepOutput]:
        return self._memo.snapshot()

    def final_output(self) -> StepOutput | None:
        if not self._steps:
            return None
        return self._memo.get(len(self._steps) - 1)

    def available_variables_for_step(self, index: int) -> dict[str, str]:
        self._check_index(index)
        return self._merge_outputs(index, self._memo.snapshot())

    def _merge_outputs(self, index: int, outputs: Mapping[int, StepOutput]) -> dict[str, str]:
        merged = dict(self._variables)
        for position, output in sorted(outputs.items()):
            if position < index:
                merged[prompt_variable_name(position)] = output.text
        return merged

    def _inputs_revision(self, index: int) -> tuple[int, int]:
        return self._bag_revision, self._step_revisions.get(index, 0)

    def _check_index(self, index: int) -> PlayStep:
        if not 0 <= index < len(self._steps):
            raise IndexError(f"Step index {index} out of range for a chain of {len(self._steps)} steps.")
        return self._steps[index]

    async def run_step(self, index: int) -> StepOutput:
        self._check_index(index)
        cached = self._memo.get(index)
        if cached is not None:
            logger.debug("Memo hit for %s", prompt_variable_name(index))
            return cached
        return await self._run_step(index, self._memo.snapshot())

    async def _run_step(self, index: int, outputs: Mapping[int, StepOutput]) -> StepOutput:
        step = self._check_index(index)
        prepared = prepare_step(step, self._merge_outputs(index, outputs))
        if not prepared.is_ready:
            missing = list(dict.fromkeys(prepared.missing_system_variables + prepared.missing_user_variables))
            raise StepNotReadyError(index, missing)

        provider, model = None, None
        if step.model_provider and step.model_name:
            provider, model = step.model_provider, step.model_name

        revision = self._inputs_revision(index)
        logger.debug("Running %s", prompt_variable_name(index))
        text = await self._generator(prepared.system_text, prepared.user_text, provider, model)
        output = StepOutput(text=text, system_text=prepared.system_text, user_text=prepared.user_text)
        if revision == self._inputs_revision(index):
            self._memo.store(index, output)
        else:
            logger.info("Inputs changed while %s was running; result not memoized", prompt_variable_name(index))
        return output

    async def run_chain(self) -> None:
        """
        Runs every step without a memoized output, strictly in index order.
        A failing step aborts the rest of the chain; outputs of steps that
        already finished stay memoized.
        """
        if self._running:
            logger.warning("Chain is already running; ignoring run request")
            return
        readiness = self.evaluate()
        if not readiness.chain_ready:
            logger.warning("Chain is not ready to run (missing: %s)", ", ".join(readiness.missing_variables))
            return

        self._running = True
        self._cancel_requested = False
        bag_revision, step_revisions, step_count = self._bag_revision, dict(self._step_revisions), len(self._steps)
        outputs = self._memo.snapshot()
        queue = deque(index for index in range(len(self._steps)) if index not in outputs)
        logger.info("Running chain: %d steps queued, %d cached", len(queue), len(outputs))
        try:
            while queue:
                if self._cancel_requested:
                    logger.info("Chain cancelled with %d steps left", len(queue))
                    return
                if not self._can_continue(queue, bag_revision, step_revisions, step_count):
                    logger.info("Inputs changed during chain run; stopping with %d steps left", len(queue))
                    return
                step_revisions = dict(self._step_revisions)
                index = queue.popleft()
                outputs[index] = await self._run_step(index, outputs)
            logger.info("Chain finished")
        finally:
            self._running = False
            self._cancel_requested = False

    def _can_continue(
        self,
        queue: deque[int],
        bag_revision: int,
        step_revisions: Mapping[int, int],
        step_count: int,
    ) -> bool:
        """
        True when every step changed since ``step_revisions`` was taken is still
        waiting in ``queue`` and the edited chain is still ready; queued steps
        then run against their new definitions.
        """
        if bag_revision != self._bag_revision or step_count != len(self._steps):
            return False
        changed = {
            index for index, revision in self._step_revisions.items() if revision != step_revisions.get(index, 0)
        }
        if not changed:
            return True
        return changed <= set(queue) and evaluate_chain_readiness(self._steps, self._variables).chain_ready

    def cancel(self) -> None:
        """Stops an in-flight chain before its next step; a running generator call finishes."""
        if self._running:
            self._cancel_requested = True

    async def run_with_dependencies(self, index: int) -> StepOutput:
        """Runs the earlier steps ``index`` references (transitively), then the step itself."""
        self._check_index(index)
        graph = StepDependencyGraph(self._steps)
        for upstream in sorted(graph.upstream_closure(index)):
            if upstream < index:
                await self.run_step(upstream)
        return await self.run_step(index)
