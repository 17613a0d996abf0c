"""Helper for running plays."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

from play_chain.errors import PlayChainError, StepNotReadyError
from play_chain.generation import PydanticAITextGenerator, TextGenerator
from play_chain.input_adaptors import VariableSource
from play_chain.models.loaded_play_file import LoadedPlayFile
from play_chain.models.play_spec import PlayOutputType
from play_chain.play_chain import PlayChain
from play_chain.play_registry import PlayRegistry
from play_chain.variables import clean_variables, resolve_nested_variables


class Orchestrator:
    def __init__(
        self,
        play_roots: list[Path] | None = None,
        generator: TextGenerator | None = None,
    ) -> None:
        self.registry: PlayRegistry = PlayRegistry(play_roots or [])
        self._generator: TextGenerator | None = generator

    def _generator_for(self, loaded: LoadedPlayFile) -> TextGenerator:
        if self._generator is not None:
            return self._generator
        return PydanticAITextGenerator(loaded.spec.model)

    def play_variables(
        self,
        loaded: LoadedPlayFile,
        variables: VariableSource | Mapping[str, Any] | None,
    ) -> dict[str, str]:
        """Play defaults overlaid with caller variables, nested references resolved."""
        if isinstance(variables, VariableSource):
            provided = variables.load()
        else:
            provided = dict(variables or {})
        merged = clean_variables(loaded.spec.variables)
        merged.update(clean_variables(provided))
        return resolve_nested_variables(merged)

    def build_chain(
        self,
        play_id: str,
        variables: VariableSource | Mapping[str, Any] | None = None,
    ) -> PlayChain:
        loaded = self.registry.get(play_id)
        return PlayChain(
            loaded.steps(),
            self.play_variables(loaded, variables),
            self._generator_for(loaded),
            output_type=loaded.spec.output_type,
        )

    async def run(
        self,
        play_id: str,
        variables: VariableSource | Mapping[str, Any] | None = None,
    ) -> str:
        chain = self.build_chain(play_id, variables)
        readiness = chain.evaluate()
        if not readiness.chain_ready:
            blocked = next(status.index for status in readiness.per_step if not status.is_ready)
            raise StepNotReadyError(blocked, readiness.missing_variables)
        await chain.run_chain()
        final = chain.final_output()
        if final is None:
            raise PlayChainError(f"Play {play_id!r} produced no output.")
        return final.text

    def smart_plays_for(self, missing_variables: list[str]) -> dict[str, str]:
        """Variable plays that can fill the given missing variables, keyed by variable name."""
        producers = self.registry.variable_plays()
        return {name: producers[name] for name in missing_variables if name in producers}

    async def resolve_smart_variables(
        self,
        play_ids: list[str],
        variables: Mapping[str, Any] | None = None,
    ) -> dict[str, str]:
        """Runs variable-type plays in order, storing each final output in the bag."""
        bag = clean_variables(variables)
        for play_id in play_ids:
            spec = self.registry.get(play_id).spec
            if spec.output_type != PlayOutputType.VARIABLE:
                raise ValueError(f"Play {play_id!r} has output_type {spec.output_type.value!r}, expected 'variable'.")
            bag[spec.variable_name or play_id] = await self.run(play_id, bag)
        return bag
