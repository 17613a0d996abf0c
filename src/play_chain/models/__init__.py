"""Model types for play configuration and runtime."""

from play_chain.models.chain_readiness import ChainReadiness
from play_chain.models.loaded_play_file import LoadedPlayFile
from play_chain.models.model_spec import ModelSpec
from play_chain.models.play_spec import PlayOutputType
from play_chain.models.play_spec import PlaySpec
from play_chain.models.play_step import PlayStep
from play_chain.models.prepared_step import PreparedStep
from play_chain.models.replaced_variable import ReplacedVariable
from play_chain.models.step_output import StepOutput
from play_chain.models.step_readiness import StepReadiness

__all__ = [
    "ChainReadiness",
    "LoadedPlayFile",
    "ModelSpec",
    "PlayOutputType",
    "PlaySpec",
    "PlayStep",
    "PreparedStep",
    "ReplacedVariable",
    "StepOutput",
    "StepReadiness",
]
