"""Public package exports."""

from play_chain.errors import PlayChainError
from play_chain.errors import StepNotReadyError
from play_chain.generation import PydanticAITextGenerator
from play_chain.generation import TextGenerator
from play_chain.input_adaptors import FileVariables
from play_chain.input_adaptors import InlineVariables
from play_chain.input_adaptors import VariableSource
from play_chain.interpolation import interpolate
from play_chain.orchestrator import Orchestrator
from play_chain.play_chain import PlayChain
from play_chain.readiness import evaluate_chain_readiness

__all__ = [
    "FileVariables",
    "InlineVariables",
    "Orchestrator",
    "PlayChain",
    "PlayChainError",
    "PydanticAITextGenerator",
    "StepNotReadyError",
    "TextGenerator",
    "VariableSource",
    "evaluate_chain_readiness",
    "interpolate",
]
