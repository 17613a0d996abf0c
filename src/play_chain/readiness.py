"""Readiness evaluation for steps and whole chains."""

from __future__ import annotations

from typing import Mapping, Sequence

from play_chain.interpolation import interpolate, missing_variable_names, prompt_variable_name
from play_chain.models.chain_readiness import ChainReadiness
from play_chain.models.play_step import PlayStep
from play_chain.models.prepared_step import PreparedStep
from play_chain.models.step_readiness import StepReadiness
from play_chain.variables import clean_variables


def _missing_for_step(step: PlayStep, variables: Mapping[str, str]) -> list[str]:
    replaced = (
        interpolate(step.system_template, variables).replaced
        + interpolate(step.user_template, variables).replaced
    )
    return missing_variable_names(replaced)


def evaluate_step_readiness(
    index: int,
    step: PlayStep,
    variables: Mapping[str, str],
    *,
    exempt_upstream: bool = True,
) -> StepReadiness:
    """
    With ``exempt_upstream`` the outputs prompt_1..prompt_index are treated as
    available, since an ordered chain run produces them before this step.
    """
    missing = _missing_for_step(step, variables)
    if exempt_upstream:
        upstream = {prompt_variable_name(j) for j in range(index)}
        missing = [name for name in missing if name not in upstream]
    is_ready = bool(step.user_template) and bool(step.system_template) and not missing
    return StepReadiness(index=index, is_ready=is_ready, missing_variables=missing)


def evaluate_chain_readiness(
    steps: Sequence[PlayStep],
    variables: Mapping[str, str],
    *,
    running: bool = False,
) -> ChainReadiness:
    variables = clean_variables(variables)
    per_step = [evaluate_step_readiness(index, step, variables) for index, step in enumerate(steps)]
    missing: list[str] = []
    for status in per_step:
        missing.extend(status.missing_variables)
    return ChainReadiness(
        per_step=per_step,
        chain_ready=all(status.is_ready for status in per_step) and not running,
        missing_variables=list(dict.fromkeys(missing)),
    )


def prepare_step(step: PlayStep, variables: Mapping[str, str]) -> PreparedStep:
    """Compiles one step against an already merged bag; no upstream exemption applies."""
    system = interpolate(step.system_template, variables)
    user = interpolate(step.user_template, variables)
    missing_system = missing_variable_names(system.replaced)
    missing_user = missing_variable_names(user.replaced)
    is_ready = bool(system.compiled) and bool(user.compiled) and not missing_system and not missing_user
    return PreparedStep(
        is_ready=is_ready,
        system_text=system.compiled,
        user_text=user.compiled,
        missing_system_variables=missing_system,
        missing_user_variables=missing_user,
    )


def required_variables(steps: Sequence[PlayStep]) -> list[str]:
    """Variables a caller must collect before a play can run; prompt outputs are excluded."""
    names: list[str] = []
    for step in steps:
        names.extend(_missing_for_step(step, {}))
    return [name for name in dict.fromkeys(names) if not name.startswith("prompt")]
