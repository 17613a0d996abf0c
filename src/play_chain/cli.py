"""CLI entrypoint."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Any

import yaml

from play_chain.input_adaptors import FileVariables, InlineVariables, VariableSource
from play_chain.io_utils import parse_assignments, write_output
from play_chain.models.play_spec import PlayOutputType
from play_chain.orchestrator import Orchestrator
from play_chain.readiness import required_variables


def load_cli_variables(vars_file: str | None, assignments: list[str]) -> VariableSource:
    variables: dict[str, Any] = {}
    if vars_file is not None:
        variables.update(FileVariables(Path(vars_file)).load())
    variables.update(parse_assignments(assignments))
    return InlineVariables(variables)


def check_report(orch: Orchestrator, play_id: str, variables: VariableSource) -> dict[str, Any]:
    chain = orch.build_chain(play_id, variables)
    readiness = chain.evaluate()
    return {
        "play": play_id,
        "chain_ready": readiness.chain_ready,
        "required_variables": required_variables(chain.steps),
        "missing_variables": readiness.missing_variables,
        "smart_variables": orch.smart_plays_for(readiness.missing_variables),
        "steps": [
            {"step": f"prompt_{status.index + 1}", "ready": status.is_ready, "missing": status.missing_variables}
            for status in readiness.per_step
        ],
    }


def list_report(orch: Orchestrator) -> dict[str, Any]:
    return {
        "final": orch.registry.list_plays(PlayOutputType.FINAL),
        "variable": orch.registry.variable_plays(),
    }


async def run_play(orch: Orchestrator, play_id: str, variables: VariableSource, step: int | None) -> str:
    if step is None:
        return await orch.run(play_id, variables)
    chain = orch.build_chain(play_id, variables)
    output = await chain.run_with_dependencies(step - 1)
    return output.text


def main() -> None:
    parser = argparse.ArgumentParser(prog="play-chain")
    parser.add_argument("--plays-dir", type=str, default="plays")
    parser.add_argument("--play", type=str)
    parser.add_argument("--list", action="store_true", help="List available plays and exit")
    parser.add_argument("--vars", type=str, help="Path to a YAML or JSON variables file")
    parser.add_argument("--var", action="append", default=[], help="Variable as key=value (repeatable)")
    parser.add_argument("--step", type=int, help="Run only this 1-based step (and the earlier steps it uses)")
    parser.add_argument("--check", action="store_true", help="Report readiness without running anything")
    parser.add_argument("--output", type=str, help="Write the generated text to this file")
    parser.add_argument("--log-level", type=str, default="WARNING")
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level.upper())

    package_root = Path(__file__).resolve().parent
    play_roots = [Path(args.plays_dir), package_root / "plays"]
    orch = Orchestrator(play_roots)

    if args.list:
        print(yaml.safe_dump(list_report(orch), allow_unicode=True, default_flow_style=False, sort_keys=False).rstrip())
        return
    if not args.play:
        parser.error("--play is required unless --list is given")

    variables = load_cli_variables(args.vars, args.var)

    if args.check:
        report = check_report(orch, args.play, variables)
        print(yaml.safe_dump(report, allow_unicode=True, default_flow_style=False, sort_keys=False).rstrip())
        return

    # Async entrypoint
    import anyio

    out = anyio.run(run_play, orch, args.play, variables, args.step)
    if args.output:
        write_output(Path(args.output), out)
    else:
        print(out)
