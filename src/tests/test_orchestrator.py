import sys
from pathlib import Path
from typing import Any

import pytest
import yaml

from play_chain import cli
from play_chain.errors import PlayChainError
from play_chain.errors import StepNotReadyError
from play_chain.generation import PydanticAITextGenerator
from play_chain.input_adaptors import InlineVariables
from play_chain.models import PlayOutputType
from play_chain.orchestrator import Orchestrator


class RecordingGenerator:
    def __init__(self, replies: dict[str, str] | None = None) -> None:
        self.replies = replies or {}
        self.calls: list[tuple[str, str, str | None, str | None]] = []

    async def __call__(
        self,
        system_text: str,
        user_text: str,
        provider: str | None = None,
        model: str | None = None,
    ) -> str:
        self.calls.append((system_text, user_text, provider, model))
        return self.replies.get(user_text, f"<{user_text}>")


RESEARCH_PLAY = """---
name: Research
variables:
  tone: warm
  greeting: "Hello {first_name}"
steps:
  - id: research
  - id: email
---

## System Prompt

Be {tone}.

## step:research

About {company}

## step:email

{greeting}. {prompt_1}
"""

TITLE_PLAY = """---
name: Title guess
output_type: variable
variable_name: guessed_title
steps:
  - id: guess
---

## System Prompt

s

## step:guess

Title of {first_name}
"""

EMPTY_PLAY = """---
name: Empty
steps: []
---
"""


def _write_plays(root: Path) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    (root / "research.md").write_text(RESEARCH_PLAY, encoding="utf-8")
    (root / "title.md").write_text(TITLE_PLAY, encoding="utf-8")
    (root / "empty.md").write_text(EMPTY_PLAY, encoding="utf-8")
    return root


def test_init_sets_registry(tmp_path: Path) -> None:
    orch = Orchestrator([tmp_path])

    assert orch.registry.play_roots == [tmp_path]
    assert Orchestrator().registry.play_roots == []


def test_build_chain_merges_defaults_and_resolves_nested(tmp_path: Path) -> None:
    orch = Orchestrator([_write_plays(tmp_path / "plays")], RecordingGenerator())

    chain = orch.build_chain("research", {"first_name": "Ann", "company": "Acme", "tone": "formal"})

    assert chain.variables == {
        "company": "Acme",
        "first_name": "Ann",
        "greeting": "Hello Ann",
        "tone": "formal",
    }
    assert chain.output_type == PlayOutputType.FINAL


def test_build_chain_uses_play_model_when_no_generator(tmp_path: Path) -> None:
    orch = Orchestrator([_write_plays(tmp_path / "plays")])

    chain = orch.build_chain("research", InlineVariables({"company": "Acme"}))

    assert isinstance(chain._generator, PydanticAITextGenerator)


@pytest.mark.anyio
async def test_run_returns_final_output(tmp_path: Path) -> None:
    generator = RecordingGenerator({"About Acme": "Acme makes robots."})
    orch = Orchestrator([_write_plays(tmp_path / "plays")], generator)

    result = await orch.run("research", InlineVariables({"first_name": "Ann", "company": "Acme"}))

    assert result == "<Hello Ann. Acme makes robots.>"
    assert generator.calls[0] == ("Be warm.", "About Acme", None, None)


@pytest.mark.anyio
async def test_run_raises_when_play_not_ready(tmp_path: Path) -> None:
    generator = RecordingGenerator()
    orch = Orchestrator([_write_plays(tmp_path / "plays")], generator)

    with pytest.raises(StepNotReadyError) as excinfo:
        await orch.run("research", {"first_name": "Ann"})

    assert excinfo.value.index == 0
    assert excinfo.value.missing_variables == ["company"]
    assert generator.calls == []


@pytest.mark.anyio
async def test_run_empty_play_has_no_output(tmp_path: Path) -> None:
    orch = Orchestrator([_write_plays(tmp_path / "plays")], RecordingGenerator())

    with pytest.raises(PlayChainError):
        await orch.run("empty")


@pytest.mark.anyio
async def test_resolve_smart_variables_adds_outputs(tmp_path: Path) -> None:
    generator = RecordingGenerator({"Title of Ann": "VP Sales"})
    orch = Orchestrator([_write_plays(tmp_path / "plays")], generator)

    bag = await orch.resolve_smart_variables(["title"], {"first_name": "Ann", "unused": ""})

    assert bag == {"first_name": "Ann", "guessed_title": "VP Sales"}


@pytest.mark.anyio
async def test_resolve_smart_variables_rejects_final_plays(tmp_path: Path) -> None:
    orch = Orchestrator([_write_plays(tmp_path / "plays")], RecordingGenerator())

    with pytest.raises(ValueError):
        await orch.resolve_smart_variables(["research"], {})


def test_smart_plays_for_maps_missing_variables_to_producers(tmp_path: Path) -> None:
    orch = Orchestrator([_write_plays(tmp_path / "plays")], RecordingGenerator())

    assert orch.smart_plays_for(["guessed_title", "company"]) == {"guessed_title": "title"}
    assert orch.smart_plays_for([]) == {}


def test_load_cli_variables_merges_file_and_assignments(tmp_path: Path) -> None:
    vars_path = tmp_path / "vars.yaml"
    vars_path.write_text("company: Acme\nfirst_name: Ann\n", encoding="utf-8")

    source = cli.load_cli_variables(str(vars_path), ["first_name=Bob"])

    assert source.load() == {"company": "Acme", "first_name": "Bob"}
    assert cli.load_cli_variables(None, []).load() == {}


def test_check_report_lists_readiness(tmp_path: Path) -> None:
    orch = Orchestrator([_write_plays(tmp_path / "plays")], RecordingGenerator())

    report = cli.check_report(orch, "research", InlineVariables({"first_name": "Ann"}))

    assert report["chain_ready"] is False
    assert report["required_variables"] == ["tone", "company", "greeting"]
    assert report["missing_variables"] == ["company"]
    assert report["smart_variables"] == {}
    assert report["steps"][0] == {"step": "prompt_1", "ready": False, "missing": ["company"]}
    assert report["steps"][1] == {"step": "prompt_2", "ready": True, "missing": []}


@pytest.mark.anyio
async def test_run_play_single_step_runs_dependencies(tmp_path: Path) -> None:
    generator = RecordingGenerator()
    orch = Orchestrator([_write_plays(tmp_path / "plays")], generator)
    variables = InlineVariables({"first_name": "Ann", "company": "Acme"})

    first = await cli.run_play(orch, "research", variables, 1)
    second = await cli.run_play(orch, "research", variables, 2)
    full = await cli.run_play(orch, "research", variables, None)

    assert first == "<About Acme>"
    assert second == "<Hello Ann. <About Acme>>"
    assert full == second


def test_main_check_prints_yaml(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    plays_dir = _write_plays(tmp_path / "plays")
    argv: list[Any] = ["play-chain", "--plays-dir", str(plays_dir), "--play", "research", "--check"]
    monkeypatch.setattr(sys, "argv", argv)

    cli.main()

    report = yaml.safe_load(capsys.readouterr().out)
    assert report["play"] == "research"
    assert report["missing_variables"] == ["company"]


def test_main_writes_output_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    plays_dir = _write_plays(tmp_path / "plays")
    out_path = tmp_path / "out" / "result.txt"
    generator = RecordingGenerator()

    def _orchestrator_with_fake(play_roots: list[Path]) -> Orchestrator:
        return Orchestrator(play_roots, generator)

    monkeypatch.setattr(cli, "Orchestrator", _orchestrator_with_fake)
    monkeypatch.setattr(
        sys,
        "argv",
        [
            "play-chain",
            "--plays-dir",
            str(plays_dir),
            "--play",
            "title",
            "--var",
            "first_name=Ann",
            "--output",
            str(out_path),
        ],
    )

    cli.main()

    assert out_path.read_text(encoding="utf-8") == "<Title of Ann>"


def test_main_list_prints_plays_by_output_type(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    plays_dir = _write_plays(tmp_path / "plays")
    monkeypatch.setattr(sys, "argv", ["play-chain", "--plays-dir", str(plays_dir), "--list"])

    cli.main()

    report = yaml.safe_load(capsys.readouterr().out)
    assert {"research", "empty", "intro_email"} <= set(report["final"])
    assert report["variable"] == {"guessed_title": "title"}


def test_main_requires_play_without_list(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(sys, "argv", ["play-chain"])

    with pytest.raises(SystemExit):
        cli.main()
