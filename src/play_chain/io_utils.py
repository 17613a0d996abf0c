"""Input/output helpers."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml


def load_variables_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(path)
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        raw = json.loads(text)
    else:
        raw = yaml.safe_load(text)
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError(f"Variables file {path} must contain a mapping, got {type(raw).__name__}.")
    return raw


def parse_assignments(pairs: list[str]) -> dict[str, str]:
    """Parses ["name=Ann", "company=Acme"] into a mapping; later pairs win."""
    out: dict[str, str] = {}
    for pair in pairs:
        if "=" not in pair:
            raise ValueError(f"Expected key=value, got {pair!r}")
        key, value = pair.split("=", 1)
        key = key.strip()
        if not key:
            raise ValueError(f"Missing variable name in {pair!r}")
        out[key] = value
    return out


def write_output(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
