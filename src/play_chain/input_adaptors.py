"""Variable sources for plays."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

from play_chain.io_utils import load_variables_file


class VariableSource:
    def load(self) -> dict[str, Any]:
        raise NotImplementedError("VariableSource.load must be implemented by subclasses.")


class FileVariables(VariableSource):
    def __init__(self, path: Path) -> None:
        self._variables = load_variables_file(path)

    def load(self) -> dict[str, Any]:
        return dict(self._variables)


class InlineVariables(VariableSource):
    def __init__(self, variables: Mapping[str, Any]) -> None:
        self._variables = dict(variables)

    def load(self) -> dict[str, Any]:
        return dict(self._variables)
