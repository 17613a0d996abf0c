"""Exceptions raised by the play chain engine."""

from __future__ import annotations


class PlayChainError(Exception):
    pass


class StepNotReadyError(PlayChainError):
    """Raised when a step is run before everything it needs is known. Not a transient fault."""

    def __init__(self, index: int, missing_variables: list[str] | None = None) -> None:
        self.index = index
        self.missing_variables = list(missing_variables or [])
        detail = f" (missing: {', '.join(self.missing_variables)})" if self.missing_variables else ""
        super().__init__(f"Step prompt_{index + 1} is not ready to run{detail}.")


class UnsupportedProviderError(PlayChainError, ValueError):
    pass
