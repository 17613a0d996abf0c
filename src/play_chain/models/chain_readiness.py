"""Readiness of a whole chain of steps."""

from __future__ import annotations

from pydantic import BaseModel, Field

from play_chain.models.step_readiness import StepReadiness


class ChainReadiness(BaseModel):
    per_step: list[StepReadiness] = Field(default_factory=list)
    chain_ready: bool
    missing_variables: list[str] = Field(default_factory=list)

    def is_step_ready(self, index: int) -> bool:
        if not 0 <= index < len(self.per_step):
            raise IndexError(f"Step index {index} out of range for {len(self.per_step)} steps.")
        return self.per_step[index].is_ready
