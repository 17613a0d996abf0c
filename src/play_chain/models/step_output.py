"""Pydantic model for a memoized step result."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class StepOutput(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    system_text: str = ""
    user_text: str = ""
