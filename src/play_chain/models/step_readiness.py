"""Readiness of a single step."""

from __future__ import annotations

from pydantic import BaseModel, Field


class StepReadiness(BaseModel):
    index: int
    is_ready: bool
    missing_variables: list[str] = Field(default_factory=list)
