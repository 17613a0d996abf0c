"""Compiled templates of one step, ready to hand to a text generator."""

from __future__ import annotations

from pydantic import BaseModel, Field


class PreparedStep(BaseModel):
    is_ready: bool
    system_text: str
    user_text: str
    missing_system_variables: list[str] = Field(default_factory=list)
    missing_user_variables: list[str] = Field(default_factory=list)
