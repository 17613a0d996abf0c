"""Pydantic model for one placeholder occurrence found during interpolation."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict


class ReplacedVariable(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    is_missing: bool
    is_optional: bool
    value: Optional[str] = None

    @property
    def is_required_missing(self) -> bool:
        return self.is_missing and not self.is_optional
