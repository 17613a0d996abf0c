"""Pydantic model for a single play step."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

# A change to any of these clears the memoized output of the step.
WATCHED_FIELDS: tuple[str, ...] = ("user_template", "system_template", "model_provider", "model_name")


class PlayStep(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    name: Optional[str] = None
    user_template: str = Field(
        default="",
        validation_alias=AliasChoices("user_template", "user_instructions_template"),
    )
    system_template: str = Field(
        default="",
        validation_alias=AliasChoices("system_template", "system_instructions_template"),
    )
    model_provider: Optional[str] = None
    model_name: Optional[str] = None

    @field_validator("user_template", "system_template", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        if value is None:
            return ""
        return value

    def watched_values(self) -> tuple[Any, ...]:
        return tuple(getattr(self, field) for field in WATCHED_FIELDS)
