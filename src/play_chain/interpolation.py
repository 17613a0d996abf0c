"""Placeholder parsing and variable interpolation for step templates."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Mapping

from play_chain.models.replaced_variable import ReplacedVariable

# "{name}" is required, "{name?}" is optional. The first "}" closes the token.
PLACEHOLDER_RE = re.compile(r"\{([^{}]+)\}")
PROMPT_OUTPUT_RE = re.compile(r"^prompt_([1-9][0-9]*)$")


@dataclass(frozen=True)
class Placeholder:
    name: str
    is_optional: bool
    start: int
    end: int


@dataclass(frozen=True)
class InterpolationResult:
    compiled: str
    replaced: list[ReplacedVariable] = field(default_factory=list)

    @property
    def missing_required(self) -> list[str]:
        return missing_variable_names(self.replaced)


def _split_token(inner: str) -> tuple[str, bool]:
    if len(inner) > 1 and inner.endswith("?"):
        return inner[:-1], True
    return inner, False


def iter_placeholders(template: str) -> Iterator[Placeholder]:
    for match in PLACEHOLDER_RE.finditer(template):
        name, is_optional = _split_token(match.group(1))
        yield Placeholder(name=name, is_optional=is_optional, start=match.start(), end=match.end())


def interpolate(template: str, variables: Mapping[str, str]) -> InterpolationResult:
    """
    Substitutes every placeholder in one left-to-right pass.
    Unknown or empty names become "" and are reported missing. Each occurrence
    is reported separately, duplicates included.
    """
    replaced: list[ReplacedVariable] = []

    def _substitute(match: re.Match[str]) -> str:
        name, is_optional = _split_token(match.group(1))
        value = variables.get(name) or None
        replaced.append(
            ReplacedVariable(name=name, is_missing=value is None, is_optional=is_optional, value=value)
        )
        return value if value is not None else ""

    compiled = PLACEHOLDER_RE.sub(_substitute, template or "")
    return InterpolationResult(compiled=compiled, replaced=replaced)


def substitute_known(template: str, variables: Mapping[str, str], *, drop_optional: bool = False) -> str:
    """
    Replaces only placeholders that have a value; everything else stays literal,
    except unresolved optional placeholders when ``drop_optional`` is set.
    """

    def _substitute(match: re.Match[str]) -> str:
        name, is_optional = _split_token(match.group(1))
        value = variables.get(name)
        if value is not None:
            return value
        return "" if drop_optional and is_optional else match.group(0)

    return PLACEHOLDER_RE.sub(_substitute, template)


def missing_variable_names(replaced: Iterable[ReplacedVariable]) -> list[str]:
    """Required placeholders that had no value, de-duplicated in first-seen order."""
    names = [variable.name for variable in replaced if variable.is_required_missing]
    return list(dict.fromkeys(names))


def prompt_variable_name(index: int) -> str:
    """Variable name under which the output of the 0-based step ``index`` is exposed."""
    return f"prompt_{index + 1}"


def prompt_reference_index(name: str) -> int | None:
    """0-based step index referenced by a ``prompt_N`` name, or None."""
    match = PROMPT_OUTPUT_RE.match(name)
    if match is None:
        return None
    return int(match.group(1)) - 1
