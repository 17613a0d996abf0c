"""Variable bag helpers."""

from __future__ import annotations

import json
from typing import Any, Mapping

from play_chain.interpolation import PLACEHOLDER_RE, substitute_known


def clean_variables(variables: Mapping[str, Any] | None) -> dict[str, str]:
    """
    Drops unset entries (None or "") and returns a key-sorted bag of strings.
    "Unset" and "empty" are the same thing to the engine.
    """
    source = variables or {}
    cleaned: dict[str, str] = {}
    for key in sorted(source, key=str):
        value = source[key]
        if value is None or value == "":
            continue
        cleaned[str(key)] = value if isinstance(value, str) else str(value)
    return cleaned


def variables_key(variables: Mapping[str, str]) -> str:
    """Canonical serialisation used to detect a changed bag."""
    return json.dumps(dict(variables), sort_keys=True, ensure_ascii=False)


def resolve_nested_variables(variables: Mapping[str, str]) -> dict[str, str]:
    """
    Resolves values that reference other variables, e.g. {"greeting": "Hi {name}"}.
    Values with references are resolved first, then every value gets one more pass.
    Unknown required placeholders are kept as written; unresolved optional ones
    are removed so they never reach a prompt.
    """
    processed = dict(variables)
    with_references = [key for key, value in processed.items() if PLACEHOLDER_RE.search(value)]
    for key in with_references:
        processed[key] = substitute_known(processed[key], processed, drop_optional=True)
    for key in list(processed):
        processed[key] = substitute_known(processed[key], processed, drop_optional=True)
    return processed
