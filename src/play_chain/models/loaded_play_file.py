"""Loaded play markdown plus parsed metadata."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

import frontmatter

from play_chain.models.play_spec import PlaySpec
from play_chain.models.play_step import PlayStep


logger = logging.getLogger(__name__)

SECTION_HEADER_RE = re.compile(r"^(#{1,6})\s+(.+?)\s*$", re.MULTILINE)
STEP_ID_RE = re.compile(r"^[A-Za-z0-9_-]+$")


@dataclass
class LoadedPlayFile:
    spec: PlaySpec
    system_prompt: str
    user_sections: dict[str, str]  # step id -> user template
    system_sections: dict[str, str]  # step id -> system template

    def __init__(self, play: Path | str) -> None:
        post, source_label = load_play_frontmatter(play)
        spec = PlaySpec.model_validate(post.metadata)
        sections = parse_play_sections(post.content)
        if sections.first_section_start is not None and post.content[: sections.first_section_start].strip():
            logger.warning("Ignored text before the first play section in %s", source_label)
        self.spec = spec
        self.system_prompt = sections.system_prompt
        self.user_sections = sections.user_sections
        self.system_sections = sections.system_sections

    @classmethod
    def from_parts(
        cls,
        *,
        spec: PlaySpec,
        system_prompt: str = "",
        user_sections: dict[str, str] | None = None,
        system_sections: dict[str, str] | None = None,
    ) -> "LoadedPlayFile":
        obj = cls.__new__(cls)
        obj.spec = spec
        obj.system_prompt = system_prompt
        obj.user_sections = user_sections or {}
        obj.system_sections = system_sections or {}
        return obj

    def steps(self) -> list[PlayStep]:
        """
        Resolves every step's templates.
        Inline frontmatter templates win over body sections; steps without an
        id are addressed by their 1-based position ("## step:2").
        """
        resolved: list[PlayStep] = []
        for index, step in enumerate(self.spec.steps):
            key = step.id or str(index + 1)
            user_template = step.user_template or self.user_sections.get(key, "")
            system_template = step.system_template or self.system_sections.get(key, "") or self.system_prompt
            resolved.append(
                step.model_copy(update={"user_template": user_template, "system_template": system_template})
            )
        return resolved


@dataclass(frozen=True)
class ParsedPlaySections:
    system_prompt: str
    user_sections: dict[str, str]
    system_sections: dict[str, str]
    first_section_start: int | None


def load_play_frontmatter(play: Path | str) -> tuple[frontmatter.Post, str]:
    if isinstance(play, Path):
        post = frontmatter.load(str(play))
        return post, str(play)
    play_path = Path(play)
    if "\n" not in play and play_path.exists():
        post = frontmatter.load(str(play_path))
        return post, str(play_path)
    post = frontmatter.loads(play)
    return post, "<inline>"


def classify_section_header(header_text: str) -> tuple[str, str] | None:
    header = header_text.strip()
    if ":" in header:
        prefix, step_id = header.split(":", 1)
        prefix = prefix.strip().lower()
        step_id = step_id.strip()
        if prefix in ("step", "system") and step_id and STEP_ID_RE.match(step_id):
            return (prefix, step_id)
    normalized = re.sub(r"\s+", " ", header.lower().replace("_", " "))
    if normalized == "system prompt":
        return ("system_prompt", "system_prompt")
    return None


def parse_play_sections(markdown_body: str) -> ParsedPlaySections:
    recognized: list[tuple[str, str, int, int]] = []
    for match in SECTION_HEADER_RE.finditer(markdown_body):
        classified = classify_section_header(match.group(2))
        if classified is None:
            continue
        kind, key = classified
        recognized.append((kind, key, match.start(), match.end()))

    system_prompt = ""
    user_sections: dict[str, str] = {}
    system_sections: dict[str, str] = {}

    for index, (kind, key, _start, end) in enumerate(recognized):
        next_index = index + 1
        section_end = recognized[next_index][2] if next_index < len(recognized) else len(markdown_body)
        content = markdown_body[end:section_end].strip()
        if kind == "system_prompt":
            if not system_prompt:
                system_prompt = content
        elif kind == "step":
            user_sections[key] = content
        else:
            system_sections[key] = content

    first_section_start = recognized[0][2] if recognized else None
    return ParsedPlaySections(
        system_prompt=system_prompt,
        user_sections=user_sections,
        system_sections=system_sections,
        first_section_start=first_section_start,
    )
