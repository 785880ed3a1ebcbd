"""Structured output parsing.

Agents ask the model to end its answer with two optional tagged sections:

    <free-form answer>

    [SUGGESTIONS]
    - first suggestion
    - second suggestion

    [DATA]
    {"key": "value"}

A section runs from its marker to the next marker-like token that opens a
line, or the end of the text. Bracketed words inside a line, such as
``[ACT I]`` in a JSON string, do not end a section. Marker spellings are
configurable so prompts written for another language can use their own tags
(for example ``【建议】`` / ``【数据】``, ended by a line opening with ``【``).
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any

from novel_orchestrator.utils.exceptions import ParseError
from novel_orchestrator.utils.logging import get_logger

logger = get_logger(__name__)

_BULLET = re.compile(r"^\s*[-*•]\s*")
_FENCE = re.compile(r"^```[a-zA-Z]*\s*\n?(.*?)\n?```$", re.DOTALL)


@dataclass(frozen=True)
class SectionMarkers:
    """Section tags and the pattern that ends a section."""

    suggestions: str = "[SUGGESTIONS]"
    data: str = "[DATA]"
    # Regex for the start of any marker-like token; applied in multiline mode
    boundary: str = r"^[ \t]*\[[A-Z][A-Z_ ]*\]"

    @classmethod
    def cjk(cls) -> "SectionMarkers":
        return cls(suggestions="【建议】", data="【数据】", boundary=r"^[ \t]*【")

    def section_pattern(self, marker: str) -> re.Pattern[str]:
        return re.compile(
            re.escape(marker) + r"(.*?)(?=" + self.boundary + r"|\Z)",
            re.DOTALL | re.MULTILINE,
        )


@dataclass
class ParsedOutput:
    """Result of splitting a model answer into its parts."""

    content: str
    suggestions: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)
    has_data_section: bool = False


def parse_structured_output(
    text: str, markers: SectionMarkers | None = None
) -> ParsedOutput:
    """Split a model answer into main content, suggestions and data.

    Never raises. A data section that is not a JSON object yields ``{}``.
    """
    markers = markers or SectionMarkers()
    suggestions_re = markers.section_pattern(markers.suggestions)
    data_re = markers.section_pattern(markers.data)

    suggestions_match = suggestions_re.search(text)
    data_match = data_re.search(text)

    if not suggestions_match and not data_match:
        return ParsedOutput(content=text)

    suggestions: list[str] = []
    if suggestions_match:
        suggestions = _split_suggestions(suggestions_match.group(1))

    data: dict[str, Any] = {}
    if data_match:
        try:
            data = _decode_data(data_match.group(1))
        except ParseError as e:
            logger.warning("Failed to parse data section", error=str(e.cause))

    content = suggestions_re.sub("", text, count=1)
    content = data_re.sub("", content, count=1).strip()

    return ParsedOutput(
        content=content,
        suggestions=suggestions,
        data=data,
        has_data_section=data_match is not None,
    )


def _split_suggestions(section: str) -> list[str]:
    lines = (_BULLET.sub("", line).strip() for line in section.strip().splitlines())
    return [line for line in lines if line]


def _decode_data(section: str) -> dict[str, Any]:
    raw = section.strip()
    fenced = _FENCE.match(raw)
    if fenced:
        raw = fenced.group(1).strip()
    if not raw:
        return {}

    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ParseError("data", cause=e) from e

    if not isinstance(decoded, dict):
        logger.warning("Data section is not a JSON object", kind=type(decoded).__name__)
        return {}
    return decoded
