"""Specialty strategies.

A strategy is the specialty-specific half of an agent: its persona, the task
prompt it builds from a context, the data fields it keeps from a parsed
answer, the peers its output is relevant to, and the collaboration actions it
answers. Strategies are plain data plus prompt functions; the Agent class
supplies everything that is common.
"""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field
from typing import Any, Callable

from novel_orchestrator.models.agent import Specialty
from novel_orchestrator.models.collaboration import (
    CollaborationMessage,
    CollaborationMessageType,
)
from novel_orchestrator.models.context import AgentContext

ActionPromptBuilder = Callable[[CollaborationMessage, AgentContext], str]

# Confidence reported for collaboration-action outputs
COLLABORATION_CONFIDENCE = 0.8


@dataclass(frozen=True)
class CollaborationAction:
    """A request a peer can send, identified by a bracketed tag."""

    tag: str
    label: str
    build_prompt: ActionPromptBuilder
    fields: dict[str, Any] = field(default_factory=dict)

    @property
    def marker(self) -> str:
        return f"[{self.tag}]"


@dataclass(frozen=True)
class SpecialtyStrategy:
    """Everything that makes one specialty different from another."""

    specialty: Specialty
    role: str
    persona: str
    task: str
    focus: tuple[str, ...]
    fields: dict[str, Any]
    data_example: dict[str, Any]
    confidence: float
    collaboration_tags: tuple[Specialty, ...]
    actions: tuple[CollaborationAction, ...] = ()

    def build_task_prompt(self, context: AgentContext) -> str:
        """Build the user message for a plain request."""
        lines = [
            f"Please carry out {self.task} for the following novel project.",
            "",
            f"User request: {context.user_input}",
            "",
            "Project background:",
            *project_lines(context, with_counts=True),
            "",
            f"Answer from the perspective of a {self.role}. Focus on:",
        ]
        lines.extend(f"{i}. {item}" for i, item in enumerate(self.focus, start=1))
        return "\n".join(lines)

    def match_action(self, message: CollaborationMessage) -> CollaborationAction | None:
        """Return the first action whose tag appears in a request message."""
        if message.message_type != CollaborationMessageType.REQUEST:
            return None
        for action in self.actions:
            if action.marker in message.content:
                return action
        return None


def shape_fields(data: dict[str, Any], fields: dict[str, Any]) -> dict[str, Any]:
    """Pick ``fields`` from ``data``, substituting a copy of the default for falsy values."""
    if not data:
        return {}
    return {
        name: data.get(name) or copy.deepcopy(default)
        for name, default in fields.items()
    }


def project_lines(context: AgentContext, with_counts: bool = False) -> list[str]:
    """Render the project reference as bullet lines."""
    project = context.project
    lines = [
        f"- Title: {project.title or 'untitled'}",
        f"- Genre: {project.genre or 'unspecified'}",
        f"- Target audience: {project.target_audience or 'unspecified'}",
        f"- Description: {project.description or 'none yet'}",
    ]
    if with_counts:
        if context.characters:
            lines.append(f"- Existing characters: {len(context.characters)}")
        if context.world_building:
            lines.append(f"- Existing world-building entries: {len(context.world_building)}")
        if context.plot_lines:
            lines.append(f"- Existing plot lines: {len(context.plot_lines)}")
    return lines


def to_json(value: Any) -> str:
    """Pretty JSON for embedding in prompts."""
    return json.dumps(value, ensure_ascii=False, indent=2, default=str)


def find_by_id(items: list[dict[str, Any]], item_id: Any) -> dict[str, Any] | None:
    for item in items:
        if item.get("id") == item_id:
            return item
    return None


def summarize_entries(items: list[dict[str, Any]], empty: str) -> str:
    """One line per entry as ``title: description``, or ``empty``."""
    if not items:
        return empty
    return "\n".join(
        f"{item.get('title') or item.get('name') or item.get('id', '?')}: "
        f"{item.get('description', '')}"
        for item in items
    )
