"""Per-call input models.

An AgentContext is built for every call and never persisted directly; what is
persisted is the conversation turns and the AgentOutput it produces.
"""

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

# Upper bound on the prior-turn window carried in a context
MAX_HISTORY_TURNS = 20


class ProjectRef(BaseModel):
    """The novel project an agent call is about."""

    id: str = Field(..., min_length=1, description="Project identifier")
    title: str = Field(default="", description="Working title")
    genre: str = Field(default="", description="Genre")
    target_audience: str = Field(default="", description="Intended readership")
    description: str | None = Field(default=None, description="Project synopsis")
    status: str = Field(default="planning", description="planning, writing, editing, completed")
    word_count: int = Field(default=0, ge=0)
    chapter_count: int = Field(default=0, ge=0)


class ConversationTurn(BaseModel):
    """One message in an agent's conversation log."""

    role: Literal["user", "assistant", "system"]
    content: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    metadata: dict[str, Any] = Field(default_factory=dict)


class AgentContext(BaseModel):
    """Everything an agent needs to answer one request."""

    project: ProjectRef
    user_input: str = Field(default="", description="Free-text request from the writer")
    history: list[ConversationTurn] = Field(
        default_factory=list, description="Most recent prior turns, oldest first"
    )
    collaboration_data: dict[str, Any] = Field(
        default_factory=dict,
        description="Structured payloads from other agents, keyed by contributor",
    )
    characters: list[dict[str, Any]] = Field(default_factory=list)
    world_building: list[dict[str, Any]] = Field(default_factory=list)
    plot_lines: list[dict[str, Any]] = Field(default_factory=list)

    @field_validator("history")
    @classmethod
    def bound_history(cls, v: list[ConversationTurn]) -> list[ConversationTurn]:
        return v[-MAX_HISTORY_TURNS:]

    def with_collaboration(self, data: dict[str, Any]) -> "AgentContext":
        """Return a copy whose collaboration data is replaced by ``data``."""
        return self.model_copy(update={"collaboration_data": dict(data)})

    def with_history(self, turns: list[ConversationTurn], limit: int) -> "AgentContext":
        """Return a copy carrying at most ``limit`` of ``turns``."""
        window = turns[-limit:] if limit > 0 else []
        return self.model_copy(update={"history": window[-MAX_HISTORY_TURNS:]})

    def with_user_input(self, user_input: str) -> "AgentContext":
        """Return a copy with a different request text."""
        return self.model_copy(update={"user_input": user_input})

    def is_valid(self) -> bool:
        """A context needs a project and a non-blank request."""
        return bool(self.project.id and self.user_input.strip())
