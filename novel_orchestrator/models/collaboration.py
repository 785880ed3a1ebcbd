"""Collaboration message and session models."""

import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class CollaborationMessageType(str, Enum):
    """Kind of agent-to-agent message."""

    REQUEST = "request"  # ask a peer to run an action
    RESPONSE = "response"  # a peer's answer
    NOTIFICATION = "notification"  # informational
    DATA_SHARE = "data_share"  # push structured data


class SessionStatus(str, Enum):
    """Collaboration session status."""

    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


class CollaborationMessage(BaseModel):
    """A message exchanged between two agents."""

    from_agent: str = Field(..., description="Sender agent id")
    to_agent: str = Field(..., description="Recipient agent id")
    message_type: CollaborationMessageType = Field(default=CollaborationMessageType.REQUEST)
    content: str = Field(default="", description="Message text; requests carry an [action] tag")
    data: dict[str, Any] = Field(default_factory=dict)
    project_id: str | None = Field(default=None)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    model_config = {"extra": "forbid"}

    def involves(self, agent_id: str) -> bool:
        return agent_id in (self.from_agent, self.to_agent)


class CollaborationSession(BaseModel):
    """A free-form collaboration between several agents on one topic.

    The message log is append-only; past entries are never rewritten.
    """

    id: str = Field(default_factory=lambda: f"collab_{uuid.uuid4().hex[:12]}")
    project_id: str
    topic: str = ""
    participants: list[str] = Field(default_factory=list, description="Agent ids")
    messages: list[CollaborationMessage] = Field(default_factory=list)
    shared_context: dict[str, Any] = Field(default_factory=dict)
    status: SessionStatus = Field(default=SessionStatus.ACTIVE)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    model_config = {"extra": "forbid"}

    def append(self, message: CollaborationMessage) -> None:
        """Append a message to the log."""
        self.messages.append(message)
        self.updated_at = datetime.now(UTC)

    def share(self, contributor: str, data: dict[str, Any]) -> None:
        """Record ``data`` under ``contributor`` in the shared context."""
        self.shared_context[contributor] = data
        self.updated_at = datetime.now(UTC)

    def set_status(self, status: SessionStatus) -> None:
        self.status = status
        self.updated_at = datetime.now(UTC)
