"""Agent output and facade result models."""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

from .agent import Specialty
from .context import AgentContext


class AgentOutput(BaseModel):
    """The structured result of one agent call.

    Immutable once produced. ``data`` is the machine-usable payload other
    agents consume as collaboration data.
    """

    content: str = Field(default="", description="Main natural-language answer")
    suggestions: list[str] = Field(default_factory=list)
    data: dict[str, Any] = Field(default_factory=dict)
    confidence: float = Field(default=0.8, ge=0.0, le=1.0)
    requires_follow_up: bool = Field(default=False)
    collaboration_tags: list[Specialty] = Field(
        default_factory=list, description="Specialties likely to want this output"
    )
    agent_id: str | None = Field(default=None)
    specialty: Specialty | None = Field(default=None)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    model_config = {"frozen": True}

    @property
    def is_degraded(self) -> bool:
        """True for the fallback output produced when a call failed."""
        return self.confidence == 0.0 and self.requires_follow_up


class BatchRequest(BaseModel):
    """One item of a batch call."""

    agent_id: str
    context: AgentContext


class BatchResult(BaseModel):
    """Result slot for one batch item: either an output or an error."""

    agent_id: str
    output: AgentOutput | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ProbeResult(BaseModel):
    """Outcome of a connectivity test against an agent or provider."""

    success: bool
    latency_ms: float = Field(default=0.0, ge=0.0)
    error: str | None = None
