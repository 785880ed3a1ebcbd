"""Agent and provider descriptor models.

Descriptors are the configuration-facing half of an agent: who it is, which
specialty it serves, and which model backend answers for it. They are created
from configuration at startup and changed only through explicit updates.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class Specialty(str, Enum):
    """The closed set of tasks an agent can perform."""

    THEME = "theme"  # theme and market analysis
    OUTLINE = "outline"  # story structure and plot lines
    WORLD = "world"  # setting, history, culture
    CHARACTER = "character"  # character profiles and arcs
    RELATIONSHIP = "relationship"  # relationship networks
    DIALOGUE = "dialogue"  # voice and dialogue style
    PLOT = "plot"  # plot review and pacing


class ProviderIdentity(str, Enum):
    """Model services with a backend adapter."""

    OPENAI = "openai"
    DEEPSEEK = "deepseek"
    OPENROUTER = "openrouter"
    OLLAMA = "ollama"
    ANTHROPIC = "anthropic"


class ProviderDescriptor(BaseModel):
    """Connection settings and request limits for one (provider, model) pair.

    Several descriptors may share a provider identity with different models;
    each pair is a distinct backend addressed by ``key``.
    """

    provider: ProviderIdentity = Field(..., description="Model service identity")
    model: str = Field(..., min_length=1, description="Model name")
    api_key: str | None = Field(default=None, description="Credential, if required")
    base_url: str | None = Field(default=None, description="Override API base URL")
    max_tokens: int = Field(default=4000, ge=1, description="Maximum response tokens")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0, description="Sampling temperature")
    enabled: bool = Field(default=True, description="Whether the backend may be used")
    timeout_seconds: float | None = Field(
        default=None, gt=0, description="Request timeout; adapter default when unset"
    )

    model_config = {"extra": "forbid"}

    @property
    def key(self) -> str:
        """Gateway key for this backend."""
        return f"{self.provider.value}-{self.model}"


class AgentDescriptor(BaseModel):
    """Configuration of one specialty agent."""

    id: str = Field(..., min_length=1, description="Agent unique identifier")
    name: str = Field(..., description="Display name")
    specialty: Specialty = Field(..., description="Task category")
    description: str = Field(default="", description="What the agent does")
    system_prompt: str = Field(default="", description="Prompt template (persona)")
    llm: ProviderDescriptor = Field(..., description="Model configuration")
    enabled: bool = Field(default=True, description="Whether the agent is live")

    model_config = {"extra": "forbid"}

    def updated(self, **changes: Any) -> "AgentDescriptor":
        """Return a validated copy with ``changes`` applied."""
        data = self.model_dump()
        data.update(changes)
        return AgentDescriptor.model_validate(data)


class AgentSummary(BaseModel):
    """Public summary of a live agent."""

    id: str
    name: str
    specialty: Specialty
    description: str = ""

    @classmethod
    def from_descriptor(cls, descriptor: AgentDescriptor) -> "AgentSummary":
        """Build a summary from a descriptor."""
        return cls(
            id=descriptor.id,
            name=descriptor.name,
            specialty=descriptor.specialty,
            description=descriptor.description,
        )
