"""API schema definitions.

Request/response schemas used by the FastAPI endpoints.
"""

from typing import Any

from pydantic import BaseModel, Field

from novel_orchestrator.models import (
    AgentContext,
    AgentOutput,
    BatchRequest,
    BatchResult,
    CollaborationMessageType,
    Specialty,
)

# =============================================================================
# Common Schemas
# =============================================================================


class APIResponse(BaseModel):
    """Standard API response envelope."""

    success: bool = Field(..., description="Whether the request succeeded")
    data: Any = Field(default=None, description="Response payload")
    error: str | None = Field(default=None, description="Error message")
    metadata: dict[str, Any] = Field(
        default_factory=dict, description="Additional metadata"
    )


class ErrorDetail(BaseModel):
    """Error body inside an error envelope."""

    code: str = Field(..., description="Error class name")
    message: str = Field(..., description="Human-readable message")
    details: dict[str, Any] = Field(default_factory=dict, description="Error details")


class ErrorResponse(BaseModel):
    """Error response envelope."""

    success: bool = Field(default=False, description="Always False")
    error: ErrorDetail
    metadata: dict[str, Any] = Field(default_factory=dict)


# =============================================================================
# Agent Schemas
# =============================================================================


class SendMessageRequest(BaseModel):
    """Request to an agent or a specialty."""

    context: AgentContext = Field(..., description="Project context and user input")


class SetEnabledRequest(BaseModel):
    """Enable or disable an agent."""

    enabled: bool = Field(..., description="New enabled state")


class UpdateAgentRequest(BaseModel):
    """Partial agent configuration update. Unset fields are left unchanged."""

    model_config = {"extra": "forbid"}

    name: str | None = None
    description: str | None = None
    system_prompt: str | None = None
    enabled: bool | None = None
    llm: dict[str, Any] | None = Field(default=None, description="Model configuration")

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class ProbeAgentRequest(BaseModel):
    """Connectivity probe for an agent."""

    context: AgentContext = Field(..., description="Sample project context")


# =============================================================================
# Batch Schemas
# =============================================================================


class BatchRequestBody(BaseModel):
    """Several independent agent requests."""

    requests: list[BatchRequest] = Field(..., min_length=1)


class BatchResponse(BaseModel):
    """One result per request, in request order."""

    results: list[BatchResult] = Field(default_factory=list)
    succeeded: int = 0
    failed: int = 0

    @classmethod
    def from_results(cls, results: list[BatchResult]) -> "BatchResponse":
        succeeded = sum(1 for result in results if result.ok)
        return cls(results=results, succeeded=succeeded, failed=len(results) - succeeded)


# =============================================================================
# Workflow Schemas
# =============================================================================


class RunWorkflowRequest(BaseModel):
    """Run a workflow against a project."""

    context: AgentContext


class WorkflowRunResponse(BaseModel):
    """Outputs of a workflow run keyed by step id."""

    workflow_id: str
    outputs: dict[str, AgentOutput] = Field(default_factory=dict)
    completed: list[str] = Field(default_factory=list, description="Steps with usable output")
    skipped: list[str] = Field(default_factory=list, description="Steps with no output")


# =============================================================================
# Collaboration Schemas
# =============================================================================


class StartCollaborationRequest(BaseModel):
    """Open a collaboration session."""

    project_id: str = Field(..., min_length=1)
    topic: str = Field(default="")
    specialties: list[Specialty] = Field(..., min_length=1)


class CollaborationMessageRequest(BaseModel):
    """Message sent from one agent to another inside a session."""

    from_agent: str = Field(..., min_length=1)
    to_agent: str = Field(..., min_length=1)
    message_type: CollaborationMessageType = Field(default=CollaborationMessageType.REQUEST)
    content: str = Field(default="", description="Requests carry an [action] tag")
    data: dict[str, Any] = Field(default_factory=dict)


class CollaborationReplyResponse(BaseModel):
    """The target agent's reply, if it produced one."""

    session_id: str
    reply: AgentOutput | None = None
