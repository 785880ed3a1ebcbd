"""API module.

Provides FastAPI routers, schemas, and dependencies.
"""

from .routes import (
    agent_router,
    api_router,
    collaboration_router,
    get_orchestrator,
    project_router,
    provider_router,
    specialty_router,
    workflow_router,
)
from .schemas import (
    APIResponse,
    BatchRequestBody,
    BatchResponse,
    CollaborationMessageRequest,
    CollaborationReplyResponse,
    ErrorDetail,
    ErrorResponse,
    ProbeAgentRequest,
    RunWorkflowRequest,
    SendMessageRequest,
    SetEnabledRequest,
    StartCollaborationRequest,
    UpdateAgentRequest,
    WorkflowRunResponse,
)

__all__ = [
    # Routers
    "api_router",
    "agent_router",
    "specialty_router",
    "workflow_router",
    "collaboration_router",
    "project_router",
    "provider_router",
    # Dependencies
    "get_orchestrator",
    # Schemas - Common
    "APIResponse",
    "ErrorDetail",
    "ErrorResponse",
    # Schemas - Agent
    "SendMessageRequest",
    "SetEnabledRequest",
    "UpdateAgentRequest",
    "ProbeAgentRequest",
    # Schemas - Batch
    "BatchRequestBody",
    "BatchResponse",
    # Schemas - Workflow
    "RunWorkflowRequest",
    "WorkflowRunResponse",
    # Schemas - Collaboration
    "StartCollaborationRequest",
    "CollaborationMessageRequest",
    "CollaborationReplyResponse",
]
