"""Data models package.

This module defines all data models used in the Novel Orchestrator system.
"""

from .agent import (
    AgentDescriptor,
    AgentSummary,
    ProviderDescriptor,
    ProviderIdentity,
    Specialty,
)
from .collaboration import (
    CollaborationMessage,
    CollaborationMessageType,
    CollaborationSession,
    SessionStatus,
)
from .context import (
    MAX_HISTORY_TURNS,
    AgentContext,
    ConversationTurn,
    ProjectRef,
)
from .output import (
    AgentOutput,
    BatchRequest,
    BatchResult,
    ProbeResult,
)
from .workflow import (
    WorkflowDefinition,
    WorkflowStep,
)

__all__ = [
    # Agent models
    "AgentDescriptor",
    "AgentSummary",
    "ProviderDescriptor",
    "ProviderIdentity",
    "Specialty",
    # Context models
    "MAX_HISTORY_TURNS",
    "AgentContext",
    "ConversationTurn",
    "ProjectRef",
    # Output models
    "AgentOutput",
    "BatchRequest",
    "BatchResult",
    "ProbeResult",
    # Collaboration models
    "CollaborationMessage",
    "CollaborationMessageType",
    "CollaborationSession",
    "SessionStatus",
    # Workflow models
    "WorkflowDefinition",
    "WorkflowStep",
]
