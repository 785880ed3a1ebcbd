"""Agent module - the specialty agents and how they are built.

This module provides:
- Agent: one specialty agent bound to a model backend
- SpecialtyStrategy / CollaborationAction: the specialty-specific half
- AgentFactory: builds agents from descriptors
- parse_structured_output: splits a model answer into its sections
"""

from novel_orchestrator.agents.base import RECOVERY_SUGGESTIONS, Agent, render_collaboration
from novel_orchestrator.agents.factory import AgentFactory
from novel_orchestrator.agents.parsing import (
    ParsedOutput,
    SectionMarkers,
    parse_structured_output,
)
from novel_orchestrator.agents.specialties import DEFAULT_STRATEGIES
from novel_orchestrator.agents.strategy import (
    COLLABORATION_CONFIDENCE,
    CollaborationAction,
    SpecialtyStrategy,
)

__all__ = [
    # Agent
    "Agent",
    "RECOVERY_SUGGESTIONS",
    "render_collaboration",
    # Factory
    "AgentFactory",
    "DEFAULT_STRATEGIES",
    # Strategy
    "COLLABORATION_CONFIDENCE",
    "CollaborationAction",
    "SpecialtyStrategy",
    # Parsing
    "ParsedOutput",
    "SectionMarkers",
    "parse_structured_output",
]
