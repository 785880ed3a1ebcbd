"""Core components package.

This package contains the core components of the Novel Orchestrator system.
"""

from .collaboration import (
    COLLABORATION_HISTORY_LIMIT,
    CollaborationStore,
    InMemoryCollaborationStore,
)
from .config_store import (
    ConfigurationProvider,
    InMemoryConfigurationProvider,
    YamlConfigurationProvider,
)
from .orchestrator import TEST_INPUT, Orchestrator
from .registry import AgentRegistry
from .workflow import (
    BUILTIN_WORKFLOWS,
    STAGE_WORKFLOWS,
    WorkflowCatalog,
    WorkflowEngine,
)

__all__ = [
    # Registry
    "AgentRegistry",
    # Collaboration Store
    "COLLABORATION_HISTORY_LIMIT",
    "CollaborationStore",
    "InMemoryCollaborationStore",
    # Configuration
    "ConfigurationProvider",
    "InMemoryConfigurationProvider",
    "YamlConfigurationProvider",
    # Workflows
    "BUILTIN_WORKFLOWS",
    "STAGE_WORKFLOWS",
    "WorkflowCatalog",
    "WorkflowEngine",
    # Orchestrator
    "Orchestrator",
    "TEST_INPUT",
]
