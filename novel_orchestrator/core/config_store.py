"""Configuration Provider - agent, provider and workflow definitions.

The orchestrator reads its agents, model backends and extra workflows from a
ConfigurationProvider, and writes agent changes (enable, disable, update)
back through it. Two implementations ship: one backed by a YAML file and one
held in memory.

YAML layout::

    providers:
      - provider: openai
        model: gpt-4o-mini
    default_provider: openai-gpt-4o-mini
    agents:
      - id: theme-planner
        name: Theme Planner
        specialty: theme
        llm: {provider: openai, model: gpt-4o-mini}
    workflows:
      - id: quick-review
        steps:
          - specialty: plot
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import yaml
from pydantic import ValidationError

from novel_orchestrator.models import (
    AgentDescriptor,
    ProviderDescriptor,
    WorkflowDefinition,
)
from novel_orchestrator.utils.exceptions import (
    InvalidConfigurationError,
    MissingConfigurationError,
)
from novel_orchestrator.utils.logging import get_logger

logger = get_logger(__name__)


@runtime_checkable
class ConfigurationProvider(Protocol):
    """Protocol for the source of agent and backend configuration."""

    def get_agents(self) -> list[AgentDescriptor]:
        """All configured agents, enabled or not."""
        ...

    def get_agent(self, agent_id: str) -> AgentDescriptor | None:
        """One agent's configuration, or None."""
        ...

    def set_agents(self, agents: list[AgentDescriptor]) -> None:
        """Replace the configured agents."""
        ...

    def get_providers(self) -> list[ProviderDescriptor]:
        """All configured model backends."""
        ...

    def get_default_provider(self) -> str | None:
        """Key of the backend used when a request names none."""
        ...

    def get_workflows(self) -> list[WorkflowDefinition]:
        """Workflow definitions beyond the built-in ones."""
        ...


class InMemoryConfigurationProvider:
    """Configuration held in memory. Used by tests and embedding callers."""

    def __init__(
        self,
        agents: list[AgentDescriptor] | None = None,
        providers: list[ProviderDescriptor] | None = None,
        workflows: list[WorkflowDefinition] | None = None,
        default_provider: str | None = None,
    ) -> None:
        self._agents = list(agents or [])
        self._providers = list(providers or [])
        self._workflows = list(workflows or [])
        self._default_provider = default_provider

    def get_agents(self) -> list[AgentDescriptor]:
        return list(self._agents)

    def get_agent(self, agent_id: str) -> AgentDescriptor | None:
        return _find_agent(self._agents, agent_id)

    def set_agents(self, agents: list[AgentDescriptor]) -> None:
        self._agents = list(agents)

    def get_providers(self) -> list[ProviderDescriptor]:
        return list(self._providers)

    def get_default_provider(self) -> str | None:
        return self._default_provider

    def get_workflows(self) -> list[WorkflowDefinition]:
        return list(self._workflows)


class YamlConfigurationProvider(InMemoryConfigurationProvider):
    """Configuration loaded from a YAML file.

    With ``writable=True`` agent changes are written back to the file;
    otherwise they live only for the lifetime of the process.
    """

    def __init__(self, path: str | Path, writable: bool = False) -> None:
        """Load configuration from ``path``.

        Raises:
            MissingConfigurationError: If the file does not exist.
            InvalidConfigurationError: If the file is not valid YAML or a
                definition fails validation.
            InvalidWorkflowError: If a workflow is not a valid dependency DAG.
        """
        self.path = Path(path)
        self.writable = writable
        super().__init__()
        self.reload()

    def reload(self) -> None:
        """Re-read the file, replacing everything held in memory."""
        data = self._read()
        source = str(self.path)
        self._providers = [
            _validate(ProviderDescriptor, item, "providers", source)
            for item in _section(data, "providers", source)
        ]
        self._agents = [
            _validate(AgentDescriptor, item, "agents", source)
            for item in _section(data, "agents", source)
        ]
        self._workflows = [
            _validate(WorkflowDefinition, item, "workflows", source)
            for item in _section(data, "workflows", source)
        ]
        self._default_provider = data.get("default_provider")
        logger.info(
            "Configuration loaded",
            path=source,
            agents=len(self._agents),
            providers=len(self._providers),
            workflows=len(self._workflows),
        )

    def set_agents(self, agents: list[AgentDescriptor]) -> None:
        super().set_agents(agents)
        if self.writable:
            self._write()

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            raise MissingConfigurationError(
                str(self.path), f"Configuration file not found: {self.path}"
            )
        if not self.path.is_file():
            raise InvalidConfigurationError(
                "path", str(self.path), f"Configuration path is not a file: {self.path}"
            )

        try:
            with open(self.path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise InvalidConfigurationError(
                "path", str(self.path), f"Invalid YAML in {self.path}: {e}"
            ) from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise InvalidConfigurationError(
                "path", str(self.path), "YAML content must be a dictionary"
            )
        return data

    def _write(self) -> None:
        data = self._read()
        data["agents"] = [
            agent.model_dump(mode="json", exclude_none=True) for agent in self._agents
        ]
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, allow_unicode=True, sort_keys=False)
        logger.info("Agent configuration saved", path=str(self.path))


def _find_agent(agents: list[AgentDescriptor], agent_id: str) -> AgentDescriptor | None:
    for agent in agents:
        if agent.id == agent_id:
            return agent
    return None


def _section(data: dict[str, Any], key: str, source: str) -> list[dict[str, Any]]:
    items = data.get(key) or []
    if not isinstance(items, list):
        raise InvalidConfigurationError(key, type(items).__name__, f"{key} must be a list ({source})")
    return items


def _validate(model: Any, item: Any, key: str, source: str) -> Any:
    try:
        return model.model_validate(item)
    except ValidationError as e:
        raise InvalidConfigurationError(
            key, item, f"Invalid {key} entry in {source}: {e}"
        ) from e
