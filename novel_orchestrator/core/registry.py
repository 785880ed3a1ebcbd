"""Agent Registry - live agent instances and lookup.

This module holds the agents the orchestrator can call, in registration
order, and resolves them by id or by specialty. Disabled agents stay
registered but are invisible to resolution.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from novel_orchestrator.models import AgentSummary, Specialty
from novel_orchestrator.utils.exceptions import AgentNotFoundError
from novel_orchestrator.utils.logging import get_logger

if TYPE_CHECKING:
    from novel_orchestrator.agents.base import Agent

logger = get_logger(__name__)


class AgentRegistry:
    """Registry for managing live agents.

    Owned by a single orchestrator, which is its only writer; there is no
    locking.
    """

    def __init__(self) -> None:
        self._agents: dict[str, Agent] = {}

    def register(self, agent: Agent) -> AgentSummary:
        """Register an agent, replacing any agent with the same id.

        A replacement keeps the original registration position.

        Args:
            agent: The agent to register.

        Returns:
            Summary of the registered agent.
        """
        replaced = agent.id in self._agents
        self._agents[agent.id] = agent
        logger.info(
            "Agent registered",
            agent_id=agent.id,
            specialty=agent.specialty.value,
            replaced=replaced,
        )
        return agent.summary()

    def unregister(self, agent_id: str) -> bool:
        """Unregister an agent.

        Returns:
            True if the agent was unregistered, False if not found.
        """
        if self._agents.pop(agent_id, None) is None:
            return False
        logger.info("Agent unregistered", agent_id=agent_id)
        return True

    def get(self, agent_id: str) -> Agent:
        """Get an agent by id, enabled or not.

        Raises:
            AgentNotFoundError: If the agent is not registered.
        """
        if agent_id not in self._agents:
            raise AgentNotFoundError(agent_id)
        return self._agents[agent_id]

    def resolve_by_id(self, agent_id: str) -> Agent | None:
        """Return the agent if it is registered and enabled."""
        agent = self._agents.get(agent_id)
        if agent is None or not agent.is_enabled:
            return None
        return agent

    def resolve_by_specialty(self, specialty: Specialty) -> Agent | None:
        """Return the first enabled agent of ``specialty`` in registration order."""
        for agent in self._agents.values():
            if agent.specialty == specialty and agent.is_enabled:
                return agent
        return None

    def list_enabled(self) -> list[AgentSummary]:
        return [agent.summary() for agent in self._agents.values() if agent.is_enabled]

    def list_all(self) -> list[Agent]:
        return list(self._agents.values())

    def clear(self) -> None:
        self._agents.clear()

    def __len__(self) -> int:
        """Return the number of registered agents."""
        return len(self._agents)

    def __contains__(self, agent_id: object) -> bool:
        """Check if an agent is registered."""
        return agent_id in self._agents
