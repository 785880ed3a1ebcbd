"""Agent Factory - build specialty agents from descriptors.

The factory owns the Specialty -> SpecialtyStrategy mapping. The built-in
strategies are registered by default; ``register`` replaces one, which is how
a deployment swaps in its own prompts for a specialty.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from novel_orchestrator.agents.base import Agent
from novel_orchestrator.agents.parsing import SectionMarkers
from novel_orchestrator.agents.specialties import DEFAULT_STRATEGIES
from novel_orchestrator.agents.strategy import SpecialtyStrategy
from novel_orchestrator.models.agent import AgentDescriptor, Specialty
from novel_orchestrator.utils.exceptions import InvalidConfigurationError
from novel_orchestrator.utils.logging import get_logger

if TYPE_CHECKING:
    from novel_orchestrator.llm.gateway import ProviderGateway

logger = get_logger(__name__)


class AgentFactory:
    """Creates Agent instances for each specialty."""

    def __init__(
        self,
        markers: SectionMarkers | None = None,
        strategies: dict[Specialty, SpecialtyStrategy] | None = None,
    ) -> None:
        """Initialize the factory.

        Args:
            markers: Section markers every created agent asks the model to use.
            strategies: Overrides merged over the built-in strategies.
        """
        self._markers = markers or SectionMarkers()
        self._strategies: dict[Specialty, SpecialtyStrategy] = dict(DEFAULT_STRATEGIES)
        if strategies:
            for specialty, strategy in strategies.items():
                self.register(specialty, strategy)

    @property
    def markers(self) -> SectionMarkers:
        return self._markers

    def register(self, specialty: Specialty, strategy: SpecialtyStrategy) -> None:
        """Register the strategy used for ``specialty``."""
        if strategy.specialty != specialty:
            raise InvalidConfigurationError(
                "strategy",
                strategy.specialty.value,
                f"Strategy for {strategy.specialty.value} cannot serve {specialty.value}",
            )
        self._strategies[specialty] = strategy
        logger.debug("Registered specialty strategy", specialty=specialty.value)

    def strategy_for(self, specialty: Specialty) -> SpecialtyStrategy:
        try:
            return self._strategies[specialty]
        except KeyError:
            raise InvalidConfigurationError(
                "specialty",
                specialty.value,
                f"No strategy registered for specialty: {specialty.value}",
            ) from None

    def create(self, descriptor: AgentDescriptor, gateway: ProviderGateway) -> Agent:
        """Create the agent for ``descriptor``.

        Raises:
            InvalidConfigurationError: If no strategy serves its specialty.
        """
        strategy = self.strategy_for(descriptor.specialty)
        return Agent(descriptor, strategy, gateway, markers=self._markers)

    def specialties(self) -> list[Specialty]:
        return list(self._strategies)
