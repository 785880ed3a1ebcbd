"""Built-in specialty strategies, one module per specialty."""

from novel_orchestrator.agents.specialties import (
    character,
    dialogue,
    outline,
    plot,
    relationship,
    theme,
    world,
)
from novel_orchestrator.agents.strategy import SpecialtyStrategy
from novel_orchestrator.models.agent import Specialty

DEFAULT_STRATEGIES: dict[Specialty, SpecialtyStrategy] = {
    module.STRATEGY.specialty: module.STRATEGY
    for module in (theme, outline, world, character, relationship, dialogue, plot)
}

__all__ = ["DEFAULT_STRATEGIES"]
