"""Agent Registry unit tests."""

import pytest
from conftest import agent_descriptor

from novel_orchestrator.agents import AgentFactory
from novel_orchestrator.core import AgentRegistry
from novel_orchestrator.models import Specialty
from novel_orchestrator.utils.exceptions import AgentNotFoundError


class TestAgentRegistry:
    """Test AgentRegistry class."""

    @pytest.fixture
    def registry(self):
        """Create a fresh registry for each test."""
        return AgentRegistry()

    @pytest.fixture
    def make_agent(self, gateway):
        factory = AgentFactory()

        def make(specialty, agent_id=None, enabled=True):
            return factory.create(
                agent_descriptor(specialty, agent_id=agent_id, enabled=enabled), gateway
            )

        return make

    def test_register_agent(self, registry, make_agent):
        summary = registry.register(make_agent(Specialty.THEME))

        assert summary.id == "theme-planner"
        assert summary.name == "Theme Planner"
        assert summary.specialty == Specialty.THEME
        assert len(registry) == 1
        assert "theme-planner" in registry

    def test_register_replaces_same_id(self, registry, make_agent):
        registry.register(make_agent(Specialty.THEME))
        registry.register(make_agent(Specialty.PLOT))
        replacement = make_agent(Specialty.THEME, enabled=False)

        registry.register(replacement)

        assert len(registry) == 2
        assert registry.get("theme-planner") is replacement
        assert [agent.id for agent in registry.list_all()] == ["theme-planner", "plot-advisor"]

    def test_unregister(self, registry, make_agent):
        registry.register(make_agent(Specialty.THEME))

        assert registry.unregister("theme-planner") is True
        assert registry.unregister("theme-planner") is False
        assert len(registry) == 0

    def test_get_unknown_raises(self, registry):
        with pytest.raises(AgentNotFoundError) as exc_info:
            registry.get("nobody")
        assert exc_info.value.agent_id == "nobody"

    def test_resolve_by_id_skips_disabled(self, registry, make_agent):
        registry.register(make_agent(Specialty.THEME, enabled=False))

        assert registry.resolve_by_id("theme-planner") is None
        assert registry.resolve_by_id("nobody") is None
        assert registry.get("theme-planner").is_enabled is False

    def test_resolve_by_specialty_returns_first_enabled(self, registry, make_agent):
        registry.register(make_agent(Specialty.WORLD, agent_id="world-a", enabled=False))
        registry.register(make_agent(Specialty.WORLD, agent_id="world-b"))
        registry.register(make_agent(Specialty.WORLD, agent_id="world-c"))

        agent = registry.resolve_by_specialty(Specialty.WORLD)

        assert agent is not None
        assert agent.id == "world-b"
        assert registry.resolve_by_specialty(Specialty.PLOT) is None

    def test_list_enabled(self, registry, make_agent):
        registry.register(make_agent(Specialty.THEME))
        registry.register(make_agent(Specialty.PLOT, enabled=False))

        enabled = registry.list_enabled()

        assert [summary.id for summary in enabled] == ["theme-planner"]
        assert len(registry.list_all()) == 2

    def test_clear(self, registry, make_agent):
        registry.register(make_agent(Specialty.THEME))
        registry.clear()
        assert len(registry) == 0
