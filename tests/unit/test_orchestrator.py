"""Orchestrator unit tests."""

import pytest
from conftest import (
    DEEPSEEK_KEY,
    OPENAI_KEY,
    agent_descriptor,
    provider_descriptor,
    structured_answer,
    terminal,
)

from novel_orchestrator.core import (
    InMemoryCollaborationStore,
    InMemoryConfigurationProvider,
    Orchestrator,
    TEST_INPUT,
)
from novel_orchestrator.models import (
    BatchRequest,
    CollaborationMessage,
    CollaborationMessageType,
    ProviderIdentity,
    SessionStatus,
    Specialty,
    WorkflowDefinition,
    WorkflowStep,
)
from novel_orchestrator.utils.exceptions import (
    AgentDisabledError,
    AgentNotFoundError,
    InvalidConfigurationError,
    NoAgentForSpecialtyError,
    SessionNotFoundError,
    SessionStateError,
    WorkflowNotFoundError,
)

THEME_DATA = {"theme_analysis": {"core_theme": "grief"}}


class TestSetup:
    """Tests for construction from configuration."""

    def test_loads_agents_and_providers(self, orchestrator):
        assert len(orchestrator.list_available_agents()) == 7
        assert [p["key"] for p in orchestrator.list_providers()] == [OPENAI_KEY, DEEPSEEK_KEY]
        assert orchestrator.gateway.default_key == OPENAI_KEY

    def test_disabled_agents_are_not_available(self, fake_backends, sleeps):
        provider = InMemoryConfigurationProvider(
            agents=[
                agent_descriptor(Specialty.THEME),
                agent_descriptor(Specialty.PLOT, enabled=False),
            ],
            providers=[provider_descriptor()],
        )
        orch = Orchestrator(
            provider, InMemoryCollaborationStore(), adapter_builder=fake_backends, sleep=sleeps
        )

        assert [a.id for a in orch.list_available_agents()] == ["theme-planner"]
        assert len(orch.registry) == 2

    def test_agent_backend_is_added_when_missing(self, fake_backends, sleeps):
        ollama = provider_descriptor(ProviderIdentity.OLLAMA, "llama3.1", api_key=None)
        provider = InMemoryConfigurationProvider(
            agents=[agent_descriptor(Specialty.THEME, llm=ollama)],
        )
        orch = Orchestrator(
            provider, InMemoryCollaborationStore(), adapter_builder=fake_backends, sleep=sleeps
        )

        assert orch.gateway.has_provider("ollama-llama3.1")

    def test_configured_workflows_are_registered(self, agent_descriptors, store, fake_backends):
        provider = InMemoryConfigurationProvider(
            agents=agent_descriptors,
            providers=[provider_descriptor()],
            workflows=[
                WorkflowDefinition(id="quick", steps=[WorkflowStep(specialty=Specialty.THEME)])
            ],
        )
        orch = Orchestrator(provider, store, adapter_builder=fake_backends)

        ids = [wf.id for wf in orch.list_workflows()]
        assert "quick" in ids
        assert "full-creation" in ids
        assert orch.recommended_workflows("planning") == ["full-creation"]


class TestSendMessage:
    """Tests for send_message and send_to_specialty."""

    @pytest.mark.asyncio
    async def test_persists_exchange(self, orchestrator, store, fake_backends, context):
        fake_backends[OPENAI_KEY].queue(structured_answer("Grief.", ["Go"], THEME_DATA))

        output = await orchestrator.send_message("theme-planner", context)

        assert output.content == "Grief."
        history = await store.get_history("proj-1", "theme-planner", 20)
        assert [turn.role for turn in history] == ["user", "assistant"]
        assert history[0].content == context.user_input
        assert history[1].metadata == {"confidence": 0.85, "degraded": False}
        assert await store.list_outputs("proj-1", "theme-planner") == [output]
        shared = await store.get_collaboration_data("proj-1")
        assert shared["theme-planner"]["theme_analysis"] == {"core_theme": "grief"}

    @pytest.mark.asyncio
    async def test_repeated_calls_are_not_deduplicated(self, orchestrator, store, context):
        await orchestrator.send_message("theme-planner", context)
        await orchestrator.send_message("theme-planner", context)

        assert len(await store.get_history("proj-1", "theme-planner", 20)) == 4
        assert len(await store.list_outputs("proj-1")) == 2

    @pytest.mark.asyncio
    async def test_unknown_agent_raises_before_any_call(self, orchestrator, fake_backends, context):
        with pytest.raises(AgentNotFoundError):
            await orchestrator.send_message("ghost-writer", context)
        assert fake_backends.total_calls() == 0

    @pytest.mark.asyncio
    async def test_disabled_agent_raises_before_any_call(
        self, orchestrator, fake_backends, store, context
    ):
        orchestrator.set_agent_enabled("plot-advisor", False)

        with pytest.raises(AgentDisabledError):
            await orchestrator.send_message("plot-advisor", context)
        assert fake_backends.total_calls() == 0
        assert await store.list_outputs("proj-1") == []

    @pytest.mark.asyncio
    async def test_uses_stored_history(self, orchestrator, fake_backends, context):
        await orchestrator.send_message("theme-planner", context)
        await orchestrator.send_message("theme-planner", context.with_user_input("And now?"))

        second = fake_backends[OPENAI_KEY].requests[1]
        assert [m.role for m in second.messages] == ["user", "assistant", "user"]
        assert second.messages[0].content == context.user_input

    @pytest.mark.asyncio
    async def test_shares_data_with_other_agents(self, orchestrator, fake_backends, context):
        fake_backends[OPENAI_KEY].queue(structured_answer("Grief.", data=THEME_DATA))

        await orchestrator.send_message("theme-planner", context)
        await orchestrator.send_message("world-builder", context)

        world_request = fake_backends[OPENAI_KEY].requests[1]
        assert "From the theme-planner agent" in world_request.system_prompt

    @pytest.mark.asyncio
    async def test_degraded_output_is_returned_and_recorded(
        self, orchestrator, fake_backends, store, context
    ):
        fake_backends[OPENAI_KEY].queue(terminal())
        fake_backends[DEEPSEEK_KEY].queue(terminal())

        output = await orchestrator.send_message("theme-planner", context)

        assert output.is_degraded
        history = await store.get_history("proj-1", "theme-planner", 20)
        assert history[1].metadata["degraded"] is True
        assert await store.get_collaboration_data("proj-1") == {}

    @pytest.mark.asyncio
    async def test_send_to_specialty(self, orchestrator, context):
        output = await orchestrator.send_to_specialty(Specialty.DIALOGUE, context)
        assert output.agent_id == "dialogue-master"

    @pytest.mark.asyncio
    async def test_send_to_specialty_without_agent(self, orchestrator, context):
        orchestrator.set_agent_enabled("dialogue-master", False)

        with pytest.raises(NoAgentForSpecialtyError):
            await orchestrator.send_to_specialty(Specialty.DIALOGUE, context)


class TestBatch:
    """Tests for batch_process."""

    @pytest.mark.asyncio
    async def test_failures_are_isolated(self, orchestrator, context):
        results = await orchestrator.batch_process(
            [
                BatchRequest(agent_id="theme-planner", context=context),
                BatchRequest(agent_id="ghost-writer", context=context),
                BatchRequest(agent_id="plot-advisor", context=context),
            ]
        )

        assert [r.agent_id for r in results] == ["theme-planner", "ghost-writer", "plot-advisor"]
        assert [r.ok for r in results] == [True, False, True]
        assert "ghost-writer" in results[1].error
        assert results[2].output.agent_id == "plot-advisor"

    @pytest.mark.asyncio
    async def test_empty_batch(self, orchestrator):
        assert await orchestrator.batch_process([]) == []


class TestWorkflows:
    """Tests for run_workflow."""

    @pytest.mark.asyncio
    async def test_full_creation(self, orchestrator, fake_backends, context):
        results = await orchestrator.run_workflow("full-creation", context)

        assert list(results) == ["theme", "world", "character", "relationship", "outline", "plot"]
        assert fake_backends[OPENAI_KEY].calls == 6

    @pytest.mark.asyncio
    async def test_disabled_world_agent_skips_dependents(self, orchestrator, context):
        orchestrator.set_agent_enabled("world-builder", False)

        results = await orchestrator.run_workflow("full-creation", context)

        assert list(results) == ["theme"]

    @pytest.mark.asyncio
    async def test_unknown_workflow(self, orchestrator, fake_backends, context):
        with pytest.raises(WorkflowNotFoundError):
            await orchestrator.run_workflow("nope", context)
        assert fake_backends.total_calls() == 0


class TestCollaborationSessions:
    """Tests for collaboration sessions."""

    @pytest.mark.asyncio
    async def test_start_resolves_participants(self, orchestrator):
        session_id = await orchestrator.start_collaboration(
            "proj-1", "the villain", [Specialty.THEME, Specialty.WORLD, Specialty.THEME]
        )

        session = await orchestrator.get_session(session_id)
        assert session.participants == ["theme-planner", "world-builder"]
        assert session.status == SessionStatus.ACTIVE
        assert session.topic == "the villain"

    @pytest.mark.asyncio
    async def test_message_and_reply_are_logged(self, orchestrator, fake_backends):
        session_id = await orchestrator.start_collaboration(
            "proj-1", "drowned city", [Specialty.THEME, Specialty.WORLD]
        )
        fake_backends[OPENAI_KEY].queue(
            structured_answer("Expanded.", data={"details": {"district": "Bellows"}})
        )
        message = CollaborationMessage(
            from_agent="theme-planner",
            to_agent="world-builder",
            content="[world-expansion] Expand the drowned city",
            data={"category": "geography"},
        )

        reply = await orchestrator.post_collaboration_message(session_id, message)

        assert reply is not None
        assert reply.content == "Expanded."
        session = await orchestrator.get_session(session_id)
        assert [m.message_type for m in session.messages] == [
            CollaborationMessageType.REQUEST,
            CollaborationMessageType.RESPONSE,
        ]
        assert session.messages[0].project_id == "proj-1"
        assert session.messages[1].from_agent == "world-builder"
        assert session.shared_context["world-builder"]["details"] == {"district": "Bellows"}

        history = await orchestrator.get_collaboration_history("proj-1")
        assert [m.message_type for m in history] == [
            CollaborationMessageType.RESPONSE,
            CollaborationMessageType.REQUEST,
        ]
        assert await orchestrator.get_collaboration_history("proj-1", "plot-advisor") == []

    @pytest.mark.asyncio
    async def test_unrecognized_action_gets_no_reply(self, orchestrator, fake_backends):
        session_id = await orchestrator.start_collaboration("proj-1", "t", [Specialty.WORLD])
        message = CollaborationMessage(
            from_agent="theme-planner", to_agent="world-builder", content="just saying hi"
        )

        reply = await orchestrator.post_collaboration_message(session_id, message)

        assert reply is None
        assert fake_backends.total_calls() == 0
        session = await orchestrator.get_session(session_id)
        assert len(session.messages) == 1

    @pytest.mark.asyncio
    async def test_lifecycle(self, orchestrator):
        session_id = await orchestrator.start_collaboration("proj-1", "t", [Specialty.PLOT])
        message = CollaborationMessage(
            from_agent="theme-planner", to_agent="plot-advisor", content="[logic-check]"
        )

        paused = await orchestrator.pause_collaboration(session_id)
        assert paused.status == SessionStatus.PAUSED
        with pytest.raises(SessionStateError):
            await orchestrator.post_collaboration_message(session_id, message)
        with pytest.raises(SessionStateError):
            await orchestrator.pause_collaboration(session_id)

        resumed = await orchestrator.resume_collaboration(session_id)
        assert resumed.status == SessionStatus.ACTIVE

        completed = await orchestrator.complete_collaboration(session_id)
        assert completed.status == SessionStatus.COMPLETED
        with pytest.raises(SessionStateError):
            await orchestrator.resume_collaboration(session_id)
        with pytest.raises(SessionStateError):
            await orchestrator.post_collaboration_message(session_id, message)

    @pytest.mark.asyncio
    async def test_unknown_session(self, orchestrator):
        with pytest.raises(SessionNotFoundError):
            await orchestrator.get_session("collab_missing")
        with pytest.raises(SessionNotFoundError):
            await orchestrator.complete_collaboration("collab_missing")

    @pytest.mark.asyncio
    async def test_disabled_target(self, orchestrator, fake_backends):
        session_id = await orchestrator.start_collaboration("proj-1", "t", [Specialty.PLOT])
        orchestrator.set_agent_enabled("plot-advisor", False)
        message = CollaborationMessage(
            from_agent="theme-planner", to_agent="plot-advisor", content="[logic-check]"
        )

        with pytest.raises(AgentDisabledError):
            await orchestrator.post_collaboration_message(session_id, message)
        assert fake_backends.total_calls() == 0


class TestAgentManagement:
    """Tests for update_agent and usage statistics."""

    def test_disable_persists_to_configuration(self, orchestrator, config_provider):
        summary = orchestrator.set_agent_enabled("plot-advisor", False)

        assert summary.id == "plot-advisor"
        assert config_provider.get_agent("plot-advisor").enabled is False
        assert "plot-advisor" not in [a.id for a in orchestrator.list_available_agents()]

    def test_update_rebuilds_agent(self, orchestrator, config_provider):
        orchestrator.update_agent(
            "plot-advisor",
            name="Plot Doctor",
            llm={"provider": "deepseek", "model": "deepseek-chat", "api_key": "sk"},
        )

        agent = orchestrator.registry.get("plot-advisor")
        assert agent.name == "Plot Doctor"
        assert agent.descriptor.llm.key == DEEPSEEK_KEY
        assert config_provider.get_agent("plot-advisor").name == "Plot Doctor"

    def test_update_adds_new_backend(self, orchestrator):
        orchestrator.update_agent(
            "plot-advisor", llm={"provider": "openrouter", "model": "openai/gpt-4", "api_key": "k"}
        )
        assert orchestrator.gateway.has_provider("openrouter-openai/gpt-4")

    def test_update_unknown_agent(self, orchestrator):
        with pytest.raises(AgentNotFoundError):
            orchestrator.update_agent("ghost-writer", enabled=False)

    def test_id_cannot_change(self, orchestrator):
        with pytest.raises(InvalidConfigurationError):
            orchestrator.update_agent("plot-advisor", id="plot-2")

    def test_invalid_update_is_rejected(self, orchestrator, config_provider):
        with pytest.raises(InvalidConfigurationError):
            orchestrator.update_agent(
                "plot-advisor", llm={"provider": "openai", "model": "gpt-4o", "temperature": 9}
            )
        assert config_provider.get_agent("plot-advisor").llm.temperature == 0.7

    @pytest.mark.asyncio
    async def test_usage_stats(self, orchestrator, context):
        orchestrator.set_agent_enabled("plot-advisor", False)
        await orchestrator.send_message("theme-planner", context)
        await orchestrator.send_message("theme-planner", context)
        await orchestrator.send_message("world-builder", context)

        stats = await orchestrator.get_usage_stats("proj-1")

        assert stats["total_agents"] == 7
        assert stats["enabled_agents"] == 6
        assert stats["agent_specialties"]["theme"] == 1
        assert stats["project_usage"] == {"theme-planner": 2, "world-builder": 1}
        assert "project_usage" not in await orchestrator.get_usage_stats()


class TestProbes:
    """Tests for agent and provider probes."""

    @pytest.mark.asyncio
    async def test_agent_probe_success(self, orchestrator, fake_backends, store, context):
        result = await orchestrator.test_agent("theme-planner", context)

        assert result.success is True
        assert result.error is None
        assert TEST_INPUT in fake_backends[OPENAI_KEY].requests[0].messages[-1].content
        assert await store.list_outputs("proj-1") == []
        assert await store.get_history("proj-1", "theme-planner", 20) == []

    @pytest.mark.asyncio
    async def test_agent_probe_failure(self, orchestrator, fake_backends, context):
        fake_backends[OPENAI_KEY].queue(terminal())
        fake_backends[DEEPSEEK_KEY].queue(terminal())

        result = await orchestrator.test_agent("theme-planner", context)

        assert result.success is False
        assert "ALL_PROVIDERS_FAILED" in result.error

    @pytest.mark.asyncio
    async def test_agent_probe_on_disabled_agent(self, orchestrator, context):
        orchestrator.set_agent_enabled("theme-planner", False)
        with pytest.raises(AgentDisabledError):
            await orchestrator.test_agent("theme-planner", context)

    @pytest.mark.asyncio
    async def test_provider_probe(self, orchestrator, fake_backends):
        fake_backends[DEEPSEEK_KEY].queue(terminal())

        assert (await orchestrator.test_provider(OPENAI_KEY)).success is True
        assert (await orchestrator.test_provider(DEEPSEEK_KEY)).success is False

    @pytest.mark.asyncio
    async def test_validate_and_list_models(self, orchestrator, fake_backends):
        fake_backends[OPENAI_KEY].valid = False

        assert await orchestrator.validate_providers() == {
            OPENAI_KEY: False,
            DEEPSEEK_KEY: True,
        }
        assert await orchestrator.list_models(OPENAI_KEY) == ["gpt-4o-mini"]

    @pytest.mark.asyncio
    async def test_aclose(self, config_provider, store, fake_backends):
        orch = Orchestrator(config_provider, store, adapter_builder=fake_backends)

        await orch.aclose()

        assert fake_backends[OPENAI_KEY].closed
        assert len(orch.registry) == 0
