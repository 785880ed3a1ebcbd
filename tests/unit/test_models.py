"""Unit tests for data models."""

import pytest
from pydantic import ValidationError

from novel_orchestrator.models import (
    MAX_HISTORY_TURNS,
    AgentContext,
    AgentDescriptor,
    AgentOutput,
    AgentSummary,
    BatchResult,
    CollaborationMessage,
    CollaborationMessageType,
    CollaborationSession,
    ConversationTurn,
    ProjectRef,
    ProviderDescriptor,
    ProviderIdentity,
    SessionStatus,
    Specialty,
    WorkflowDefinition,
    WorkflowStep,
)
from novel_orchestrator.utils.exceptions import InvalidWorkflowError


class TestProviderDescriptor:
    """Tests for ProviderDescriptor."""

    def test_key_combines_provider_and_model(self):
        descriptor = ProviderDescriptor(provider=ProviderIdentity.DEEPSEEK, model="deepseek-chat")
        assert descriptor.key == "deepseek-deepseek-chat"

    def test_defaults(self):
        descriptor = ProviderDescriptor(provider="ollama", model="llama3.1")
        assert descriptor.provider == ProviderIdentity.OLLAMA
        assert descriptor.max_tokens == 4000
        assert descriptor.temperature == 0.7
        assert descriptor.enabled is True
        assert descriptor.api_key is None

    def test_rejects_out_of_range_temperature(self):
        with pytest.raises(ValidationError):
            ProviderDescriptor(provider="openai", model="gpt-4o", temperature=2.5)

    def test_rejects_unknown_provider(self):
        with pytest.raises(ValidationError):
            ProviderDescriptor(provider="upstage", model="solar-pro")

    def test_rejects_unknown_fields(self):
        with pytest.raises(ValidationError):
            ProviderDescriptor(provider="openai", model="gpt-4o", region="eu")


class TestAgentDescriptor:
    """Tests for AgentDescriptor."""

    @pytest.fixture
    def descriptor(self):
        return AgentDescriptor(
            id="world-builder",
            name="World Builder",
            specialty=Specialty.WORLD,
            llm=ProviderDescriptor(provider="openai", model="gpt-4o-mini"),
        )

    def test_updated_returns_validated_copy(self, descriptor):
        updated = descriptor.updated(enabled=False, description="Builds worlds")

        assert updated.enabled is False
        assert updated.description == "Builds worlds"
        assert descriptor.enabled is True

    def test_updated_accepts_new_llm_mapping(self, descriptor):
        updated = descriptor.updated(llm={"provider": "deepseek", "model": "deepseek-chat"})
        assert updated.llm.key == "deepseek-deepseek-chat"

    def test_updated_rejects_invalid_values(self, descriptor):
        with pytest.raises(ValidationError):
            descriptor.updated(specialty="poetry")

    def test_summary(self, descriptor):
        summary = AgentSummary.from_descriptor(descriptor)
        assert summary.id == "world-builder"
        assert summary.specialty == Specialty.WORLD


class TestAgentContext:
    """Tests for AgentContext."""

    def test_history_is_bounded(self):
        turns = [ConversationTurn(role="user", content=str(i)) for i in range(30)]
        context = AgentContext(project=ProjectRef(id="p"), user_input="hi", history=turns)

        assert len(context.history) == MAX_HISTORY_TURNS
        assert context.history[0].content == "10"
        assert context.history[-1].content == "29"

    def test_with_history_respects_limit(self):
        turns = [ConversationTurn(role="user", content=str(i)) for i in range(8)]
        context = AgentContext(project=ProjectRef(id="p"), user_input="hi")

        assert [t.content for t in context.with_history(turns, 3).history] == ["5", "6", "7"]
        assert context.with_history(turns, 0).history == []

    def test_with_collaboration_does_not_mutate_original(self):
        context = AgentContext(
            project=ProjectRef(id="p"), user_input="hi", collaboration_data={"a": 1}
        )
        copy = context.with_collaboration({"b": 2})

        assert copy.collaboration_data == {"b": 2}
        assert context.collaboration_data == {"a": 1}

    @pytest.mark.parametrize("user_input", ["", "   \n"])
    def test_blank_input_is_invalid(self, user_input):
        context = AgentContext(project=ProjectRef(id="p"), user_input=user_input)
        assert context.is_valid() is False

    def test_project_id_is_required(self):
        with pytest.raises(ValidationError):
            ProjectRef(id="")


class TestAgentOutput:
    """Tests for AgentOutput."""

    def test_defaults(self):
        output = AgentOutput(content="ok")
        assert output.confidence == 0.8
        assert output.suggestions == []
        assert output.data == {}
        assert output.is_degraded is False

    def test_degraded_shape(self):
        output = AgentOutput(content="sorry", confidence=0.0, requires_follow_up=True)
        assert output.is_degraded is True

    def test_confidence_range(self):
        with pytest.raises(ValidationError):
            AgentOutput(content="x", confidence=1.5)

    def test_batch_result_ok(self):
        assert BatchResult(agent_id="a", output=AgentOutput(content="x")).ok is True
        assert BatchResult(agent_id="a", error="boom").ok is False


class TestCollaboration:
    """Tests for collaboration messages and sessions."""

    def test_message_involves_sender_and_recipient(self):
        message = CollaborationMessage(from_agent="a", to_agent="b")
        assert message.involves("a")
        assert message.involves("b")
        assert not message.involves("c")
        assert message.message_type == CollaborationMessageType.REQUEST

    def test_session_defaults(self):
        session = CollaborationSession(project_id="p", topic="villain")
        assert session.id.startswith("collab_")
        assert session.status == SessionStatus.ACTIVE
        assert session.messages == []

    def test_session_append_and_share(self):
        session = CollaborationSession(project_id="p")
        before = session.updated_at

        session.append(CollaborationMessage(from_agent="a", to_agent="b", content="hi"))
        session.share("b", {"x": 1})

        assert len(session.messages) == 1
        assert session.shared_context == {"b": {"x": 1}}
        assert session.updated_at >= before


class TestWorkflowDefinition:
    """Tests for workflow validation."""

    def test_step_id_defaults_to_specialty(self):
        step = WorkflowStep(specialty=Specialty.PLOT, depends_on=["outline", "outline"])
        assert step.id == "plot"
        assert step.depends_on == ["outline"]

    def test_valid_definition(self):
        definition = WorkflowDefinition(
            id="wf",
            steps=[
                WorkflowStep(specialty=Specialty.THEME),
                WorkflowStep(specialty=Specialty.WORLD, depends_on=["theme"]),
            ],
        )
        assert definition.get_step("world").depends_on == ["theme"]
        assert definition.get_step("missing") is None
        assert definition.summary()["steps"] == ["theme", "world"]

    def test_rejects_cycle(self):
        with pytest.raises(InvalidWorkflowError) as exc_info:
            WorkflowDefinition(
                id="loop",
                steps=[
                    WorkflowStep(specialty=Specialty.THEME, depends_on=["plot"]),
                    WorkflowStep(specialty=Specialty.PLOT, depends_on=["theme"]),
                ],
            )
        assert "cycle" in exc_info.value.reason

    def test_rejects_self_dependency(self):
        with pytest.raises(InvalidWorkflowError):
            WorkflowDefinition(
                id="self",
                steps=[WorkflowStep(specialty=Specialty.THEME, depends_on=["theme"])],
            )

    def test_rejects_unknown_dependency(self):
        with pytest.raises(InvalidWorkflowError) as exc_info:
            WorkflowDefinition(
                id="wf",
                steps=[WorkflowStep(specialty=Specialty.WORLD, depends_on=["magic"])],
            )
        assert "magic" in exc_info.value.reason

    def test_rejects_duplicate_step_ids(self):
        with pytest.raises(InvalidWorkflowError):
            WorkflowDefinition(
                id="wf",
                steps=[
                    WorkflowStep(specialty=Specialty.THEME),
                    WorkflowStep(specialty=Specialty.THEME),
                ],
            )

    def test_forward_reference_is_allowed(self):
        definition = WorkflowDefinition(
            id="wf",
            steps=[
                WorkflowStep(specialty=Specialty.PLOT, depends_on=["outline"]),
                WorkflowStep(specialty=Specialty.OUTLINE),
            ],
        )
        assert len(definition.steps) == 2
