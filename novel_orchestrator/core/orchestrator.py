"""Orchestrator - the single entry point for callers.

The orchestrator owns the agent registry, the provider gateway, the agent
factory, the workflow catalog and the workflow engine. It reads agent and
backend definitions from a ConfigurationProvider and persists conversations,
outputs and shared data through a CollaborationStore.

Referencing an unknown or disabled agent, workflow or session raises a
ConfigurationError before any model call is made. Failures during a model
call never raise from here: the agent turns them into degraded outputs.
"""

from __future__ import annotations

import time
from collections import Counter
from typing import Any

from novel_orchestrator.agents import Agent, AgentFactory, SectionMarkers
from novel_orchestrator.core.collaboration import (
    COLLABORATION_HISTORY_LIMIT,
    CollaborationStore,
)
from novel_orchestrator.core.config_store import ConfigurationProvider
from novel_orchestrator.core.registry import AgentRegistry
from novel_orchestrator.core.workflow import WorkflowCatalog, WorkflowEngine
from novel_orchestrator.llm.gateway import (
    AdapterBuilder,
    GatewayConfig,
    ProviderGateway,
    SleepFunc,
)
from novel_orchestrator.models import (
    MAX_HISTORY_TURNS,
    AgentContext,
    AgentOutput,
    AgentSummary,
    BatchRequest,
    BatchResult,
    CollaborationMessage,
    CollaborationMessageType,
    CollaborationSession,
    ConversationTurn,
    ProbeResult,
    ProjectRef,
    SessionStatus,
    Specialty,
    WorkflowDefinition,
)
from novel_orchestrator.utils.exceptions import (
    AgentDisabledError,
    AgentNotFoundError,
    InvalidConfigurationError,
    NoAgentForSpecialtyError,
    NovelOrchestratorError,
    ProviderError,
    SessionNotFoundError,
    SessionStateError,
)
from novel_orchestrator.utils.logging import get_logger
from novel_orchestrator.utils.observability import LangfuseClient

logger = get_logger(__name__)

TEST_INPUT = "This is a connection test. Please reply briefly."

# Allowed session status transitions, keyed by operation
_SESSION_TRANSITIONS: dict[str, tuple[set[SessionStatus], SessionStatus]] = {
    "pause": ({SessionStatus.ACTIVE}, SessionStatus.PAUSED),
    "resume": ({SessionStatus.PAUSED}, SessionStatus.ACTIVE),
    "complete": ({SessionStatus.ACTIVE, SessionStatus.PAUSED}, SessionStatus.COMPLETED),
}


class Orchestrator:
    """Facade over agents, workflows and collaboration sessions.

    Example:
        ```python
        orchestrator = Orchestrator(YamlConfigurationProvider(path), InMemoryCollaborationStore())
        output = await orchestrator.send_message("theme-planner", context)
        await orchestrator.aclose()
        ```
    """

    def __init__(
        self,
        config_provider: ConfigurationProvider,
        store: CollaborationStore,
        gateway_config: GatewayConfig | None = None,
        markers: SectionMarkers | None = None,
        history_limit: int = MAX_HISTORY_TURNS,
        tracer: LangfuseClient | None = None,
        adapter_builder: AdapterBuilder | None = None,
        sleep: SleepFunc | None = None,
    ) -> None:
        """Initialize the orchestrator and load agents from configuration.

        Args:
            config_provider: Source of agent, backend and workflow definitions.
            store: Persistence for conversations, outputs and shared data.
            gateway_config: Retry and fallback settings.
            markers: Section markers agents ask models to use.
            history_limit: Prior turns carried into each agent call.
            tracer: Optional Langfuse client for workflow and generation traces.
            adapter_builder: Overrides how backend adapters are built.
            sleep: Overrides the gateway's backoff wait.
        """
        self.config_provider = config_provider
        self.store = store
        self.history_limit = min(history_limit, MAX_HISTORY_TURNS)
        self.tracer = tracer or LangfuseClient.disabled()

        self.registry = AgentRegistry()
        self.gateway = ProviderGateway(
            gateway_config,
            adapter_builder=adapter_builder,
            tracer=self.tracer,
            sleep=sleep,
        )
        self.factory = AgentFactory(markers)
        self.catalog = WorkflowCatalog()
        self.engine = WorkflowEngine(self.registry, tracer=self.tracer)

        self._configure_gateway()
        for definition in config_provider.get_workflows():
            self.catalog.register(definition)
        self.reload_agents()

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def _configure_gateway(self) -> None:
        self.gateway.configure(self.config_provider.get_providers())
        default_key = self.config_provider.get_default_provider()
        if default_key:
            self.gateway.set_default(default_key)

    def reload_agents(self) -> list[AgentSummary]:
        """Rebuild every live agent from configuration.

        An agent whose definition cannot be built is logged and left out.
        """
        self.registry.clear()
        for descriptor in self.config_provider.get_agents():
            try:
                self._install(self.factory.create(descriptor, self.gateway))
            except NovelOrchestratorError as e:
                logger.error("Failed to initialize agent", agent_id=descriptor.id, error=e.message)
        logger.info(
            "Agents loaded",
            total=len(self.registry),
            enabled=len(self.registry.list_enabled()),
        )
        return self.registry.list_enabled()

    def _install(self, agent: Agent) -> None:
        llm = agent.descriptor.llm
        if llm.enabled and not self.gateway.has_provider(llm.key):
            self.gateway.add_provider(llm)
        self.registry.register(agent)

    def _require_agent(self, agent_id: str) -> Agent:
        agent = self.registry.get(agent_id)
        if not agent.is_enabled:
            raise AgentDisabledError(agent_id)
        return agent

    # ------------------------------------------------------------------
    # Messaging
    # ------------------------------------------------------------------

    async def send_message(self, agent_id: str, context: AgentContext) -> AgentOutput:
        """Send a request to one agent.

        The context is enriched with the data other agents shared for the
        project and with this agent's stored conversation window. The user
        turn, the assistant turn and the output are persisted afterwards.

        Raises:
            AgentNotFoundError: If the id is unknown.
            AgentDisabledError: If the agent is disabled.
        """
        agent = self._require_agent(agent_id)
        project_id = context.project.id

        shared = await self.store.get_collaboration_data(project_id, exclude_agent_id=agent_id)
        history = await self.store.get_history(project_id, agent_id, self.history_limit)
        enriched = context.with_collaboration(
            {**shared, **context.collaboration_data}
        ).with_history(history or context.history, self.history_limit)

        output = await agent.dispatch(enriched)

        await self.store.append_message(
            project_id, agent_id, ConversationTurn(role="user", content=context.user_input)
        )
        await self.store.append_message(
            project_id,
            agent_id,
            ConversationTurn(
                role="assistant",
                content=output.content,
                metadata={"confidence": output.confidence, "degraded": output.is_degraded},
            ),
        )
        await self.store.record_output(project_id, agent_id, output)
        if output.data:
            await self.store.save_collaboration_data(project_id, agent_id, output.data)
        return output

    async def send_to_specialty(self, specialty: Specialty, context: AgentContext) -> AgentOutput:
        """Send a request to the first enabled agent of ``specialty``.

        Raises:
            NoAgentForSpecialtyError: If no enabled agent serves it.
        """
        agent = self.registry.resolve_by_specialty(specialty)
        if agent is None:
            raise NoAgentForSpecialtyError(specialty.value)
        return await self.send_message(agent.id, context)

    async def batch_process(self, requests: list[BatchRequest]) -> list[BatchResult]:
        """Run independent requests one after another.

        Each request gets its own result slot. A failing request records its
        error and does not stop the others.
        """
        results: list[BatchResult] = []
        for request in requests:
            try:
                output = await self.send_message(request.agent_id, request.context)
            except NovelOrchestratorError as e:
                logger.warning("Batch item failed", agent_id=request.agent_id, error=e.message)
                results.append(BatchResult(agent_id=request.agent_id, error=e.message))
            except Exception as e:
                logger.exception("Batch item raised", agent_id=request.agent_id, error=str(e))
                results.append(BatchResult(agent_id=request.agent_id, error=str(e)))
            else:
                results.append(BatchResult(agent_id=request.agent_id, output=output))
        return results

    # ------------------------------------------------------------------
    # Workflows
    # ------------------------------------------------------------------

    async def run_workflow(self, workflow_id: str, context: AgentContext) -> dict[str, AgentOutput]:
        """Run a workflow by id.

        Raises:
            WorkflowNotFoundError: If the id is unknown.
        """
        definition = self.catalog.get(workflow_id)
        return await self.engine.execute(definition, context)

    def list_workflows(self) -> list[WorkflowDefinition]:
        return self.catalog.list_all()

    def recommended_workflows(self, stage: str) -> list[str]:
        return self.catalog.recommend(stage)

    # ------------------------------------------------------------------
    # Collaboration sessions
    # ------------------------------------------------------------------

    async def start_collaboration(
        self, project_id: str, topic: str, specialties: list[Specialty]
    ) -> str:
        """Open a session with the first enabled agent of each specialty."""
        participants: list[str] = []
        for specialty in specialties:
            agent = self.registry.resolve_by_specialty(specialty)
            if agent is not None and agent.id not in participants:
                participants.append(agent.id)

        session = CollaborationSession(
            project_id=project_id, topic=topic, participants=participants
        )
        await self.store.save_session(session)
        logger.info(
            "Collaboration session started",
            session_id=session.id,
            project_id=project_id,
            participants=participants,
        )
        return session.id

    async def get_session(self, session_id: str) -> CollaborationSession:
        session = await self.store.get_session(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    async def post_collaboration_message(
        self, session_id: str, message: CollaborationMessage
    ) -> AgentOutput | None:
        """Deliver a message within a session and log the exchange.

        The target agent's reply, if any, is logged as a response message and
        its data is added to the session's shared context.

        Raises:
            SessionNotFoundError: If the session is unknown.
            SessionStateError: If the session is not active.
            AgentNotFoundError: If the target agent is unknown.
            AgentDisabledError: If the target agent is disabled.
        """
        session = await self.get_session(session_id)
        if session.status != SessionStatus.ACTIVE:
            raise SessionStateError(session_id, session.status.value, "post a message to")
        target = self._require_agent(message.to_agent)

        if message.project_id is None:
            message = message.model_copy(update={"project_id": session.project_id})
        session.append(message)
        await self.store.append_collaboration_message(session.project_id, message)

        context = AgentContext(
            project=ProjectRef(id=session.project_id),
            user_input=message.content,
            collaboration_data={**session.shared_context, **message.data},
        )
        reply = await target.on_collaboration_message(message, context)

        if reply is not None:
            response = CollaborationMessage(
                from_agent=target.id,
                to_agent=message.from_agent,
                message_type=CollaborationMessageType.RESPONSE,
                content=reply.content,
                data=reply.data,
                project_id=session.project_id,
            )
            session.append(response)
            await self.store.append_collaboration_message(session.project_id, response)
            if reply.data:
                session.share(target.id, reply.data)

        await self.store.save_session(session)
        return reply

    async def pause_collaboration(self, session_id: str) -> CollaborationSession:
        return await self._transition(session_id, "pause")

    async def resume_collaboration(self, session_id: str) -> CollaborationSession:
        return await self._transition(session_id, "resume")

    async def complete_collaboration(self, session_id: str) -> CollaborationSession:
        return await self._transition(session_id, "complete")

    async def _transition(self, session_id: str, operation: str) -> CollaborationSession:
        session = await self.get_session(session_id)
        allowed, target = _SESSION_TRANSITIONS[operation]
        if session.status not in allowed:
            raise SessionStateError(session_id, session.status.value, operation)
        session.set_status(target)
        await self.store.save_session(session)
        logger.info("Collaboration session updated", session_id=session_id, status=target.value)
        return session

    async def get_collaboration_history(
        self, project_id: str, agent_id: str | None = None
    ) -> list[CollaborationMessage]:
        """Agent-to-agent messages of a project, newest first."""
        return await self.store.get_collaboration_history(
            project_id, agent_id, limit=COLLABORATION_HISTORY_LIMIT
        )

    # ------------------------------------------------------------------
    # Agent management
    # ------------------------------------------------------------------

    def list_available_agents(self) -> list[AgentSummary]:
        return self.registry.list_enabled()

    def update_agent(self, agent_id: str, **changes: Any) -> AgentSummary:
        """Apply configuration changes to an agent, persist them and rebuild it.

        Raises:
            AgentNotFoundError: If the id is not configured.
            InvalidConfigurationError: If the changes do not validate.
        """
        descriptors = self.config_provider.get_agents()
        index = next((i for i, d in enumerate(descriptors) if d.id == agent_id), None)
        if index is None:
            raise AgentNotFoundError(agent_id)

        if "id" in changes and changes["id"] != agent_id:
            raise InvalidConfigurationError("id", changes["id"], "An agent's id cannot be changed")
        try:
            updated = descriptors[index].updated(**changes)
        except ValueError as e:
            raise InvalidConfigurationError("agent", agent_id, f"Invalid agent update: {e}") from e

        agent = self.factory.create(updated, self.gateway)
        descriptors[index] = updated
        self.config_provider.set_agents(descriptors)
        self._install(agent)
        logger.info("Agent updated", agent_id=agent_id, changes=sorted(changes))
        return agent.summary()

    def set_agent_enabled(self, agent_id: str, enabled: bool) -> AgentSummary:
        """Enable or disable an agent. Disabled agents stay configured."""
        return self.update_agent(agent_id, enabled=enabled)

    async def get_usage_stats(self, project_id: str | None = None) -> dict[str, Any]:
        """Agent counts, and per-agent call counts for a project."""
        agents = self.registry.list_all()
        stats: dict[str, Any] = {
            "total_agents": len(agents),
            "enabled_agents": sum(1 for agent in agents if agent.is_enabled),
            "agent_specialties": dict(Counter(agent.specialty.value for agent in agents)),
        }
        if project_id is not None:
            outputs = await self.store.list_outputs(project_id)
            stats["project_usage"] = dict(
                Counter(output.agent_id for output in outputs if output.agent_id)
            )
        return stats

    # ------------------------------------------------------------------
    # Probing
    # ------------------------------------------------------------------

    async def test_agent(self, agent_id: str, sample_context: AgentContext) -> ProbeResult:
        """Round-trip a short request through one agent.

        The exchange is not persisted. A degraded output counts as failure.

        Raises:
            AgentNotFoundError: If the id is unknown.
            AgentDisabledError: If the agent is disabled.
        """
        agent = self._require_agent(agent_id)
        started = time.perf_counter()
        output = await agent.dispatch(sample_context.with_user_input(TEST_INPUT))
        latency_ms = (time.perf_counter() - started) * 1000
        if output.is_degraded:
            return ProbeResult(success=False, latency_ms=latency_ms, error=output.content)
        return ProbeResult(success=True, latency_ms=latency_ms)

    async def test_provider(self, provider_key: str) -> ProbeResult:
        """Send a tiny request straight to one backend.

        Raises:
            ProviderNotFoundError: If the key is unknown.
        """
        return await self.gateway.test_provider(provider_key)

    def list_providers(self) -> list[dict[str, Any]]:
        return self.gateway.list_providers()

    async def validate_providers(self) -> dict[str, bool]:
        return await self.gateway.validate_all()

    async def list_models(self, provider_key: str) -> list[str]:
        try:
            return await self.gateway.list_models(provider_key)
        except ProviderError as e:
            logger.warning("Failed to list models", provider_key=provider_key, error=e.message)
            return []

    async def aclose(self) -> None:
        """Close backend connections and flush traces."""
        await self.gateway.aclose()
        self.registry.clear()
        self.tracer.flush()
