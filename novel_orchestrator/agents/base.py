"""Base Agent - the common half of every specialty agent.

An Agent combines an AgentDescriptor (who it is and which backend answers for
it) with a SpecialtyStrategy (what it asks and what it keeps) and a handle to
the provider gateway. Agents never raise from ``dispatch`` or
``on_collaboration_message``: any failure becomes a degraded output.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from novel_orchestrator.agents.parsing import SectionMarkers, parse_structured_output
from novel_orchestrator.agents.strategy import (
    COLLABORATION_CONFIDENCE,
    SpecialtyStrategy,
    project_lines,
    shape_fields,
    to_json,
)
from novel_orchestrator.llm.base import ChatMessage, LLMRequest
from novel_orchestrator.models.agent import AgentDescriptor, AgentSummary, Specialty
from novel_orchestrator.models.collaboration import (
    CollaborationMessage,
    CollaborationMessageType,
)
from novel_orchestrator.models.context import AgentContext
from novel_orchestrator.models.output import AgentOutput
from novel_orchestrator.utils.logging import get_agent_logger

if TYPE_CHECKING:
    from novel_orchestrator.llm.gateway import ProviderGateway

RECOVERY_SUGGESTIONS = [
    "Check the network connection",
    "Verify the model configuration",
    "Retry the request",
]


class Agent:
    """A specialty agent bound to one model backend.

    Attributes:
        descriptor: Agent configuration.
        strategy: Specialty behaviour.
    """

    def __init__(
        self,
        descriptor: AgentDescriptor,
        strategy: SpecialtyStrategy,
        gateway: ProviderGateway,
        markers: SectionMarkers | None = None,
    ) -> None:
        """Initialize the agent.

        Args:
            descriptor: Agent configuration; its specialty must match the strategy.
            strategy: Specialty prompts, fields and actions.
            gateway: Provider gateway used for every model call.
            markers: Section markers the model is asked to use.
        """
        if descriptor.specialty != strategy.specialty:
            raise ValueError(
                f"Agent {descriptor.id} is a {descriptor.specialty.value} agent, "
                f"strategy is for {strategy.specialty.value}"
            )
        self._descriptor = descriptor
        self._strategy = strategy
        self._gateway = gateway
        self._markers = markers or SectionMarkers()
        self._logger = get_agent_logger(
            descriptor.id, descriptor.name, descriptor.specialty.value
        )

    @property
    def id(self) -> str:
        return self._descriptor.id

    @property
    def name(self) -> str:
        return self._descriptor.name

    @property
    def specialty(self) -> Specialty:
        return self._descriptor.specialty

    @property
    def descriptor(self) -> AgentDescriptor:
        return self._descriptor

    @property
    def strategy(self) -> SpecialtyStrategy:
        return self._strategy

    @property
    def is_enabled(self) -> bool:
        return self._descriptor.enabled

    def summary(self) -> AgentSummary:
        return AgentSummary.from_descriptor(self._descriptor)

    def update(self, **changes: Any) -> None:
        """Apply descriptor changes. The specialty cannot change."""
        updated = self._descriptor.updated(**changes)
        if updated.specialty != self._strategy.specialty:
            raise ValueError("An agent's specialty cannot be changed in place")
        self._descriptor = updated

    # ------------------------------------------------------------------
    # Prompts
    # ------------------------------------------------------------------

    def build_prompt(self, context: AgentContext) -> str:
        """Build the task prompt sent as the user message."""
        return self._strategy.build_task_prompt(context)

    def build_system_prompt(self, context: AgentContext) -> str:
        """Build the system prompt: persona, output format, project, collaboration."""
        parts = [
            self._descriptor.system_prompt or self._strategy.persona,
            self._format_instructions(),
            "Project information:\n" + "\n".join(project_lines(context)),
        ]
        collaboration = render_collaboration(context.collaboration_data)
        if collaboration:
            parts.append(collaboration)
        return "\n\n".join(parts)

    def _format_instructions(self) -> str:
        return (
            "Output format:\n"
            "Write your analysis first. Then add a section starting with "
            f"{self._markers.suggestions} listing concrete suggestions, one per line "
            f"prefixed with '-'. Finally add a section starting with {self._markers.data} "
            "containing a single JSON object shaped like this:\n"
            f"{to_json(self._strategy.data_example)}"
        )

    # ------------------------------------------------------------------
    # Calls
    # ------------------------------------------------------------------

    async def dispatch(self, context: AgentContext) -> AgentOutput:
        """Answer a plain request. Never raises."""
        operation = f"{self._strategy.specialty.value} analysis"
        if not context.is_valid():
            self._logger.warning("Invalid context", project_id=context.project.id)
            return self.degraded(operation, "project and user input are required")

        try:
            prompt = self.build_prompt(context)
            return await self._run(
                prompt,
                context,
                fields=self._strategy.fields,
                confidence=self._strategy.confidence,
                operation=operation,
            )
        except Exception as e:
            self._logger.exception("Agent dispatch failed", operation=operation, error=str(e))
            return self.degraded(operation, e)

    async def on_collaboration_message(
        self, message: CollaborationMessage, context: AgentContext
    ) -> AgentOutput | None:
        """Answer a peer's request if it carries a recognized action tag.

        Returns None for non-request messages and unknown actions. Never raises.
        """
        try:
            action = self._strategy.match_action(message)
            if action is None:
                return None

            self._logger.info(
                "Handling collaboration request",
                action=action.tag,
                from_agent=message.from_agent,
            )
            prompt = action.build_prompt(message, context)
            return await self._run(
                prompt,
                context,
                fields=action.fields,
                confidence=COLLABORATION_CONFIDENCE,
                operation=action.label,
            )
        except Exception as e:
            self._logger.exception(
                "Collaboration handling failed", from_agent=message.from_agent, error=str(e)
            )
            return self.degraded("collaboration handling", e)

    def create_collaboration_request(
        self,
        target: str,
        action: str,
        content: str,
        data: dict[str, Any] | None = None,
        project_id: str | None = None,
    ) -> CollaborationMessage:
        """Build a request message for a peer, tagged with ``action``."""
        return CollaborationMessage(
            from_agent=self.id,
            to_agent=target,
            message_type=CollaborationMessageType.REQUEST,
            content=f"[{action}] {content}",
            data=data or {},
            project_id=project_id,
        )

    async def _run(
        self,
        prompt: str,
        context: AgentContext,
        fields: dict[str, Any],
        confidence: float,
        operation: str,
    ) -> AgentOutput:
        llm = self._descriptor.llm
        messages = [ChatMessage(role=turn.role, content=turn.content) for turn in context.history]
        messages.append(ChatMessage(role="user", content=prompt))
        request = LLMRequest(
            messages=messages,
            system_prompt=self.build_system_prompt(context),
            max_tokens=llm.max_tokens,
            temperature=llm.temperature,
            metadata={
                "agent_id": self.id,
                "project_id": context.project.id,
                "operation": operation,
            },
        )

        try:
            response = await self._gateway.send(request, llm.key)
        except Exception as e:
            self._logger.error(
                "Model call failed",
                operation=operation,
                provider_key=llm.key,
                error=str(e),
                error_type=type(e).__name__,
            )
            return self.degraded(operation, e)

        parsed = parse_structured_output(response.content, self._markers)
        self._logger.debug(
            "Model call succeeded",
            operation=operation,
            suggestions=len(parsed.suggestions),
            has_data=parsed.has_data_section,
        )
        return AgentOutput(
            content=parsed.content,
            suggestions=parsed.suggestions,
            data=shape_fields(parsed.data, fields),
            confidence=confidence,
            requires_follow_up=False,
            collaboration_tags=list(self._strategy.collaboration_tags),
            agent_id=self.id,
            specialty=self.specialty,
        )

    def degraded(self, operation: str, cause: Exception | str | None = None) -> AgentOutput:
        """The output returned in place of an exception.

        The content names the cause so probes can report it; ``data`` stays empty.
        """
        reason = f" ({describe_failure(cause)})" if cause is not None else ""
        return AgentOutput(
            content=(
                f"Sorry, something went wrong during {operation}{reason}. "
                "Please try again later or check the configuration."
            ),
            suggestions=list(RECOVERY_SUGGESTIONS),
            data={},
            confidence=0.0,
            requires_follow_up=True,
            agent_id=self.id,
            specialty=self.specialty,
        )


def describe_failure(cause: Exception | str) -> str:
    """Short human-readable cause, e.g. ``ProviderError ALL_PROVIDERS_FAILED``."""
    if isinstance(cause, str):
        return cause
    code = getattr(cause, "code", None)
    name = type(cause).__name__
    return f"{name} {code}" if code else name

def render_collaboration(collaboration_data: dict[str, Any]) -> str:
    """Render other agents' shared data for a system prompt."""
    if not collaboration_data:
        return ""

    lines = ["Collaboration information:"]
    for contributor, payload in collaboration_data.items():
        if not isinstance(payload, dict) or not payload:
            continue
        lines.append(f"From the {contributor} agent:")
        if payload.get("summary"):
            lines.append(f"- Summary: {payload['summary']}")
        if isinstance(payload.get("key_points"), list):
            lines.append(f"- Key points: {', '.join(map(str, payload['key_points']))}")
        if isinstance(payload.get("recommendations"), list):
            lines.append(
                f"- Recommendations: {', '.join(map(str, payload['recommendations']))}"
            )
        if not {"summary", "key_points", "recommendations"} & payload.keys():
            lines.append(f"- Shared fields: {', '.join(payload)}")
        lines.append("")

    if len(lines) == 1:
        return ""
    return "\n".join(lines).rstrip()
