"""Workflow Engine - dependency-ordered multi-agent runs.

A workflow runs its steps in declaration order. Each step is bound at run
time to the first enabled agent of its specialty and sees the data produced
by every step completed before it. A step whose prerequisites did not
complete is skipped, and so, transitively, is everything depending on it.
Partial failure never raises: the caller gets whatever outputs were produced.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any

from novel_orchestrator.models import (
    AgentContext,
    AgentOutput,
    Specialty,
    WorkflowDefinition,
    WorkflowStep,
)
from novel_orchestrator.utils.exceptions import DependencyUnmetError, WorkflowNotFoundError
from novel_orchestrator.utils.logging import get_logger, get_workflow_logger
from novel_orchestrator.utils.observability import LangfuseClient

if TYPE_CHECKING:
    from novel_orchestrator.core.registry import AgentRegistry

logger = get_logger(__name__)


def _step(specialty: Specialty, action: str, *depends_on: str, parallel: bool = False) -> WorkflowStep:
    return WorkflowStep(
        specialty=specialty,
        action=action,
        depends_on=list(depends_on),
        parallel=parallel,
    )


BUILTIN_WORKFLOWS: tuple[WorkflowDefinition, ...] = (
    WorkflowDefinition(
        id="full-creation",
        name="Full creation",
        description="End-to-end collaboration from theme to a complete story outline",
        steps=[
            _step(Specialty.THEME, "analyze-theme"),
            _step(Specialty.WORLD, "build-world", "theme"),
            _step(Specialty.CHARACTER, "create-characters", "theme", "world"),
            _step(Specialty.RELATIONSHIP, "map-relationships", "character"),
            _step(Specialty.OUTLINE, "create-outline", "theme", "world", "character"),
            _step(Specialty.PLOT, "analyze-plot", "outline"),
        ],
        triggers=["new-project", "major-revision"],
    ),
    WorkflowDefinition(
        id="character-development",
        name="Character development",
        description="Character creation followed by relationships and voice",
        steps=[
            _step(Specialty.CHARACTER, "create-character"),
            _step(Specialty.RELATIONSHIP, "analyze-relationships", "character"),
            _step(Specialty.DIALOGUE, "develop-voice", "character"),
        ],
        triggers=["new-character", "character-revision"],
    ),
    WorkflowDefinition(
        id="plot-optimization",
        name="Plot optimization",
        description="Analyze the plot, then improve outline and character arcs",
        steps=[
            _step(Specialty.PLOT, "analyze-structure"),
            _step(Specialty.OUTLINE, "suggest-improvements", "plot"),
            _step(Specialty.CHARACTER, "check-arcs", "plot", parallel=True),
        ],
        triggers=["plot-review", "structure-analysis"],
    ),
)

# Project stage -> recommended workflow ids
STAGE_WORKFLOWS: dict[str, list[str]] = {
    "planning": ["full-creation"],
    "character-development": ["character-development"],
    "plot-review": ["plot-optimization"],
}


class WorkflowCatalog:
    """Workflow definitions by id, seeded with the built-in ones."""

    def __init__(self, include_builtins: bool = True) -> None:
        self._definitions: dict[str, WorkflowDefinition] = {}
        if include_builtins:
            for definition in BUILTIN_WORKFLOWS:
                self.register(definition)

    def register(self, definition: WorkflowDefinition) -> None:
        """Add a definition, replacing any with the same id."""
        self._definitions[definition.id] = definition

    def get(self, workflow_id: str) -> WorkflowDefinition:
        """Get a definition.

        Raises:
            WorkflowNotFoundError: If the id is unknown.
        """
        definition = self._definitions.get(workflow_id)
        if definition is None:
            raise WorkflowNotFoundError(workflow_id)
        return definition

    def list_all(self) -> list[WorkflowDefinition]:
        return list(self._definitions.values())

    def recommend(self, stage: str) -> list[str]:
        """Workflow ids suited to a project stage."""
        return [wid for wid in STAGE_WORKFLOWS.get(stage, []) if wid in self._definitions]

    def __contains__(self, workflow_id: object) -> bool:
        return workflow_id in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)


class WorkflowEngine:
    """Runs workflow definitions against the agents in a registry.

    Steps are awaited one after another. The ``parallel`` hint on a step is
    accepted and ignored.
    """

    def __init__(self, registry: AgentRegistry, tracer: LangfuseClient | None = None) -> None:
        self._registry = registry
        self._tracer = tracer or LangfuseClient.disabled()

    async def execute(
        self, definition: WorkflowDefinition, context: AgentContext
    ) -> dict[str, AgentOutput]:
        """Run ``definition`` and return outputs keyed by step id.

        Steps that were skipped have no entry. A step whose agent returned a
        degraded output has an entry but does not count as completed.
        """
        run_id = uuid.uuid4().hex[:12]
        log = get_workflow_logger(definition.id, run_id)
        span_id = f"workflow-{run_id}"
        self._tracer.start_span(
            span_id,
            name=f"workflow:{definition.id}",
            input_data={"project_id": context.project.id, "user_input": context.user_input},
            metadata={"steps": [step.id for step in definition.steps]},
        )
        log.info("Workflow started", project_id=context.project.id, steps=len(definition.steps))

        results: dict[str, AgentOutput] = {}
        completed: set[str] = set()
        accumulated: dict[str, Any] = {}

        for step in definition.steps:
            missing = [dep for dep in step.depends_on if dep not in completed]
            if missing:
                error = DependencyUnmetError(step.id, missing)
                log.warning("Skipping step", step_id=step.id, reason=error.message)
                continue

            agent = self._registry.resolve_by_specialty(step.specialty)
            if agent is None:
                log.warning(
                    "Skipping step, no enabled agent",
                    step_id=step.id,
                    specialty=step.specialty.value,
                )
                continue

            try:
                output = await agent.dispatch(context.with_collaboration(accumulated))
            except Exception as e:
                log.exception("Workflow step failed", step_id=step.id, error=str(e))
                continue

            results[step.id] = output
            if output.is_degraded:
                log.warning("Workflow step degraded", step_id=step.id, agent_id=agent.id)
                continue

            completed.add(step.id)
            if output.data:
                accumulated[step.specialty.value] = output.data
            log.info("Workflow step completed", step_id=step.id, agent_id=agent.id)

        skipped = [step.id for step in definition.steps if step.id not in completed]
        log.info("Workflow finished", completed=len(completed), incomplete=skipped)
        self._tracer.end_span(
            span_id,
            output={"completed": sorted(completed), "incomplete": skipped},
            status="success" if not skipped else "partial",
            level="DEFAULT" if not skipped else "WARNING",
        )
        return results
