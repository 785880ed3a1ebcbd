"""Workflow definition models.

A workflow is a statically declared list of steps. Each step names a
specialty (not an agent id; the registry binds it at run time) and the ids of
the steps it depends on. The dependency graph must be acyclic; that is checked
when the definition is built, so a cycle is a configuration error rather than
something the engine has to cope with.
"""

from typing import Any

from pydantic import BaseModel, Field, model_validator

from novel_orchestrator.utils.exceptions import InvalidWorkflowError

from .agent import Specialty


class WorkflowStep(BaseModel):
    """One specialty-scoped unit of work."""

    id: str = Field(default="", description="Step id; defaults to the specialty value")
    specialty: Specialty = Field(..., description="Specialty that performs the step")
    action: str = Field(default="", description="Action label, e.g. build-world")
    depends_on: list[str] = Field(
        default_factory=list, description="Ids of prerequisite steps"
    )
    parallel: bool = Field(
        default=False, description="May run concurrently with its siblings (hint only)"
    )

    model_config = {"extra": "forbid"}

    @model_validator(mode="after")
    def default_id(self) -> "WorkflowStep":
        if not self.id:
            self.id = self.specialty.value
        # duplicates in the prerequisite list carry no meaning
        self.depends_on = list(dict.fromkeys(self.depends_on))
        return self


class WorkflowDefinition(BaseModel):
    """A named sequence of steps forming a dependency DAG."""

    id: str = Field(..., min_length=1)
    name: str = Field(default="")
    description: str = Field(default="")
    steps: list[WorkflowStep] = Field(default_factory=list)
    triggers: list[str] = Field(default_factory=list)

    model_config = {"extra": "forbid"}

    @model_validator(mode="after")
    def check_graph(self) -> "WorkflowDefinition":
        ids = [step.id for step in self.steps]
        seen: set[str] = set()
        for step_id in ids:
            if step_id in seen:
                raise InvalidWorkflowError(self.id, f"duplicate step id '{step_id}'")
            seen.add(step_id)

        for step in self.steps:
            unknown = [dep for dep in step.depends_on if dep not in seen]
            if unknown:
                raise InvalidWorkflowError(
                    self.id,
                    f"step '{step.id}' depends on undeclared steps: {', '.join(unknown)}",
                )

        cycle = _find_cycle({step.id: step.depends_on for step in self.steps})
        if cycle:
            raise InvalidWorkflowError(self.id, "dependency cycle: " + " -> ".join(cycle))
        return self

    def get_step(self, step_id: str) -> WorkflowStep | None:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    def summary(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "steps": [step.id for step in self.steps],
            "triggers": list(self.triggers),
        }


def _find_cycle(graph: dict[str, list[str]]) -> list[str] | None:
    """Return one dependency cycle as a path of step ids, or None."""
    visiting: set[str] = set()
    done: set[str] = set()
    path: list[str] = []

    def visit(node: str) -> list[str] | None:
        visiting.add(node)
        path.append(node)
        for dep in graph.get(node, []):
            if dep in visiting:
                return path[path.index(dep):] + [dep]
            if dep not in done:
                found = visit(dep)
                if found:
                    return found
        visiting.discard(node)
        done.add(node)
        path.pop()
        return None

    for node in graph:
        if node not in done:
            found = visit(node)
            if found:
                return found
    return None
