"""API routes.

Thin HTTP layer over the Orchestrator. Every handler wraps its result in the
standard ``APIResponse`` envelope; errors are turned into envelopes by the
handlers registered in ``utils.error_handlers``.
"""

from typing import Any

from fastapi import APIRouter, Depends, Request

from novel_orchestrator.api.schemas import (
    APIResponse,
    BatchRequestBody,
    BatchResponse,
    CollaborationMessageRequest,
    CollaborationReplyResponse,
    ProbeAgentRequest,
    RunWorkflowRequest,
    SendMessageRequest,
    SetEnabledRequest,
    StartCollaborationRequest,
    UpdateAgentRequest,
    WorkflowRunResponse,
)
from novel_orchestrator.core.orchestrator import Orchestrator
from novel_orchestrator.models import CollaborationMessage, Specialty
from novel_orchestrator.utils.exceptions import BadRequestError, ServiceUnavailableError


def get_orchestrator(request: Request) -> Orchestrator:
    """Dependency returning the orchestrator built at startup."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise ServiceUnavailableError("orchestrator")
    return orchestrator


def _ok(data: Any, **metadata: Any) -> APIResponse:
    return APIResponse(success=True, data=data, metadata=metadata)


# =============================================================================
# Agents
# =============================================================================

agent_router = APIRouter(prefix="/agents", tags=["Agents"])


@agent_router.get("")
async def list_agents(
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> APIResponse:
    """List enabled agents."""
    agents = orchestrator.list_available_agents()
    return _ok([agent.model_dump(mode="json") for agent in agents], count=len(agents))


@agent_router.post("/{agent_id}/messages")
async def send_message(
    agent_id: str,
    body: SendMessageRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> APIResponse:
    """Send a request to one agent."""
    output = await orchestrator.send_message(agent_id, body.context)
    return _ok(output.model_dump(mode="json"), degraded=output.is_degraded)


@agent_router.post("/{agent_id}/test")
async def test_agent(
    agent_id: str,
    body: ProbeAgentRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> APIResponse:
    """Round-trip a short request through one agent."""
    result = await orchestrator.test_agent(agent_id, body.context)
    return _ok(result.model_dump(mode="json"))


@agent_router.patch("/{agent_id}")
async def update_agent(
    agent_id: str,
    body: UpdateAgentRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> APIResponse:
    """Change an agent's configuration."""
    changes = body.changes()
    if not changes:
        raise BadRequestError("No changes given")
    summary = orchestrator.update_agent(agent_id, **changes)
    return _ok(summary.model_dump(mode="json"))


@agent_router.put("/{agent_id}/enabled")
async def set_agent_enabled(
    agent_id: str,
    body: SetEnabledRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> APIResponse:
    """Enable or disable an agent."""
    summary = orchestrator.set_agent_enabled(agent_id, body.enabled)
    return _ok(summary.model_dump(mode="json"), enabled=body.enabled)


specialty_router = APIRouter(prefix="/specialties", tags=["Agents"])


@specialty_router.post("/{specialty}/messages")
async def send_to_specialty(
    specialty: Specialty,
    body: SendMessageRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> APIResponse:
    """Send a request to the first enabled agent of a specialty."""
    output = await orchestrator.send_to_specialty(specialty, body.context)
    return _ok(output.model_dump(mode="json"), degraded=output.is_degraded)


@agent_router.post("/batch")
async def batch_process(
    body: BatchRequestBody,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> APIResponse:
    """Run several independent agent requests."""
    results = await orchestrator.batch_process(body.requests)
    return _ok(BatchResponse.from_results(results).model_dump(mode="json"))


# =============================================================================
# Workflows
# =============================================================================

workflow_router = APIRouter(prefix="/workflows", tags=["Workflows"])


@workflow_router.get("")
async def list_workflows(
    stage: str | None = None,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> APIResponse:
    """List workflows, optionally with the ones recommended for a project stage."""
    workflows = [definition.summary() for definition in orchestrator.list_workflows()]
    metadata: dict[str, Any] = {"count": len(workflows)}
    if stage is not None:
        metadata["recommended"] = orchestrator.recommended_workflows(stage)
    return _ok(workflows, **metadata)


@workflow_router.post("/{workflow_id}/runs")
async def run_workflow(
    workflow_id: str,
    body: RunWorkflowRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> APIResponse:
    """Run a workflow and return the outputs it produced."""
    outputs = await orchestrator.run_workflow(workflow_id, body.context)
    definition = orchestrator.catalog.get(workflow_id)
    completed = [step_id for step_id, output in outputs.items() if not output.is_degraded]
    response = WorkflowRunResponse(
        workflow_id=workflow_id,
        outputs=outputs,
        completed=completed,
        skipped=[step.id for step in definition.steps if step.id not in completed],
    )
    return _ok(response.model_dump(mode="json"))


# =============================================================================
# Collaboration sessions
# =============================================================================

collaboration_router = APIRouter(prefix="/collaborations", tags=["Collaboration"])


@collaboration_router.post("", status_code=201)
async def start_collaboration(
    body: StartCollaborationRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> APIResponse:
    """Open a collaboration session."""
    session_id = await orchestrator.start_collaboration(
        body.project_id, body.topic, body.specialties
    )
    session = await orchestrator.get_session(session_id)
    return _ok(session.model_dump(mode="json"))


@collaboration_router.get("/{session_id}")
async def get_session(
    session_id: str,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> APIResponse:
    session = await orchestrator.get_session(session_id)
    return _ok(session.model_dump(mode="json"))


@collaboration_router.post("/{session_id}/messages")
async def post_collaboration_message(
    session_id: str,
    body: CollaborationMessageRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> APIResponse:
    """Deliver an agent-to-agent message and return the reply, if any."""
    message = CollaborationMessage(**body.model_dump())
    reply = await orchestrator.post_collaboration_message(session_id, message)
    response = CollaborationReplyResponse(session_id=session_id, reply=reply)
    return _ok(response.model_dump(mode="json"))


@collaboration_router.post("/{session_id}/pause")
async def pause_collaboration(
    session_id: str,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> APIResponse:
    session = await orchestrator.pause_collaboration(session_id)
    return _ok({"id": session.id, "status": session.status.value})


@collaboration_router.post("/{session_id}/resume")
async def resume_collaboration(
    session_id: str,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> APIResponse:
    session = await orchestrator.resume_collaboration(session_id)
    return _ok({"id": session.id, "status": session.status.value})


@collaboration_router.post("/{session_id}/complete")
async def complete_collaboration(
    session_id: str,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> APIResponse:
    session = await orchestrator.complete_collaboration(session_id)
    return _ok({"id": session.id, "status": session.status.value})


project_router = APIRouter(prefix="/projects", tags=["Collaboration"])


@project_router.get("/{project_id}/collaboration-history")
async def get_collaboration_history(
    project_id: str,
    agent_id: str | None = None,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> APIResponse:
    """Agent-to-agent messages of a project, newest first."""
    messages = await orchestrator.get_collaboration_history(project_id, agent_id)
    return _ok([message.model_dump(mode="json") for message in messages], count=len(messages))


@project_router.get("/{project_id}/stats")
async def get_usage_stats(
    project_id: str,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> APIResponse:
    return _ok(await orchestrator.get_usage_stats(project_id))


# =============================================================================
# Providers
# =============================================================================

provider_router = APIRouter(prefix="/providers", tags=["Providers"])


@provider_router.get("")
async def list_providers(
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> APIResponse:
    """List configured model backends."""
    providers = orchestrator.list_providers()
    return _ok(providers, count=len(providers))


@provider_router.post("/validate")
async def validate_providers(
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> APIResponse:
    """Check every backend's configuration."""
    return _ok(await orchestrator.validate_providers())


@provider_router.post("/{provider_key}/test")
async def test_provider(
    provider_key: str,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> APIResponse:
    """Send a tiny request straight to one backend."""
    result = await orchestrator.test_provider(provider_key)
    return _ok(result.model_dump(mode="json"))


@provider_router.get("/{provider_key}/models")
async def list_models(
    provider_key: str,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> APIResponse:
    models = await orchestrator.list_models(provider_key)
    return _ok(models, count=len(models))


# =============================================================================
# Health
# =============================================================================

health_router = APIRouter(tags=["Health"])


@health_router.get("/health")
async def health(
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> APIResponse:
    """Agent counts and backend call counters."""
    stats = await orchestrator.get_usage_stats()
    stats["providers"] = orchestrator.gateway.stats()
    return _ok(stats, status="healthy")


api_router = APIRouter(prefix="/api/v1")
api_router.include_router(agent_router)
api_router.include_router(specialty_router)
api_router.include_router(workflow_router)
api_router.include_router(collaboration_router)
api_router.include_router(project_router)
api_router.include_router(provider_router)
api_router.include_router(health_router)
