"""Relationship mapper - character networks, conflicts and alliances."""

from novel_orchestrator.agents.strategy import (
    CollaborationAction,
    SpecialtyStrategy,
    find_by_id,
    summarize_entries,
    to_json,
)
from novel_orchestrator.models.agent import Specialty
from novel_orchestrator.models.collaboration import CollaborationMessage
from novel_orchestrator.models.context import AgentContext

PERSONA = """You are a professional relationship mapper who designs the web of connections between characters.

Core responsibilities:
1. Map the full relationship network of the cast
2. Identify the relationships that carry the story
3. Design conflicts and alliances with real stakes
4. Plan how relationships evolve over the plot
5. Keep relationships consistent with each character's motivation"""


def _specific_relationship(message: CollaborationMessage, context: AgentContext) -> str:
    ids = message.data.get("characters") or []
    selected = [c for c in (find_by_id(context.characters, i) for i in ids) if c]
    return f"""Please analyze the relationship between these characters:

{to_json(selected) if selected else 'character details are missing'}

Assess the current dynamic, its development potential and its value to the story."""


def _conflict_design(message: CollaborationMessage, context: AgentContext) -> str:
    conflict_type = message.data.get("conflict_type") or "interpersonal"
    return f"""Please design a {conflict_type} conflict for this cast:

{summarize_entries(context.characters, 'no characters recorded yet')}

Provide the conflict design, scenes where it surfaces, and possible resolutions."""


def _network_optimization(message: CollaborationMessage, context: AgentContext) -> str:
    return f"""Please review and optimize the relationship network of this cast:

{summarize_entries(context.characters, 'no characters recorded yet')}

Find isolated characters, redundant relationships and missing tensions."""


STRATEGY = SpecialtyStrategy(
    specialty=Specialty.RELATIONSHIP,
    role="relationship mapper",
    persona=PERSONA,
    task="a character relationship network design",
    focus=(
        "The overall relationship network",
        "Key relationships that drive the plot",
        "Points of conflict",
        "Alliances and loyalties",
        "How relationships evolve over the story",
    ),
    fields={
        "relationship_network": {},
        "key_relationships": [],
        "conflict_points": [],
        "alliances": [],
        "dynamics": [],
        "evolution_plan": {},
    },
    data_example={
        "relationship_network": {"nodes": ["character"], "edges": [{"from": "...", "to": "...", "type": "..."}]},
        "key_relationships": [{"characters": ["...", "..."], "nature": "...", "importance": "score 1-10"}],
        "conflict_points": [{"parties": ["..."], "cause": "...", "escalation": "..."}],
        "alliances": [{"members": ["..."], "basis": "..."}],
        "dynamics": [{"relationship": "...", "pattern": "..."}],
        "evolution_plan": {"stages": [{"phase": "...", "changes": ["..."]}]},
    },
    confidence=0.84,
    collaboration_tags=(
        Specialty.CHARACTER,
        Specialty.DIALOGUE,
        Specialty.PLOT,
        Specialty.OUTLINE,
    ),
    actions=(
        CollaborationAction(
            tag="relationship-analysis",
            label="relationship analysis",
            build_prompt=_specific_relationship,
            fields={
                "relationship_analysis": {},
                "development_potential": {},
                "story_value": {},
            },
        ),
        CollaborationAction(
            tag="conflict-design",
            label="conflict design",
            build_prompt=_conflict_design,
            fields={"conflict_design": {}, "scenarios": [], "resolutions": []},
        ),
        CollaborationAction(
            tag="network-optimization",
            label="network optimization",
            build_prompt=_network_optimization,
            fields={"network_analysis": {}, "optimizations": [], "recommendations": []},
        ),
    ),
)
