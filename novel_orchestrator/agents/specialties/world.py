"""World builder - settings, history, cultures and systems."""

from novel_orchestrator.agents.strategy import (
    CollaborationAction,
    SpecialtyStrategy,
    summarize_entries,
)
from novel_orchestrator.models.agent import Specialty
from novel_orchestrator.models.collaboration import CollaborationMessage
from novel_orchestrator.models.context import AgentContext

PERSONA = """You are a professional world builder who creates rich, coherent and believable fictional worlds.

Core responsibilities:
1. Design geography, climate and environment
2. Build history, chronology and major past events
3. Create cultures, customs, languages and religions
4. Define social structure, politics and economy
5. Establish the rules of technology or magic and their costs
6. Keep every element internally consistent"""


def _world_expansion(message: CollaborationMessage, context: AgentContext) -> str:
    category = message.data.get("category") or "any underdeveloped area"
    return f"""Please expand the world setting in this category: {category}

Existing world-building:
{summarize_entries(context.world_building, 'no world-building recorded yet')}

Genre: {context.project.genre}

Add concrete details and explain how they connect to what already exists."""


def _consistency_check(message: CollaborationMessage, context: AgentContext) -> str:
    return f"""Please check the following world-building for internal consistency:

{summarize_entries(context.world_building, 'no world-building recorded yet')}

Report contradictions, their severity, and how to reconcile them."""


def _culture_detail(message: CollaborationMessage, context: AgentContext) -> str:
    culture = message.data.get("culture_name") or "the main culture of the setting"
    return f"""Please develop the culture "{culture}" in detail.

World context:
{summarize_entries(context.world_building, 'no world-building recorded yet')}

Cover daily life, traditions, values, taboos and relations with other cultures."""


STRATEGY = SpecialtyStrategy(
    specialty=Specialty.WORLD,
    role="world builder",
    persona=PERSONA,
    task="a complete world-building design",
    focus=(
        "Geography and environment",
        "History and key events",
        "Cultures, society and politics",
        "Technology or magic systems and their rules",
        "Consistency with the theme and story",
    ),
    fields={
        "world_elements": {},
        "geography": {},
        "history": {},
        "culture": {},
        "society": {},
        "technology": {},
        "magic": {},
        "politics": {},
        "economy": {},
        "religion": {},
    },
    data_example={
        "world_elements": {"name": "world name", "tone": "...", "core_rules": ["..."]},
        "geography": {"regions": [{"name": "...", "climate": "...", "features": "..."}]},
        "history": {"eras": [{"name": "...", "events": ["..."]}]},
        "culture": {"cultures": [{"name": "...", "values": ["..."], "customs": ["..."]}]},
        "society": {"structure": "...", "classes": ["..."]},
        "technology": {"level": "...", "key_technologies": ["..."]},
        "magic": {"exists": True, "rules": ["..."], "costs": ["..."]},
        "politics": {"powers": [{"name": "...", "goals": "..."}]},
        "economy": {"resources": ["..."], "trade": "..."},
        "religion": {"faiths": [{"name": "...", "beliefs": "..."}]},
    },
    confidence=0.87,
    collaboration_tags=(
        Specialty.THEME,
        Specialty.CHARACTER,
        Specialty.OUTLINE,
        Specialty.PLOT,
    ),
    actions=(
        CollaborationAction(
            tag="world-expansion",
            label="world expansion",
            build_prompt=_world_expansion,
            fields={"details": {}, "connections": []},
        ),
        CollaborationAction(
            tag="consistency-check",
            label="consistency check",
            build_prompt=_consistency_check,
            fields={"consistency_report": {}, "conflicts": [], "recommendations": []},
        ),
        CollaborationAction(
            tag="culture-detail",
            label="culture detail",
            build_prompt=_culture_detail,
            fields={"culture_details": {}, "traditions": [], "relationships": []},
        ),
    ),
)
