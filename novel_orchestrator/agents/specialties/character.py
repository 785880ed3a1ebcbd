"""Character designer - profiles, motivations and arcs."""

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

PERSONA = """You are a professional character designer who creates vivid, layered and memorable characters.

Core responsibilities:
1. Build full character profiles and backgrounds
2. Shape personality, motivations, fears and desires
3. Plan each character's growth arc
4. Define how characters relate to one another
5. Give each character a distinct voice and presence
6. Fit characters to the world and the theme"""


def _character_block(message: CollaborationMessage, context: AgentContext) -> str:
    character = find_by_id(context.characters, message.data.get("character_id"))
    return to_json(character) if character else "character details are missing"


def _character_development(message: CollaborationMessage, context: AgentContext) -> str:
    return f"""Please deepen the design of this character:

Character: {_character_block(message, context)}

Genre: {context.project.genre}
World:
{summarize_entries(context.world_building, 'no world-building recorded yet')}

Suggest psychological, relational and growth-related development."""


def _relationship_analysis(message: CollaborationMessage, context: AgentContext) -> str:
    return f"""Please analyze the relationships among these characters:

{summarize_entries(context.characters, 'no characters recorded yet')}

Map the relationships and identify conflicts, alliances and dynamics."""


def _arc_planning(message: CollaborationMessage, context: AgentContext) -> str:
    return f"""Please plan the growth arc for this character:

Character: {_character_block(message, context)}

Plot lines:
{summarize_entries(context.plot_lines, 'no plot lines recorded yet')}

Lay out milestones, turning points and the challenges that drive change."""


def _dialogue_style(message: CollaborationMessage, context: AgentContext) -> str:
    return f"""Please design a dialogue style for this character:

Character: {_character_block(message, context)}

Describe vocabulary, rhythm and verbal habits, with example lines."""


STRATEGY = SpecialtyStrategy(
    specialty=Specialty.CHARACTER,
    role="character designer",
    persona=PERSONA,
    task="a detailed character design",
    focus=(
        "Core personality and inner conflict",
        "Background story and formative experiences",
        "The character's arc across the story",
        "Relationships with other characters",
        "Distinct dialogue style and behaviour",
        "Physical description and signature traits",
        "Fit with the world and the theme",
    ),
    fields={
        "character_profile": {},
        "personality": {},
        "background": {},
        "motivations": {},
        "relationships": [],
        "character_arc": {},
        "dialogue": {},
        "physical_description": {},
    },
    data_example={
        "character_profile": {"name": "...", "age": "...", "role": "protagonist"},
        "personality": {"traits": ["..."], "strengths": ["..."], "flaws": ["..."]},
        "background": {"origin": "...", "key_events": ["..."]},
        "motivations": {"goal": "...", "need": "...", "fear": "..."},
        "relationships": [{"with": "...", "type": "...", "dynamic": "..."}],
        "character_arc": {"start": "...", "turning_points": ["..."], "end": "..."},
        "dialogue": {"tone": "...", "verbal_habits": ["..."]},
        "physical_description": {"appearance": "...", "distinguishing_features": ["..."]},
    },
    confidence=0.86,
    collaboration_tags=(
        Specialty.THEME,
        Specialty.WORLD,
        Specialty.OUTLINE,
        Specialty.RELATIONSHIP,
        Specialty.DIALOGUE,
    ),
    actions=(
        CollaborationAction(
            tag="character-development",
            label="character development",
            build_prompt=_character_development,
            fields={"development": {}, "psychological_depth": {}, "growth_potential": {}},
        ),
        CollaborationAction(
            tag="relationship-analysis",
            label="relationship analysis",
            build_prompt=_relationship_analysis,
            fields={
                "relationship_map": {},
                "conflicts": [],
                "alliances": [],
                "dynamics": [],
            },
        ),
        CollaborationAction(
            tag="arc-planning",
            label="arc planning",
            build_prompt=_arc_planning,
            fields={"arc": {}, "milestones": [], "challenges": []},
        ),
        CollaborationAction(
            tag="dialogue-style",
            label="dialogue style design",
            build_prompt=_dialogue_style,
            fields={"dialogue_style": {}, "examples": [], "guidelines": []},
        ),
    ),
)
