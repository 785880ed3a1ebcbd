"""Dialogue master - character voices and conversation craft."""

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

PERSONA = """You are a professional dialogue master who writes natural, characterful and purposeful dialogue.

Core responsibilities:
1. Give each character a recognizable voice
2. Design conversation patterns that reveal character and advance plot
3. Balance subtext, exposition and rhythm
4. Match language to the setting, era and genre
5. Provide concrete examples and reusable guidelines"""


def _dialogue_optimization(message: CollaborationMessage, context: AgentContext) -> str:
    dialogue = message.data.get("dialogue") or "no dialogue provided"
    return f"""Please improve the following dialogue:

{dialogue}

Genre: {context.project.genre}
Characters:
{summarize_entries(context.characters, 'no characters recorded yet')}

Return an optimized version and explain the techniques you applied."""


def _voice_development(message: CollaborationMessage, context: AgentContext) -> str:
    character = find_by_id(context.characters, message.data.get("character_id"))
    return f"""Please develop a distinctive voice for this character:

{to_json(character) if character else 'character details are missing'}

Describe the voice profile and speech patterns, with example lines."""


def _conversation_design(message: CollaborationMessage, context: AgentContext) -> str:
    scenario = message.data.get("scenario") or "a pivotal scene"
    return f"""Please design the conversation for this scenario: {scenario}

Characters:
{summarize_entries(context.characters, 'no characters recorded yet')}

Outline the conversation's purpose and beats, then write the dialogue."""


STRATEGY = SpecialtyStrategy(
    specialty=Specialty.DIALOGUE,
    role="dialogue master",
    persona=PERSONA,
    task="a dialogue style design",
    focus=(
        "Overall dialogue style for the novel",
        "A distinct voice for each main character",
        "Typical conversation patterns",
        "Language features suited to the setting",
        "Example exchanges",
        "Guidelines the writer can reuse",
    ),
    fields={
        "dialogue_styles": {},
        "character_voices": [],
        "conversation_patterns": [],
        "language_features": {},
        "examples": [],
        "guidelines": {},
    },
    data_example={
        "dialogue_styles": {"overall": "...", "register": "..."},
        "character_voices": [{"character": "...", "tone": "...", "verbal_habits": ["..."]}],
        "conversation_patterns": [{"pattern": "...", "use": "..."}],
        "language_features": {"vocabulary": "...", "idioms": ["..."]},
        "examples": [{"scene": "...", "lines": ["..."]}],
        "guidelines": {"do": ["..."], "avoid": ["..."]},
    },
    confidence=0.89,
    collaboration_tags=(
        Specialty.CHARACTER,
        Specialty.RELATIONSHIP,
        Specialty.PLOT,
        Specialty.WORLD,
    ),
    actions=(
        CollaborationAction(
            tag="dialogue-optimization",
            label="dialogue optimization",
            build_prompt=_dialogue_optimization,
            fields={"optimized_dialogue": "", "improvements": [], "techniques": []},
        ),
        CollaborationAction(
            tag="voice-development",
            label="voice development",
            build_prompt=_voice_development,
            fields={"voice_profile": {}, "speech_patterns": [], "examples": []},
        ),
        CollaborationAction(
            tag="conversation-design",
            label="conversation design",
            build_prompt=_conversation_design,
            fields={"conversation_design": {}, "dialogue": "", "techniques": []},
        ),
    ),
)
