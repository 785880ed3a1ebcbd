"""Outline architect - story structure, plot lines and chapter planning."""

from novel_orchestrator.agents.strategy import (
    CollaborationAction,
    SpecialtyStrategy,
    summarize_entries,
    to_json,
)
from novel_orchestrator.models.agent import Specialty
from novel_orchestrator.models.collaboration import CollaborationMessage
from novel_orchestrator.models.context import AgentContext

PERSONA = """You are a professional novel outline architect who designs sound story structures and compelling plot progressions.

Core responsibilities:
1. Design the overall story structure (three acts, hero's journey, or another fitting model)
2. Plan main and secondary plot lines and how they interleave
3. Break the story into chapters with clear purposes
4. Control pacing, tension and the placement of climaxes
5. Keep structure consistent with the theme, world and characters"""


def _structure_analysis(message: CollaborationMessage, context: AgentContext) -> str:
    return f"""Please analyze the current structure of this project.

Existing plot lines:
{summarize_entries(context.plot_lines, 'no plot lines recorded yet')}

Genre: {context.project.genre}
Chapters written: {context.project.chapter_count}

Identify structural strengths and weaknesses and recommend concrete changes."""


def _plot_integration(message: CollaborationMessage, context: AgentContext) -> str:
    plot_lines = message.data.get("plot_lines") or context.plot_lines
    return f"""Please integrate the following plot lines into one coherent structure:

{to_json(plot_lines) if plot_lines else 'no plot lines provided'}

Produce a unified timeline, point out where the lines conflict, and propose resolutions."""


def _pacing_optimization(message: CollaborationMessage, context: AgentContext) -> str:
    return f"""Please review and optimize the pacing of this {context.project.genre or ''} novel.

Current length: {context.project.word_count} words across {context.project.chapter_count} chapters.
Plot lines:
{summarize_entries(context.plot_lines, 'no plot lines recorded yet')}

Locate slow and rushed stretches and place the key tension points."""


STRATEGY = SpecialtyStrategy(
    specialty=Specialty.OUTLINE,
    role="outline architect",
    persona=PERSONA,
    task="a complete story outline design",
    focus=(
        "Overall story structure",
        "Main and secondary plot lines",
        "A chapter-by-chapter outline",
        "Pacing and tension",
        "Core conflicts and climax points",
    ),
    fields={
        "story_structure": {},
        "plot_lines": [],
        "chapter_outline": [],
        "pacing": {},
        "conflicts": [],
        "climax_points": [],
    },
    data_example={
        "story_structure": {"model": "three-act", "acts": [{"name": "...", "summary": "..."}]},
        "plot_lines": [{"name": "...", "type": "main or sub", "arc": "..."}],
        "chapter_outline": [{"chapter": 1, "title": "...", "purpose": "...", "events": ["..."]}],
        "pacing": {"overall": "...", "tension_curve": ["..."]},
        "conflicts": [{"type": "...", "parties": ["..."], "stakes": "..."}],
        "climax_points": [{"chapter": 10, "description": "..."}],
    },
    confidence=0.88,
    collaboration_tags=(
        Specialty.THEME,
        Specialty.CHARACTER,
        Specialty.WORLD,
        Specialty.PLOT,
        Specialty.DIALOGUE,
    ),
    actions=(
        CollaborationAction(
            tag="structure-analysis",
            label="structure analysis",
            build_prompt=_structure_analysis,
            fields={
                "structure_analysis": {},
                "strengths": [],
                "weaknesses": [],
                "recommendations": [],
            },
        ),
        CollaborationAction(
            tag="plot-integration",
            label="plot integration",
            build_prompt=_plot_integration,
            fields={
                "integrated_structure": {},
                "timeline": [],
                "conflicts": [],
                "resolutions": [],
            },
        ),
        CollaborationAction(
            tag="pacing-optimization",
            label="pacing optimization",
            build_prompt=_pacing_optimization,
            fields={"pacing_analysis": {}, "optimizations": [], "tension_points": []},
        ),
    ),
)
