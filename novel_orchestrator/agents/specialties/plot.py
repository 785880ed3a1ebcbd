"""Plot advisor - plot review, pacing, logic and engagement."""

from novel_orchestrator.agents.strategy import (
    CollaborationAction,
    SpecialtyStrategy,
    summarize_entries,
)
from novel_orchestrator.models.agent import Specialty
from novel_orchestrator.models.collaboration import CollaborationMessage
from novel_orchestrator.models.context import AgentContext

PERSONA = """You are a professional plot advisor who diagnoses and strengthens novel plots.

Core responsibilities:
1. Review plot structure and identify strengths and weaknesses
2. Assess pacing and the timing of climaxes
3. Check cause and effect for logic holes
4. Evaluate hooks, suspense and emotional payoff
5. Recommend prioritized, concrete improvements"""


def _plot_lines(context: AgentContext) -> str:
    return summarize_entries(context.plot_lines, "no plot lines recorded yet")


def _plot_review(message: CollaborationMessage, context: AgentContext) -> str:
    return f"""Please review the plot of this project:

{_plot_lines(context)}

Genre: {context.project.genre}

Summarize the review, score the plot, list critical issues and recommendations."""


def _pacing_analysis(message: CollaborationMessage, context: AgentContext) -> str:
    return f"""Please analyze the pacing of this plot:

{_plot_lines(context)}

Chapters: {context.project.chapter_count}

Map the rhythm across the story and propose adjustments."""


def _logic_check(message: CollaborationMessage, context: AgentContext) -> str:
    return f"""Please check the following plot for logical consistency:

{_plot_lines(context)}

World rules:
{summarize_entries(context.world_building, 'no world-building recorded yet')}

List each issue with a concrete fix."""


def _engagement_optimization(message: CollaborationMessage, context: AgentContext) -> str:
    return f"""Please make this plot more engaging for {context.project.target_audience or 'its readers'}:

{_plot_lines(context)}

Analyze the current hooks and suspense, then propose optimizations and techniques."""


STRATEGY = SpecialtyStrategy(
    specialty=Specialty.PLOT,
    role="plot advisor",
    persona=PERSONA,
    task="a professional plot analysis and improvement plan",
    focus=(
        "Strengths of the current plot",
        "Weaknesses and risks",
        "Pacing and climax timing",
        "Logic and causality",
        "Reader engagement and suspense",
        "Prioritized improvements",
    ),
    fields={
        "plot_analysis": {},
        "strengths": [],
        "weaknesses": [],
        "improvements": [],
        "pacing": {},
        "logic": {},
        "engagement": {},
    },
    data_example={
        "plot_analysis": {"summary": "...", "structure": "...", "overall_score": "score 1-10"},
        "strengths": [{"aspect": "...", "description": "..."}],
        "weaknesses": [{"aspect": "...", "severity": "score 1-10", "description": "..."}],
        "improvements": [
            {"area": "...", "priority": "score 1-10", "methods": ["..."], "expected_outcome": "..."}
        ],
        "pacing": {"overall_rhythm": "...", "slow_sections": ["..."], "rush_sections": ["..."]},
        "logic": {"consistency": "score 1-10", "plot_holes": ["..."], "believability": "score 1-10"},
        "engagement": {"hooks": ["..."], "suspense": "...", "emotional_impact": "score 1-10"},
    },
    confidence=0.87,
    collaboration_tags=(
        Specialty.OUTLINE,
        Specialty.CHARACTER,
        Specialty.THEME,
        Specialty.WORLD,
    ),
    actions=(
        CollaborationAction(
            tag="plot-review",
            label="plot review",
            build_prompt=_plot_review,
            fields={
                "review_summary": {},
                "scores": {},
                "critical_issues": [],
                "recommendations": [],
            },
        ),
        CollaborationAction(
            tag="pacing-analysis",
            label="pacing analysis",
            build_prompt=_pacing_analysis,
            fields={"pacing_analysis": {}, "rhythm_map": [], "adjustments": []},
        ),
        CollaborationAction(
            tag="logic-check",
            label="logic check",
            build_prompt=_logic_check,
            fields={"logic_check": {}, "issues": [], "fixes": []},
        ),
        CollaborationAction(
            tag="engagement-optimization",
            label="engagement optimization",
            build_prompt=_engagement_optimization,
            fields={"engagement_analysis": {}, "optimizations": [], "techniques": []},
        ),
    ),
)
