"""Theme planner - market-aware theme analysis and creative direction."""

from novel_orchestrator.agents.strategy import (
    CollaborationAction,
    SpecialtyStrategy,
    to_json,
)
from novel_orchestrator.models.agent import Specialty
from novel_orchestrator.models.collaboration import CollaborationMessage
from novel_orchestrator.models.context import AgentContext

PERSONA = """You are a professional novel theme planner with deep experience in market analysis and creative guidance.

Core responsibilities:
1. Analyze current market trends and reader preferences
2. Assess a theme's commercial potential and creative feasibility
3. Propose concrete directions for developing the theme
4. Account for the needs of the target readership
5. Tailor advice to the conventions of the genre

Analysis framework:
- Thematic depth: philosophical and social meaning
- Market fit: how well the theme is received today
- Originality: room for a distinctive take
- Execution difficulty: what the theme demands of the writer
- Reader resonance: the expected emotional response"""


def _evaluate_theme(message: CollaborationMessage, context: AgentContext) -> str:
    theme = message.data.get("theme")
    return f"""Please evaluate the following theme proposal:

Theme: {to_json(theme) if theme else 'not provided'}

Project:
- Genre: {context.project.genre}
- Target audience: {context.project.target_audience}

Assess it from both a market and a creative-feasibility standpoint."""


def _market_analysis(message: CollaborationMessage, context: AgentContext) -> str:
    return f"""Please provide a current market analysis for {context.project.genre or 'this'} fiction.

Target audience: {context.project.target_audience}

Focus on:
1. Current hot topics and trends
2. Shifts in reader preferences
3. Successful comparable titles
4. Market opportunities"""


STRATEGY = SpecialtyStrategy(
    specialty=Specialty.THEME,
    role="theme planner",
    persona=PERSONA,
    task="an in-depth theme analysis and plan",
    focus=(
        "Depth and breadth of the theme",
        "Feasibility in the current market",
        "Expected reception by the target readers",
        "Concrete creative directions",
        "Common pitfalls to avoid",
    ),
    fields={
        "theme_analysis": {},
        "market_trends": [],
        "target_audience_insights": {},
        "recommended_directions": [],
        "genre_considerations": {},
    },
    data_example={
        "theme_analysis": {
            "core_theme": "core theme",
            "sub_themes": ["sub-theme 1", "sub-theme 2"],
            "philosophical_depth": "score 1-10",
            "emotional_impact": "score 1-10",
        },
        "market_trends": [
            {"trend": "trend name", "relevance": "score 1-10", "description": "..."}
        ],
        "target_audience_insights": {
            "primary_audience": "main readership",
            "interests": ["interest 1"],
            "reading_habits": "...",
        },
        "recommended_directions": [
            {"direction": "...", "rationale": "...", "difficulty": "score 1-10"}
        ],
        "genre_considerations": {
            "strengths": ["..."],
            "challenges": ["..."],
            "opportunities": ["..."],
        },
    },
    confidence=0.85,
    collaboration_tags=(
        Specialty.WORLD,
        Specialty.CHARACTER,
        Specialty.OUTLINE,
        Specialty.PLOT,
    ),
    actions=(
        CollaborationAction(
            tag="theme-evaluation",
            label="theme evaluation",
            build_prompt=_evaluate_theme,
            fields={"evaluation": {}, "market_score": 0, "feasibility_score": 0},
        ),
        CollaborationAction(
            tag="market-analysis",
            label="market analysis",
            build_prompt=_market_analysis,
            fields={"market_trends": [], "opportunities": [], "risks": []},
        ),
    ),
)
