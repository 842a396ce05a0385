"""Prompt templates and canned texts for reflection insights."""

from __future__ import annotations

from typing import Any, Mapping

NOT_SPECIFIED = "Not specified"

INFLUENCE_PROMPT = """As a supportive life coach, analyze these personal patterns and provide gentle, actionable insights:

ENERGY GIVERS: {energyGivers}
ENERGY DRAINERS: {energyDrainers}
STUCK ROUTINES: {stuckRoutines}
EXTERNAL EXPECTATIONS: {expectations}
PRESSURES: {pressures}

Please provide 2-3 compassionate insights that help this person understand hidden patterns in their life. Focus on:
1. Connections they might not have noticed
2. One specific, gentle suggestion for change
3. Validation of their experience

Keep the tone warm, non-judgmental, and encouraging. Limit response to 150 words."""

SUMMARY_PROMPT = """As a supportive coach, create a personalized reflection summary for someone who has completed a self-discovery journey:

THEIR FOCUS: {focus}
KEY LEARNING: {keyLearning}
COMMITMENT: {commitment}

Create a brief, encouraging reflection that:
1. Acknowledges their growth through this process
2. Highlights their key insight
3. Offers gentle encouragement for their next steps

Keep it personal, warm, and hopeful. Limit to 120 words."""

INSIGHT_PREAMBLE = "Here's what I notice from your reflections:\n\n"
SUMMARY_PREAMBLE = "Your journey through this process shows real insight. "

FALLBACK_MESSAGES = {
    "insights": (
        "Take a moment to reflect on the patterns you've identified. What connections do you notice "
        "between your energy givers and drainers? Often, the things that drain us point toward what we "
        "value most. Your insights are forming. Trust the process."
    ),
    "reflection": (
        "You've completed a meaningful journey of self-discovery. The patterns you've uncovered and the "
        "commitment you've made are stepping stones toward the life you want. Trust your insights and take "
        "the next small step when you're ready."
    ),
    "insights_error": (
        "AI insights aren't available right now, but your own reflections are the most valuable part of "
        "this process. Take a moment to look for patterns in what you've written. What surprises you most?"
    ),
    "reflection_error": (
        "While AI summary isn't available, you've done the real work of understanding your patterns and "
        "making a commitment to change. That's what creates lasting transformation."
    ),
}
DEFAULT_FALLBACK = "Your insights are the most important part of this journey."


def _value(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key) if isinstance(data, Mapping) else None
    if isinstance(value, str) and value.strip():
        return value
    if isinstance(value, list) and value:
        return ", ".join(str(item) for item in value)
    return NOT_SPECIFIED


def _section(data: Mapping[str, Any], section: str) -> Mapping[str, Any]:
    value = data.get(section) if isinstance(data, Mapping) else None
    return value if isinstance(value, Mapping) else {}


def render_influence_prompt(influences: Mapping[str, Any]) -> str:
    """Fill the influence template from the influences section answers."""
    keys = ("energyGivers", "energyDrainers", "stuckRoutines", "expectations", "pressures")
    return INFLUENCE_PROMPT.format(**{key: _value(influences, key) for key in keys})


def render_summary_prompt(document: Mapping[str, Any]) -> str:
    """Fill the journey summary template from the full journal document."""
    return SUMMARY_PROMPT.format(
        focus=_value(_section(document, "focus"), "wantMore"),
        keyLearning=_value(_section(document, "patterns"), "keyLearning"),
        commitment=_value(_section(document, "commitment"), "commitmentText"),
    )


def fallback_message(kind: str) -> str:
    return FALLBACK_MESSAGES.get(kind, DEFAULT_FALLBACK)


def format_insight_response(text: str) -> str:
    formatted = text.strip()
    lowered = formatted.lower()
    if "notice" not in lowered and "see" not in lowered:
        formatted = INSIGHT_PREAMBLE + formatted
    return formatted


def format_summary_response(text: str) -> str:
    formatted = text.strip()
    if "you" not in formatted.lower():
        formatted = SUMMARY_PREAMBLE + formatted
    return formatted


__all__ = [
    "FALLBACK_MESSAGES",
    "INSIGHT_PREAMBLE",
    "NOT_SPECIFIED",
    "SUMMARY_PREAMBLE",
    "fallback_message",
    "format_insight_response",
    "format_summary_response",
    "render_influence_prompt",
    "render_summary_prompt",
]
