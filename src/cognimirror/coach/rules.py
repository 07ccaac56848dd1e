"""Rule-based coach messages derived from a cognitive summary.

Rules (all that apply fire, in this order):
- tired: low accuracy together with a declining accuracy trend
- resilient: most errors are immediately corrected
- fluency: outstanding (>= ceiling) or needs consistency (< floor)
- slow: average reaction time above ceiling
Fallback: a generic encouragement when no rule fires.
"""

from __future__ import annotations

from cognimirror.models.types import CognitiveSummary

# Tiredness
TIRED_ACCURACY_FLOOR = 60.0  # Below this accuracy...
TIRED_FATIGUE_CEILING = -0.1  # ...and a slope below this = tired

# Resilience
RESILIENCE_SELF_CORRECTION_FLOOR = 0.5  # Above this = resilient

# Fluency bands
FLUENCY_HIGH = 1000.0  # At or above = outstanding
FLUENCY_LOW = 700.0  # Below = work on consistency

# Reaction time
SLOW_RT_CEILING_MS = 1500.0  # Above this = slow

MSG_NO_DATA = "Not enough data yet. Play a few sessions to activate the coach."
MSG_TIRED = "You seem tired. Let's take a short break and come back at an easier level."
MSG_RESILIENT = "Excellent resilience! You recover quickly after a mistake."
MSG_FLUENCY_HIGH = "Outstanding cognitive fluency. Keep the pace and focus on precision."
MSG_FLUENCY_LOW = "Work on consistency: breathe, look at the pattern and act calmly."
MSG_SLOW = "Reaction times are a bit high. Try to anticipate the next step visually."
MSG_DEFAULT = "Good progress. Keep practicing to consolidate your gains."


def get_coach_messages(summary: CognitiveSummary | None) -> list[str]:
    """Compute coach messages for a summary.

    Args:
        summary: Cognitive summary, or None when no sessions exist yet.

    Returns:
        Non-empty list of messages.
    """
    if summary is None:
        return [MSG_NO_DATA]

    messages: list[str] = []

    if summary.accuracy < TIRED_ACCURACY_FLOOR and summary.fatigue < TIRED_FATIGUE_CEILING:
        messages.append(MSG_TIRED)

    if summary.self_correction_rate > RESILIENCE_SELF_CORRECTION_FLOOR:
        messages.append(MSG_RESILIENT)

    if summary.fluency >= FLUENCY_HIGH:
        messages.append(MSG_FLUENCY_HIGH)
    elif summary.fluency < FLUENCY_LOW:
        messages.append(MSG_FLUENCY_LOW)

    if summary.avg_rt > SLOW_RT_CEILING_MS:
        messages.append(MSG_SLOW)

    if not messages:
        messages.append(MSG_DEFAULT)

    return messages
