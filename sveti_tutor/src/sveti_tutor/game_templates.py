"""
Game-themed example templates and the keyword topic detector that picks one.
"""

from enum import Enum
from typing import List, Optional


class MathTopic(Enum):
    PERCENT_CHANGE = "percentChange"
    RATIOS = "ratios"
    LINEAR_EQ = "linearEq"


GAME_TEMPLATES = {
    MathTopic.PERCENT_CHANGE: (
        "Use a {game} marketplace example: an item price changes from P_before to P_after. "
        "Ask the student to compute the percent increase/decrease and show steps."
    ),
    MathTopic.RATIOS: (
        "Use a {game} context with resources or items in two groups (A:B). "
        "Ask the student to simplify the ratio and solve a proportional question."
    ),
    MathTopic.LINEAR_EQ: (
        "Use a {game} progression example: total points follow y = m*x + b. "
        "Ask the student to identify m and b, then evaluate for a given x."
    ),
}

# Checked in order; first hit wins
TOPIC_KEYWORDS = [
    (MathTopic.PERCENT_CHANGE, ("%", "percent", "discount")),
    (MathTopic.RATIOS, ("ratio", "proportion")),
    (MathTopic.LINEAR_EQ, ("linear", "slope", "y=")),
]


def detect_topic(text: Optional[str]) -> Optional[MathTopic]:
    """Lightweight keyword scan of the student's latest message."""
    lowered = (text or "").lower()
    # "y = 2x" and "y=2x" should both count
    compact = lowered.replace(" ", "")
    for topic, keywords in TOPIC_KEYWORDS:
        for keyword in keywords:
            if keyword in lowered or (keyword == "y=" and keyword in compact):
                return topic
    return None


def pick_game_for_context(preferences: List[str]) -> Optional[str]:
    return preferences[0] if preferences else None


def render_template(topic: MathTopic, game: str) -> str:
    return GAME_TEMPLATES[topic].format(game=game)
