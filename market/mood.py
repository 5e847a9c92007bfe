"""Market mood -- bounded, mean-reverting sentiment driven by the composite."""

from __future__ import annotations

from core.models.market import NewsItem
from core.models.state import MarketMood, MoodLabel

MOOD_LIMIT = 10.0
MOOD_DECAY = 0.95


def mood_label(value: float) -> MoodLabel:
    if value > 3:
        return "bullish"
    if value > 1:
        return "positive"
    if value < -3:
        return "bearish"
    if value < -1:
        return "negative"
    return "neutral"


def update_mood(mood: MarketMood, composite_change: float) -> None:
    """Nudge mood by the composite's percent move, decay toward zero, clamp."""
    value = mood.value
    if composite_change > 0.5:
        value += 0.5
    elif composite_change > 0.1:
        value += 0.2
    elif composite_change < -0.5:
        value -= 0.5
    elif composite_change < -0.1:
        value -= 0.2

    value *= MOOD_DECAY
    mood.value = max(-MOOD_LIMIT, min(MOOD_LIMIT, value))
    mood.label = mood_label(mood.value)


def market_move_news(composite_change: float, threshold: float) -> NewsItem | None:
    """Market-wide headline for a large composite move, else None."""
    if abs(composite_change) <= threshold:
        return None
    if composite_change > 0:
        return NewsItem(
            headline=f"Market rallies as NOW Average climbs {composite_change:.2f}%",
            content="Broad buying lifted stocks across sectors.",
            impact="positive",
            is_market_wide=True,
        )
    return NewsItem(
        headline=f"Market slides as NOW Average drops {abs(composite_change):.2f}%",
        content="Broad selling pushed stocks lower across sectors.",
        impact="negative",
        is_market_wide=True,
    )
