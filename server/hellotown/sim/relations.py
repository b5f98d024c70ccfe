from __future__ import annotations

from hellotown.agents.sprite import MOOD_NEGATIVE, MOOD_NEUTRAL, MOOD_POSITIVE, Sprite


# order matters: positive wins when both sets match
MOOD_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    (MOOD_POSITIVE, ("happy", "great", "wonderful", "agree", "yes")),
    (MOOD_NEGATIVE, ("concerned", "worried", "disagree", "no", "problem")),
)

RELATION_NEUTRAL = "neutral"


def classify_sentiment(text: str) -> str:
    normalized = text.lower()
    for mood, keywords in MOOD_KEYWORDS:
        if any(keyword in normalized for keyword in keywords):
            return mood
    return MOOD_NEUTRAL


def update_relationship(speaker: Sprite, listener_id: str, content: str, now_ms: int) -> str:
    speaker.relationships.setdefault(listener_id, RELATION_NEUTRAL)
    speaker.current_mood = classify_sentiment(content)
    speaker.last_interaction[listener_id] = now_ms
    return speaker.current_mood
