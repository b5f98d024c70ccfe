from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Literal


STATE_IDLE = "idle"
STATE_MOVING = "moving"

MOOD_POSITIVE = "positive"
MOOD_NEGATIVE = "negative"
MOOD_NEUTRAL = "neutral"

RECENT_TOPICS_LIMIT = 3
SPRITE_HISTORY_LIMIT = 10

SpriteState = Literal["idle", "moving"]


@dataclass
class Point:
    x: float
    y: float

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y}


@dataclass
class SpriteRef:
    """Target that follows another sprite wherever it currently stands."""

    id: str

    def to_dict(self) -> dict:
        return {"id": self.id}


Target = Point | SpriteRef


def target_from_payload(raw: dict | None) -> Target | None:
    if not raw:
        return None
    if raw.get("id"):
        return SpriteRef(id=str(raw["id"]))
    if raw.get("x") is None or raw.get("y") is None:
        return None
    return Point(x=float(raw["x"]), y=float(raw["y"]))


@dataclass
class Sprite:
    id: str
    kind: str
    x: float
    y: float
    is_unaware: bool = False
    momentum_x: float = 0.0
    momentum_y: float = 0.0
    state: SpriteState = STATE_IDLE
    state_timer: int = 0
    current_target: Target | None = None
    current_mood: str = MOOD_NEUTRAL
    relationships: dict[str, str] = field(default_factory=dict)
    recent_topics: Deque[str] = field(default_factory=lambda: deque(maxlen=RECENT_TOPICS_LIMIT))
    last_interaction: dict[str, int] = field(default_factory=dict)
    thoughts: Deque[dict] = field(default_factory=lambda: deque(maxlen=SPRITE_HISTORY_LIMIT))
    conversations: Deque[dict] = field(default_factory=lambda: deque(maxlen=SPRITE_HISTORY_LIMIT))
    last_position: Point | None = None
    stuck_timer: int = 0

    @property
    def position(self) -> Point:
        return Point(self.x, self.y)

    @property
    def last_topic(self) -> str | None:
        return self.recent_topics[-1] if self.recent_topics else None

    @property
    def last_thought(self) -> str | None:
        return self.thoughts[-1].get("thought") if self.thoughts else None

    def remember_conversation(self, exchange: dict) -> None:
        self.conversations.append(exchange)

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.kind,
            "isUnaware": self.is_unaware,
            "x": self.x,
            "y": self.y,
            "momentumX": self.momentum_x,
            "momentumY": self.momentum_y,
            "state": self.state,
            "stateTimer": self.state_timer,
            "currentTarget": self.current_target.to_dict() if self.current_target else None,
            "currentMood": self.current_mood,
            "relationships": dict(self.relationships),
            "recentTopics": list(self.recent_topics),
            "lastInteraction": dict(self.last_interaction),
            "thoughts": list(self.thoughts),
            "conversations": list(self.conversations),
            "lastPosition": self.last_position.to_dict() if self.last_position else None,
            "stuckTimer": self.stuck_timer,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "Sprite":
        last_position = payload.get("lastPosition")
        return cls(
            id=payload["id"],
            kind=payload.get("type") or f"{payload['id'].capitalize()}Sprite",
            x=float(payload["x"]),
            y=float(payload["y"]),
            is_unaware=bool(payload.get("isUnaware", False)),
            momentum_x=float(payload.get("momentumX") or 0.0),
            momentum_y=float(payload.get("momentumY") or 0.0),
            state=payload.get("state") or STATE_IDLE,
            state_timer=int(payload.get("stateTimer") or 0),
            current_target=target_from_payload(payload.get("currentTarget")),
            current_mood=payload.get("currentMood") or MOOD_NEUTRAL,
            relationships=dict(payload.get("relationships") or {}),
            recent_topics=deque(payload.get("recentTopics") or [], maxlen=RECENT_TOPICS_LIMIT),
            last_interaction={key: int(value) for key, value in (payload.get("lastInteraction") or {}).items()},
            thoughts=deque(payload.get("thoughts") or [], maxlen=SPRITE_HISTORY_LIMIT),
            conversations=deque(payload.get("conversations") or [], maxlen=SPRITE_HISTORY_LIMIT),
            last_position=(
                Point(float(last_position["x"]), float(last_position["y"])) if last_position else None
            ),
            stuck_timer=int(payload.get("stuckTimer") or 0),
        )
