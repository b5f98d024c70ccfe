from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque

from hellotown.agents.sprite import Sprite
from hellotown.db.models import WorldIn


WORLD_HISTORY_LIMIT = 50

# id, x, y; the first entry is the unaware resident
INITIAL_POPULATION: tuple[tuple[str, float, float], ...] = (
    ("truman", 450.0, 500.0),
    ("sarah", 450.0, 450.0),
    ("michael", 550.0, 550.0),
    ("emma", 420.0, 500.0),
    ("james", 600.0, 400.0),
    ("olivia", 500.0, 600.0),
    ("william", 200.0, 350.0),
    ("sophia", 650.0, 650.0),
)


def _history() -> Deque[dict]:
    return deque(maxlen=WORLD_HISTORY_LIMIT)


@dataclass
class World:
    sprites: dict[str, Sprite]
    time: int = 0
    thoughts: Deque[dict] = field(default_factory=_history)
    conversations: Deque[dict] = field(default_factory=_history)
    conversation_history: Deque[dict] = field(default_factory=_history)
    current_event: dict | None = None
    votes: dict[str, str] = field(default_factory=dict)
    active_voting: bool = False
    voting_options: list[str] = field(default_factory=list)

    def ordered_sprites(self) -> list[Sprite]:
        return list(self.sprites.values())

    def unaware_sprite(self) -> Sprite | None:
        for sprite in self.sprites.values():
            if sprite.is_unaware:
                return sprite
        return None

    def pair_history(self, speaker_id: str, listener_id: str, limit: int) -> list[dict]:
        """Most recent exchanges between exactly these two sprites, newest first."""
        pair = {speaker_id, listener_id}
        items: list[dict] = []
        for exchange in reversed(self.conversation_history):
            if {exchange.get("speaker"), exchange.get("listener")} != pair:
                continue
            items.append(exchange)
            if len(items) >= limit:
                break
        return items

    def to_payload(self) -> dict[str, Any]:
        return {
            "sprites": [sprite.to_payload() for sprite in self.ordered_sprites()],
            "time": self.time,
            "thoughts": list(self.thoughts),
            "conversations": list(self.conversations),
            "conversationHistory": list(self.conversation_history),
            "currentEvent": dict(self.current_event) if self.current_event else None,
            "votes": dict(self.votes),
            "activeVoting": self.active_voting,
            "votingOptions": list(self.voting_options),
        }

    @classmethod
    def from_payload(cls, payload: Any) -> "World":
        validated = WorldIn.model_validate(payload)
        sprites: dict[str, Sprite] = {}
        for sprite_in in validated.sprites:
            if sprite_in.id in sprites:
                raise ValueError(f"duplicate sprite id {sprite_in.id!r}")
            sprites[sprite_in.id] = Sprite.from_payload(sprite_in.model_dump())

        return cls(
            sprites=sprites,
            time=validated.time,
            thoughts=deque(validated.thoughts, maxlen=WORLD_HISTORY_LIMIT),
            conversations=deque(validated.conversations, maxlen=WORLD_HISTORY_LIMIT),
            conversation_history=deque(validated.conversationHistory, maxlen=WORLD_HISTORY_LIMIT),
            current_event=validated.currentEvent.model_dump() if validated.currentEvent else None,
            votes=dict(validated.votes),
            active_voting=validated.activeVoting,
            voting_options=list(validated.votingOptions),
        )


def initial_world(now_ms: int, unaware_id: str = "truman") -> World:
    sprites: dict[str, Sprite] = {}
    for sprite_id, x, y in INITIAL_POPULATION:
        sprites[sprite_id] = Sprite(
            id=sprite_id,
            kind=f"{sprite_id.capitalize()}Sprite",
            x=x,
            y=y,
            is_unaware=sprite_id == unaware_id,
        )
    return World(sprites=sprites, time=now_ms)
