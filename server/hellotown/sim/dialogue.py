"""Proximity-triggered dialogue between sprites and the unaware sprite's thoughts.

Every generated line goes through the same pipeline: pick a topic, build a
prompt from the pair's shared context, ask the text generator, clean the
first line of the answer and only then mutate world state. Any failure of the
generator drops the attempt without touching the world.
"""

from __future__ import annotations

import asyncio
import logging
import random
import re
from collections.abc import Sequence
from typing import Deque

from hellotown.agents.sprite import STATE_IDLE, Sprite
from hellotown.llm.client import TextGenerator
from hellotown.sim import templates
from hellotown.sim.config import SimConfig
from hellotown.sim.geometry import distance
from hellotown.sim.relations import RELATION_NEUTRAL, update_relationship
from hellotown.sim.world import World


LOGGER = logging.getLogger("hellotown.sim.dialogue")

# "sarah:" or "sarah (village elder):" at the start, "emma: ..." trailing
_LEADING_LABEL_RE = re.compile(r"^\s*[A-Za-z][\w'-]*(?:\s+\([^)]*\))?:\s*")
_TRAILING_LABEL_RE = re.compile(r"\s+[A-Za-z][\w'-]*:\s.*$")
_WRAPPING_QUOTES_RE = re.compile(r"^[\"']|[\"']$")


def clean_dialogue(text: str) -> str:
    lines = text.strip().splitlines()
    if not lines:
        return ""
    line = _LEADING_LABEL_RE.sub("", lines[0], count=1)
    line = _TRAILING_LABEL_RE.sub("", line, count=1)
    line = _WRAPPING_QUOTES_RE.sub("", line)
    return line.strip()


def clean_thought(text: str) -> str:
    return _WRAPPING_QUOTES_RE.sub("", text.strip()).strip()


def choose_topic(recent: Sequence[str], allowed: Sequence[str], rng: random.Random) -> str:
    used = set(recent)
    available = [topic for topic in allowed if topic not in used]
    return rng.choice(available or list(allowed))


def push_topic(recent: Deque[str], topic: str) -> None:
    # overlapping exchanges of one speaker may settle on the same topic
    if topic in recent:
        return
    recent.append(topic)


def record_exchange(world: World, speaker: Sprite, listener: Sprite, exchange: dict) -> None:
    world.conversation_history.append(exchange)
    world.conversations.append(exchange)
    speaker.remember_conversation(exchange)
    listener.remember_conversation(exchange)


class DialogueOrchestrator:
    def __init__(self, generator: TextGenerator, config: SimConfig, rng: random.Random) -> None:
        self.generator = generator
        self.config = config
        self.rng = rng

    def wants_exchange(self, sprite: Sprite, partner: Sprite | None) -> bool:
        if partner is None or partner.id == sprite.id or sprite.is_unaware:
            return False
        if distance(sprite.x, sprite.y, partner.x, partner.y) >= self.config.proximity:
            return False
        if sprite.state != STATE_IDLE:
            return False
        return self.rng.random() < self.config.dialogue_chance

    def _topic_for(self, speaker: Sprite, allowed: Sequence[str]) -> tuple[str, bool]:
        last_topic = speaker.last_topic
        needs_new = (
            last_topic is None
            or last_topic not in allowed
            or self.rng.random() < self.config.topic_change_chance
        )
        if not needs_new:
            return last_topic, False
        return choose_topic(speaker.recent_topics, allowed, self.rng), True

    def _unaware_name(self, world: World) -> str:
        unaware = world.unaware_sprite()
        return (unaware.id if unaware is not None else self.config.unaware_id).capitalize()

    def build_dialogue_prompt(
        self,
        world: World,
        speaker: Sprite,
        listener: Sprite,
        topic: str,
        unaware_present: bool,
    ) -> str:
        history = world.pair_history(speaker.id, listener.id, self.config.pair_history_limit)
        params = {
            "speaker": speaker.id,
            "role": templates.role_suffix(speaker.id),
            "listener": listener.id,
            "topic": topic,
            "history": templates.format_history(history),
            "mood": speaker.current_mood,
            "relationship": speaker.relationships.get(listener.id, RELATION_NEUTRAL),
            "unaware": self._unaware_name(world),
        }
        if unaware_present:
            return templates.render("dialogue_mundane", **params)
        return templates.render(
            "dialogue_backstage",
            angle=self.rng.choice(templates.CONVERSATION_ANGLES),
            **params,
        )

    def build_thought_prompt(self, world: World, sprite: Sprite) -> str:
        recent = world.conversations[-1] if world.conversations else None
        if recent is not None and recent.get("listener") == sprite.id:
            return templates.render(
                "thought_reaction",
                unaware=sprite.id.capitalize(),
                speaker=recent.get("speaker"),
                content=recent.get("content"),
            )
        return templates.render(
            "thought_observation",
            unaware=sprite.id.capitalize(),
            pattern=self.rng.choice(templates.OBSERVATION_PATTERNS),
        )

    async def _generate(self, prompt: str, *, max_tokens: int, temperature: float) -> str | None:
        try:
            return await asyncio.wait_for(
                self.generator.complete(prompt, max_tokens=max_tokens, temperature=temperature),
                timeout=self.config.generation_timeout_sec,
            )
        except asyncio.TimeoutError:
            LOGGER.warning("Text generation timed out after %.1fs", self.config.generation_timeout_sec)
        except Exception as exc:
            LOGGER.warning("Text generation failed type=%s detail=%r", type(exc).__name__, exc)
        return None

    async def exchange(self, world: World, speaker: Sprite, listener: Sprite, now_ms: int) -> dict | None:
        unaware_present = speaker.is_unaware or listener.is_unaware
        allowed = templates.MUNDANE_TOPICS if unaware_present else templates.BACKSTAGE_TOPICS
        topic, is_new_topic = self._topic_for(speaker, allowed)
        prompt = self.build_dialogue_prompt(world, speaker, listener, topic, unaware_present)

        raw = await self._generate(
            prompt,
            max_tokens=self.config.dialogue_max_tokens,
            temperature=self.config.dialogue_temperature,
        )
        content = clean_dialogue(raw) if raw else ""
        if not content:
            LOGGER.warning("Dropped dialogue %s -> %s: no usable text", speaker.id, listener.id)
            return None

        if is_new_topic:
            push_topic(speaker.recent_topics, topic)
        mood = update_relationship(speaker, listener.id, content, now_ms)
        exchange = {
            "speaker": speaker.id,
            "listener": listener.id,
            "content": content,
            "topic": topic,
            "mood": mood,
            "timestamp": now_ms,
        }
        record_exchange(world, speaker, listener, exchange)
        LOGGER.debug("Dialogue %s -> %s topic=%r: %s", speaker.id, listener.id, topic, content)
        return exchange

    async def converse(self, world: World, speaker_id: str, listener_id: str, now_ms: int) -> list[dict]:
        speaker = world.sprites[speaker_id]
        listener = world.sprites[listener_id]

        first = await self.exchange(world, speaker, listener, now_ms)
        if first is None:
            return []
        if not self.config.reciprocal_dialogue:
            return [first]

        reply = await self.exchange(world, listener, speaker, now_ms)
        return [first] if reply is None else [first, reply]

    async def think(self, world: World, sprite_id: str, prompt: str, now_ms: int) -> dict | None:
        sprite = world.sprites[sprite_id]
        raw = await self._generate(
            prompt,
            max_tokens=self.config.thought_max_tokens,
            temperature=self.config.thought_temperature,
        )
        thought = clean_thought(raw) if raw else ""
        if not thought:
            LOGGER.warning("Dropped thought for %s: no usable text", sprite.id)
            return None
        if thought == sprite.last_thought:
            LOGGER.debug("Discarded repeated thought for %s", sprite.id)
            return None

        record = {"spriteId": sprite.id, "thought": thought, "timestamp": now_ms}
        world.thoughts.append(record)
        sprite.thoughts.append(record)
        return record
