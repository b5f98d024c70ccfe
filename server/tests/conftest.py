"""Shared fixtures for simulation tests."""

from __future__ import annotations

import asyncio
import random

import pytest

from hellotown.agents.sprite import Sprite
from hellotown.sim.config import SimConfig
from hellotown.sim.engine import WorldEngine
from hellotown.sim.world import World, initial_world


NOW_MS = 1_700_000_000_000


class FakeTextGenerator:
    """Scripted stand-in for the text-generation service.

    Returns queued responses in order and keeps repeating the last one.
    """

    def __init__(self, responses: list[str | None] | None = None, error: Exception | None = None, delay: float = 0.0):
        self.responses = list(responses or [])
        self.error = error
        self.delay = delay
        self.prompts: list[str] = []
        self.calls: list[dict] = []

    async def complete(self, prompt: str, *, max_tokens: int, temperature: float) -> str | None:
        self.prompts.append(prompt)
        self.calls.append({"max_tokens": max_tokens, "temperature": temperature})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if not self.responses:
            return None
        if len(self.responses) == 1:
            return self.responses[0]
        return self.responses.pop(0)


class FixedClock:
    def __init__(self, now: int = NOW_MS):
        self.now = now

    def __call__(self) -> int:
        return self.now


def quiet_config(**overrides) -> SimConfig:
    """Reference config with every random gate closed unless overridden."""
    params = {
        "dialogue_chance": 0.0,
        "thought_chance": 0.0,
        "voting_chance": 0.0,
        "topic_change_chance": 0.0,
    }
    params.update(overrides)
    return SimConfig(**params)


def small_world(*sprites: Sprite) -> World:
    return World(sprites={sprite.id: sprite for sprite in sprites}, time=NOW_MS - 1000)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def world() -> World:
    return initial_world(NOW_MS - 1000)


@pytest.fixture
def make_engine(rng, clock):
    def _make(generator=None, **overrides) -> WorldEngine:
        return WorldEngine(
            generator or FakeTextGenerator(),
            config=quiet_config(**overrides),
            rng=rng,
            clock=clock,
        )

    return _make
