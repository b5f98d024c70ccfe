from __future__ import annotations

import asyncio
import copy
import logging
import random
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from hellotown.agents.sprite import Point, Sprite
from hellotown.db.store import WorldStore, store_from_env
from hellotown.llm.client import LLMClient, TextGenerator
from hellotown.sim.config import SimConfig
from hellotown.sim.dialogue import DialogueOrchestrator
from hellotown.sim.geometry import check_collision, clamp_position
from hellotown.sim.steering import steer
from hellotown.sim.world import World, initial_world
from hellotown.sim.world_events import cast_vote, step_voting


LOGGER = logging.getLogger("hellotown.sim.engine")


def _now_ms() -> int:
    return int(time.time() * 1000)


def integrate(sprite: Sprite, config: SimConfig) -> bool:
    """Apply momentum to position. A move into a forbidden area is rejected with a bounce."""
    new_x, new_y = clamp_position(
        sprite.x + sprite.momentum_x,
        sprite.y + sprite.momentum_y,
        config.map_min,
        config.map_max,
    )
    if check_collision(new_x, new_y, config.forbidden_areas):
        sprite.momentum_x = -sprite.momentum_x
        sprite.momentum_y = -sprite.momentum_y
        return False
    sprite.x = new_x
    sprite.y = new_y
    return True


@dataclass
class TickPlan:
    exchanges: list[tuple[str, str]] = field(default_factory=list)
    thoughts: list[tuple[str, str]] = field(default_factory=list)


class WorldEngine:
    def __init__(
        self,
        generator: TextGenerator,
        config: SimConfig | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self.config = config or SimConfig()
        self.rng = rng or random.Random()
        self.clock = clock or _now_ms
        self.dialogue = DialogueOrchestrator(generator, self.config, self.rng)

    def new_world(self) -> World:
        return initial_world(self.clock(), unaware_id=self.config.unaware_id)

    def _pick_attractor(self, sprite: Sprite, world: World) -> tuple[Point, Sprite | None]:
        if sprite.is_unaware:
            jitter = self.config.wander_jitter
            return (
                Point(
                    sprite.x + (self.rng.random() - 0.5) * jitter,
                    sprite.y + (self.rng.random() - 0.5) * jitter,
                ),
                None,
            )

        unaware = world.unaware_sprite()
        others = [other for other in world.ordered_sprites() if other.id != sprite.id and not other.is_unaware]
        if unaware is not None and (not others or self.rng.random() < self.config.attract_unaware_chance):
            partner = unaware
        elif others:
            partner = self.rng.choice(others)
        else:
            return sprite.position, None
        return partner.position, partner

    def _plan(self, world: World) -> TickPlan:
        plan = TickPlan()
        for sprite in world.ordered_sprites():
            attractor, partner = self._pick_attractor(sprite, world)
            sprite.momentum_x, sprite.momentum_y = steer(sprite, attractor, world, self.rng, self.config)
            LOGGER.debug(
                "%s position=(%.1f, %.1f) state=%s timer=%d",
                sprite.id,
                sprite.x,
                sprite.y,
                sprite.state,
                sprite.state_timer,
            )

            if self.dialogue.wants_exchange(sprite, partner):
                plan.exchanges.append((sprite.id, partner.id))
            if sprite.is_unaware and self.rng.random() < self.config.thought_chance:
                plan.thoughts.append((sprite.id, self.dialogue.build_thought_prompt(world, sprite)))
        return plan

    async def _run_generation(self, world: World, plan: TickPlan, now_ms: int) -> None:
        jobs = [
            self.dialogue.converse(world, speaker_id, listener_id, now_ms)
            for speaker_id, listener_id in plan.exchanges
        ]
        jobs.extend(
            self.dialogue.think(world, sprite_id, prompt, now_ms)
            for sprite_id, prompt in plan.thoughts
        )
        if jobs:
            await asyncio.gather(*jobs)

    async def advance(self, world: World) -> World:
        """Return the world one tick later. The given world is never mutated."""
        next_world = copy.deepcopy(world)
        now_ms = max(self.clock(), next_world.time)

        plan = self._plan(next_world)
        for sprite in next_world.ordered_sprites():
            if not integrate(sprite, self.config):
                LOGGER.debug("%s bounced off an obstacle at (%.1f, %.1f)", sprite.id, sprite.x, sprite.y)

        await self._run_generation(next_world, plan, now_ms)
        step_voting(next_world, now_ms, self.rng, self.config)
        next_world.time = now_ms
        return next_world


class TownSimulation:
    """Single-flight read-modify-write of the stored world."""

    def __init__(self, store: WorldStore, engine: WorldEngine) -> None:
        self.store = store
        self.engine = engine
        self._lock = asyncio.Lock()

    @classmethod
    def from_env(cls) -> "TownSimulation":
        engine = WorldEngine(LLMClient.from_env(), config=SimConfig.from_env())
        return cls(store=store_from_env(), engine=engine)

    async def load_world(self) -> World:
        payload = await asyncio.to_thread(self.store.load)
        if payload is None:
            LOGGER.info("No stored world, starting from the initial population")
            return self.engine.new_world()
        try:
            return World.from_payload(payload)
        except ValueError as exc:
            LOGGER.warning("Stored world is malformed, starting from the initial population: %s", exc)
            return self.engine.new_world()

    async def tick(self) -> World:
        async with self._lock:
            world = await self.load_world()
            next_world = await self.engine.advance(world)
            await asyncio.to_thread(self.store.store, next_world.to_payload())
            return next_world

    async def vote(self, voter_id: str, option: str) -> World:
        async with self._lock:
            world = await self.load_world()
            cast_vote(world, voter_id, option)
            await asyncio.to_thread(self.store.store, world.to_payload())
            return world
