from __future__ import annotations

import random

from hellotown.agents.sprite import STATE_IDLE, STATE_MOVING, Point, Sprite, SpriteRef, Target
from hellotown.sim.config import SimConfig
from hellotown.sim.geometry import unit_vector
from hellotown.sim.world import World


def resolve_target(target: Target | None, world: World) -> Point | None:
    if target is None:
        return None
    if isinstance(target, SpriteRef):
        other = world.sprites.get(target.id)
        return other.position if other is not None else None
    return target


def random_point(rng: random.Random, config: SimConfig) -> Point:
    return Point(
        x=rng.uniform(config.map_min, config.map_max),
        y=rng.uniform(config.map_min, config.map_max),
    )


def _track_stuck(sprite: Sprite, world: World, config: SimConfig) -> None:
    last = sprite.last_position or sprite.position
    displacement = abs(sprite.x - last.x) + abs(sprite.y - last.y)
    if displacement < config.stuck_threshold:
        sprite.stuck_timer += 1
        if sprite.stuck_timer > config.stuck_ticks:
            unaware = world.unaware_sprite()
            sprite.momentum_x = 0.0
            sprite.momentum_y = 0.0
            if unaware is not None:
                sprite.current_target = Point(unaware.x, unaware.y)
            sprite.stuck_timer = 0
    else:
        sprite.stuck_timer = 0
    sprite.last_position = sprite.position


def _roll_state(sprite: Sprite, world: World, rng: random.Random, config: SimConfig) -> None:
    sprite.state = STATE_IDLE if rng.random() < config.idle_weight else STATE_MOVING
    sprite.state_timer = config.idle_dwell if sprite.state == STATE_IDLE else config.moving_dwell

    if sprite.state == STATE_MOVING and rng.random() < config.random_target_chance:
        sprite.current_target = random_point(rng, config)

    if sprite.is_unaware and rng.random() < config.unaware_retarget_chance:
        others = [other.id for other in world.ordered_sprites() if other.id != sprite.id]
        if others:
            sprite.current_target = SpriteRef(id=rng.choice(others))


def steer(
    sprite: Sprite,
    attractor: Point,
    world: World,
    rng: random.Random,
    config: SimConfig,
) -> tuple[float, float]:
    """Advance the sprite's idle/moving state machine and return its new momentum.

    Mutates the sprite's behavior bookkeeping (state, timers, target, stuck
    tracking) but leaves position and momentum for the caller to integrate.
    """
    _track_stuck(sprite, world, config)

    sprite.state_timer -= 1
    if sprite.state_timer <= 0:
        _roll_state(sprite, world, rng, config)

    if sprite.state == STATE_IDLE:
        return 0.0, 0.0

    target = resolve_target(sprite.current_target, world)
    if target is None:
        sprite.current_target = None
    else:
        ux, uy, _ = unit_vector(target.x - sprite.x, target.y - sprite.y)
        return (
            sprite.momentum_x * config.damping + ux * config.acceleration,
            sprite.momentum_y * config.damping + uy * config.acceleration,
        )

    standoff = 0.0 if sprite.is_unaware else config.standoff_distance
    ux, uy, dist = unit_vector(attractor.x - sprite.x, attractor.y - sprite.y)
    strength = (dist - standoff) * config.spring
    return (
        sprite.momentum_x * config.damping + ux * strength,
        sprite.momentum_y * config.damping + uy * strength,
    )
