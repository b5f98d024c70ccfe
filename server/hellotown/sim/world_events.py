from __future__ import annotations

import logging
import random

from hellotown.sim.config import SimConfig
from hellotown.sim.world import World


LOGGER = logging.getLogger("hellotown.sim.world_events")

EVENT_COMMUNITY_VOTE = "community_vote"
VOTE_TITLE = "What should happen next in HelloWorldTown?"

VOTING_OPTIONS: tuple[str, ...] = (
    "Host a surprise town festival",
    "Send a mysterious stranger to town",
    "Make it rain all afternoon",
    "Close the bridge for repairs",
)


class VotingClosedError(RuntimeError):
    pass


def open_vote(world: World, now_ms: int, config: SimConfig) -> None:
    world.active_voting = True
    world.votes = {}
    world.voting_options = list(VOTING_OPTIONS)
    world.current_event = {
        "type": EVENT_COMMUNITY_VOTE,
        "title": VOTE_TITLE,
        "startedAt": now_ms,
        "endsAt": now_ms + config.voting_duration_ms,
    }
    LOGGER.info("Community vote opened until %s", world.current_event["endsAt"])


def close_vote(world: World) -> None:
    world.active_voting = False
    world.current_event = None
    LOGGER.info("Community vote closed with %d recorded votes", len(world.votes))


def step_voting(world: World, now_ms: int, rng: random.Random, config: SimConfig) -> None:
    if not world.active_voting:
        if rng.random() < config.voting_chance:
            open_vote(world, now_ms, config)
        return

    event = world.current_event or {}
    ends_at = event.get("endsAt")
    if ends_at is None:
        ends_at = int(event.get("startedAt", world.time)) + config.voting_duration_ms
    if now_ms >= int(ends_at):
        close_vote(world)


def cast_vote(world: World, voter_id: str, option: str) -> None:
    if not world.active_voting:
        raise VotingClosedError("no community vote is open")
    if option not in world.voting_options:
        raise ValueError(f"unknown voting option {option!r}")
    world.votes[voter_id] = option
