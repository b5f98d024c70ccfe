import random

import pytest

from conftest import NOW_MS
from hellotown.sim.config import SimConfig
from hellotown.sim.world_events import (
    EVENT_COMMUNITY_VOTE,
    VOTING_OPTIONS,
    VotingClosedError,
    cast_vote,
    close_vote,
    open_vote,
    step_voting,
)


def test_vote_opens_when_roll_succeeds(world):
    config = SimConfig(voting_chance=1.0)

    step_voting(world, NOW_MS, random.Random(1), config)

    assert world.active_voting
    assert world.votes == {}
    assert world.voting_options == list(VOTING_OPTIONS)
    assert world.current_event == {
        "type": EVENT_COMMUNITY_VOTE,
        "title": world.current_event["title"],
        "startedAt": NOW_MS,
        "endsAt": NOW_MS + 5 * 60 * 1000,
    }


def test_vote_stays_closed_when_roll_fails(world):
    step_voting(world, NOW_MS, random.Random(1), SimConfig(voting_chance=0.0))

    assert not world.active_voting
    assert world.current_event is None


def test_vote_closes_after_duration(world):
    config = SimConfig(voting_chance=0.0)
    open_vote(world, NOW_MS, config)
    cast_vote(world, "viewer-1", VOTING_OPTIONS[0])

    step_voting(world, NOW_MS + config.voting_duration_ms - 1, random.Random(1), config)
    assert world.active_voting

    step_voting(world, NOW_MS + config.voting_duration_ms, random.Random(1), config)
    assert not world.active_voting
    assert world.current_event is None
    assert world.votes == {"viewer-1": VOTING_OPTIONS[0]}


def test_closing_vote_keeps_options(world):
    open_vote(world, NOW_MS, SimConfig())
    close_vote(world)

    assert world.voting_options == list(VOTING_OPTIONS)


def test_event_without_end_uses_start_plus_duration(world):
    config = SimConfig(voting_chance=0.0)
    world.active_voting = True
    world.voting_options = list(VOTING_OPTIONS)
    world.current_event = {"type": EVENT_COMMUNITY_VOTE, "title": "t", "startedAt": NOW_MS}

    step_voting(world, NOW_MS + config.voting_duration_ms, random.Random(1), config)

    assert not world.active_voting


class TestCastVote:
    def test_requires_open_vote(self, world):
        with pytest.raises(VotingClosedError):
            cast_vote(world, "viewer-1", VOTING_OPTIONS[0])

    def test_rejects_unknown_option(self, world):
        open_vote(world, NOW_MS, SimConfig())
        with pytest.raises(ValueError):
            cast_vote(world, "viewer-1", "Flood the town")

    def test_last_vote_wins(self, world):
        open_vote(world, NOW_MS, SimConfig())
        cast_vote(world, "viewer-1", VOTING_OPTIONS[0])
        cast_vote(world, "viewer-1", VOTING_OPTIONS[2])

        assert world.votes == {"viewer-1": VOTING_OPTIONS[2]}
