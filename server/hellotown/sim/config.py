from __future__ import annotations

import os
from dataclasses import dataclass, field

from hellotown.sim.geometry import FORBIDDEN_AREAS, MAP_MAX, MAP_MIN, Rect


def _clamp_int(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def _clamp_float(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _env_int(name: str, default: int, low: int, high: int) -> int:
    try:
        value = int(os.getenv(name, str(default)))
    except ValueError:
        value = default
    return _clamp_int(value, low, high)


def _env_float(name: str, default: float, low: float, high: float) -> float:
    try:
        value = float(os.getenv(name, str(default)))
    except ValueError:
        value = default
    return _clamp_float(value, low, high)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class SimConfig:
    unaware_id: str = "truman"

    # town bounds and obstacles
    map_min: float = MAP_MIN
    map_max: float = MAP_MAX
    forbidden_areas: tuple[Rect, ...] = field(default_factory=lambda: FORBIDDEN_AREAS)

    # steering
    idle_weight: float = 0.6
    idle_dwell: int = 200
    moving_dwell: int = 150
    random_target_chance: float = 0.3
    unaware_retarget_chance: float = 0.4
    damping: float = 0.95
    acceleration: float = 3.0
    spring: float = 0.15
    standoff_distance: float = 80.0
    attract_unaware_chance: float = 0.3
    wander_jitter: float = 100.0
    stuck_threshold: float = 1.5
    stuck_ticks: int = 5

    # dialogue
    proximity: float = 80.0
    dialogue_chance: float = 0.3
    reciprocal_dialogue: bool = True
    topic_change_chance: float = 0.25
    pair_history_limit: int = 5
    dialogue_max_tokens: int = 75
    dialogue_temperature: float = 0.8
    thought_chance: float = 0.02
    thought_max_tokens: int = 50
    thought_temperature: float = 0.7
    generation_timeout_sec: float = 25.0

    # voting
    voting_chance: float = 0.001
    voting_duration_ms: int = 5 * 60 * 1000

    @classmethod
    def from_env(cls) -> "SimConfig":
        return cls(
            unaware_id=os.getenv("SIM_UNAWARE_ID", "truman").strip() or "truman",
            idle_weight=_env_float("SIM_IDLE_WEIGHT", 0.6, 0.0, 1.0),
            idle_dwell=_env_int("SIM_IDLE_DWELL_TICKS", 200, 1, 10_000),
            moving_dwell=_env_int("SIM_MOVING_DWELL_TICKS", 150, 1, 10_000),
            random_target_chance=_env_float("SIM_RANDOM_TARGET_CHANCE", 0.3, 0.0, 1.0),
            unaware_retarget_chance=_env_float("SIM_UNAWARE_RETARGET_CHANCE", 0.4, 0.0, 1.0),
            damping=_env_float("SIM_DAMPING", 0.95, 0.0, 1.0),
            acceleration=_env_float("SIM_ACCELERATION", 3.0, 0.0, 50.0),
            spring=_env_float("SIM_SPRING", 0.15, 0.0, 5.0),
            standoff_distance=_env_float("SIM_STANDOFF_DISTANCE", 80.0, 0.0, 500.0),
            attract_unaware_chance=_env_float("SIM_ATTRACT_UNAWARE_CHANCE", 0.3, 0.0, 1.0),
            stuck_threshold=_env_float("SIM_STUCK_THRESHOLD", 1.5, 0.0, 50.0),
            stuck_ticks=_env_int("SIM_STUCK_TICKS", 5, 1, 1000),
            proximity=_env_float("SIM_PROXIMITY", 80.0, 1.0, 1000.0),
            dialogue_chance=_env_float("SIM_DIALOGUE_CHANCE", 0.3, 0.0, 1.0),
            reciprocal_dialogue=_env_bool("SIM_RECIPROCAL_DIALOGUE", True),
            topic_change_chance=_env_float("SIM_TOPIC_CHANGE_CHANCE", 0.25, 0.0, 1.0),
            dialogue_max_tokens=_env_int("SIM_DIALOGUE_MAX_TOKENS", 75, 16, 1000),
            dialogue_temperature=_env_float("SIM_DIALOGUE_TEMPERATURE", 0.8, 0.0, 2.0),
            thought_chance=_env_float("SIM_THOUGHT_CHANCE", 0.02, 0.0, 1.0),
            thought_max_tokens=_env_int("SIM_THOUGHT_MAX_TOKENS", 50, 16, 1000),
            thought_temperature=_env_float("SIM_THOUGHT_TEMPERATURE", 0.7, 0.0, 2.0),
            generation_timeout_sec=_env_float("SIM_GENERATION_TIMEOUT_SEC", 25.0, 1.0, 180.0),
            voting_chance=_env_float("SIM_VOTING_CHANCE", 0.001, 0.0, 1.0),
            voting_duration_ms=_env_int("SIM_VOTING_DURATION_SEC", 300, 1, 86_400) * 1000,
        )
