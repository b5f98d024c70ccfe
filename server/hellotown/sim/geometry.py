from __future__ import annotations

import math
from dataclasses import dataclass


MAP_MIN = 50.0
MAP_MAX = 910.0


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    def contains(self, px: float, py: float) -> bool:
        return self.x <= px <= self.x + self.width and self.y <= py <= self.y + self.height


# river running north-south through the whole town
FORBIDDEN_AREAS: tuple[Rect, ...] = (Rect(x=300.0, y=0.0, width=100.0, height=960.0),)


def check_collision(x: float, y: float, areas: tuple[Rect, ...] = FORBIDDEN_AREAS) -> bool:
    return any(area.contains(x, y) for area in areas)


def clamp_position(x: float, y: float, low: float = MAP_MIN, high: float = MAP_MAX) -> tuple[float, float]:
    return max(low, min(high, x)), max(low, min(high, y))


def distance(ax: float, ay: float, bx: float, by: float) -> float:
    return math.sqrt((ax - bx) ** 2 + (ay - by) ** 2)


def unit_vector(dx: float, dy: float) -> tuple[float, float, float]:
    """Return the direction of (dx, dy) and its length; zero-length yields (0, 0, 0)."""
    length = math.sqrt(dx * dx + dy * dy)
    if length < 1e-9:
        return 0.0, 0.0, 0.0
    return dx / length, dy / length, length
