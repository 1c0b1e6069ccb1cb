from __future__ import annotations

import math
from typing import Iterable, Optional, TypeVar

from pygame.math import Vector2

T = TypeVar("T")

TAU = 2.0 * math.pi


def _clamp_value(value: float, min_value: float, max_value: float) -> float:
    return max(min_value, min(max_value, value))


def _wrap_angle(angle: float) -> float:
    return angle % TAU


def _nearest(origin: Vector2, items: Iterable[T], position_of) -> tuple[Optional[T], float]:
    """First item with the strictly smallest distance to ``origin``."""
    best: Optional[T] = None
    best_dist = math.inf
    for item in items:
        dist = origin.distance_to(position_of(item))
        if dist < best_dist:
            best = item
            best_dist = dist
    return best, best_dist
