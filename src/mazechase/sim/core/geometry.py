"""Static maze geometry: wall cells, doors, orbs and escape checkpoints."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Set, Tuple

from pygame.math import Vector2

from ...rng import DeterministicRng

Cell = Tuple[int, int]


@dataclass(slots=True)
class Door:
    position: Vector2
    is_open: bool
    is_vertical: bool
    interaction_progress: float = 0.0
    interacting_agent: Optional[str] = None


@dataclass(slots=True)
class Orb:
    id: str
    position: Vector2
    collected: bool = False


def generate_grid_maze(map_size: int, grid_size: int, rng: DeterministicRng) -> tuple[Set[Cell], List[Door]]:
    """Build corridor walls every ``grid_size`` cells with one door per room opening.

    Vertical lines are emitted before horizontal ones, and each door's initial
    open state is an independent coin flip.
    """
    walls: Set[Cell] = set()
    doors: List[Door] = []
    half = grid_size / 2

    for x in range(grid_size, map_size, grid_size):
        for y in range(map_size):
            if y % grid_size == half:
                doors.append(Door(position=Vector2(x, y), is_open=rng.next_bool(), is_vertical=True))
            else:
                walls.add((x, y))

    for y in range(grid_size, map_size, grid_size):
        for x in range(map_size):
            if x % grid_size == half:
                doors.append(Door(position=Vector2(x, y), is_open=rng.next_bool(), is_vertical=False))
            else:
                walls.add((x, y))

    for i in range(map_size):
        walls.add((0, i))
        walls.add((map_size - 1, i))
        walls.add((i, 0))
        walls.add((i, map_size - 1))

    return walls, doors


def generate_orbs(map_size: int, grid_size: int) -> List[Orb]:
    orbs: List[Orb] = []
    half = grid_size / 2
    limit = map_size - half
    x = half
    while x < limit:
        y = half
        while y < limit:
            orbs.append(Orb(id=f"orb-{len(orbs)}", position=Vector2(x, y)))
            y += grid_size
        x += grid_size
    return orbs


def default_checkpoints(map_size: int, inset: float = 5.0) -> List[Vector2]:
    return [
        Vector2(map_size - inset, inset),
        Vector2(map_size - inset, map_size - inset),
    ]


def room_key(position: Vector2, grid_size: int) -> Cell:
    return (math.floor(position.x / grid_size), math.floor(position.y / grid_size))


def cells_within(value: float, radius: float) -> range:
    """Integer coordinates ``k`` with ``abs(k - value) < radius``."""
    return range(math.floor(value - radius) + 1, math.ceil(value + radius))


def touches_cell(cells: Set[Cell] | frozenset[Cell], x: float, y: float, radius: float) -> bool:
    """True when any cell in ``cells`` lies inside the open box of half-width ``radius`` around (x, y)."""
    for cx in cells_within(x, radius):
        for cy in cells_within(y, radius):
            if (cx, cy) in cells:
                return True
    return False
