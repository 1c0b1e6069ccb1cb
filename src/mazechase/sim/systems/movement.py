from __future__ import annotations

import math
from typing import TYPE_CHECKING, Sequence

from pygame.math import Vector2

from ..core.agent import Agent, kind_config
from ..core.geometry import touches_cell
from ..utils.math2d import _clamp_value, _wrap_angle

if TYPE_CHECKING:
    from ...config import SimulationConfig
    from ..core.state import GameState


def would_collide(state: GameState, x: float, y: float, radius: float) -> bool:
    if touches_cell(state.walls, x, y, radius):
        return True
    for door in state.doors:
        if door.is_open:
            continue
        if abs(door.position.x - x) < radius and abs(door.position.y - y) < radius:
            return True
    return False


def move_agent(state: GameState, config: SimulationConfig, agent: Agent, outputs: Sequence[float]) -> bool:
    """Turn and advance ``agent`` from controller outputs; returns whether it moved.

    Agents holding a door stay still. A blocked step leaves the position
    unchanged but keeps the new heading.
    """
    if agent.is_interacting:
        return False

    speed = outputs[0] * kind_config(config, agent.kind).max_speed
    agent.rotation = _wrap_angle(agent.rotation + (outputs[2] - outputs[1]) * config.movement.turn_rate)

    new_x = agent.position.x + math.cos(agent.rotation) * speed
    new_y = agent.position.y + math.sin(agent.rotation) * speed
    if would_collide(state, new_x, new_y, config.movement.collision_radius):
        return False

    margin = config.movement.boundary_margin
    upper = config.map_size - margin
    agent.position = Vector2(_clamp_value(new_x, margin, upper), _clamp_value(new_y, margin, upper))
    return True
