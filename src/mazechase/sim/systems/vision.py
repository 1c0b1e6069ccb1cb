"""Ray-cast perception.

Everything here is a pure function of an agent view and a :class:`WorldView`
captured once per tick, so the same code runs inline or on an executor.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, List, Sequence, Tuple

from ...config import SimulationConfig, VisionConfig
from ..core.agent import Agent, AgentKind, kind_config
from ..core.geometry import Cell, touches_cell

if TYPE_CHECKING:
    from ..core.network import NeuralNetwork
    from ..core.state import GameState


class HitKind(str, Enum):
    WALL = "wall"
    DOOR = "door"
    CHECKPOINT = "checkpoint"
    ESCAPER = "escaper"
    PURSUER = "pursuer"
    NONE = "none"


_AGENT_HITS = {
    AgentKind.ESCAPER: HitKind.ESCAPER,
    AgentKind.PURSUER: HitKind.PURSUER,
}


@dataclass(frozen=True, slots=True)
class RayHit:
    kind: HitKind
    distance: float


@dataclass(frozen=True, slots=True)
class AgentView:
    id: str
    kind: AgentKind
    x: float
    y: float
    rotation: float
    health_fraction: float
    alive: bool

    @classmethod
    def of(cls, agent: Agent, config: SimulationConfig) -> "AgentView":
        max_health = kind_config(config, agent.kind).max_health
        return cls(
            id=agent.id,
            kind=agent.kind,
            x=agent.position.x,
            y=agent.position.y,
            rotation=agent.rotation,
            health_fraction=agent.health / max_health,
            alive=agent.alive,
        )


@dataclass(frozen=True)
class WorldView:
    walls: frozenset[Cell]
    closed_doors: Tuple[Tuple[float, float], ...]
    checkpoints: Tuple[Tuple[float, float], ...]
    agents: Tuple[AgentView, ...]
    vision: VisionConfig
    time_step: int

    @classmethod
    def capture(cls, state: "GameState", config: SimulationConfig) -> "WorldView":
        return cls(
            walls=frozenset(state.walls),
            closed_doors=tuple((door.position.x, door.position.y) for door in state.doors if not door.is_open),
            checkpoints=tuple((c.x, c.y) for c in state.checkpoints),
            agents=tuple(AgentView.of(agent, config) for agent in state.agents),
            vision=state.vision,
            time_step=state.time_step,
        )


def _probe(x: float, y: float, view: WorldView, self_id: str) -> HitKind | None:
    vision = view.vision
    if touches_cell(view.walls, x, y, vision.wall_radius):
        return HitKind.WALL
    radius = vision.door_radius
    for dx, dy in view.closed_doors:
        if abs(dx - x) < radius and abs(dy - y) < radius:
            return HitKind.DOOR
    radius = vision.checkpoint_radius
    for cx, cy in view.checkpoints:
        if abs(cx - x) < radius and abs(cy - y) < radius:
            return HitKind.CHECKPOINT
    radius = vision.agent_radius
    for other in view.agents:
        if other.id == self_id or not other.alive:
            continue
        if abs(other.x - x) < radius and abs(other.y - y) < radius:
            return _AGENT_HITS[other.kind]
    return None


def cast_ray(origin_x: float, origin_y: float, heading: float, view: WorldView, self_id: str) -> RayHit:
    vision = view.vision
    dx = math.cos(heading)
    dy = math.sin(heading)
    distance = 0.0
    while distance < vision.range:
        distance += vision.step
        kind = _probe(origin_x + dx * distance, origin_y + dy * distance, view, self_id)
        if kind is not None:
            return RayHit(kind, distance)
    return RayHit(HitKind.NONE, vision.range)


def ray_angles(vision: VisionConfig) -> List[float]:
    if vision.ray_count == 1:
        return [0.0]
    step = vision.angle / (vision.ray_count - 1)
    start = -vision.angle / 2
    return [start + step * i for i in range(vision.ray_count)]


def agent_vision(agent: AgentView, view: WorldView) -> List[RayHit]:
    return [
        cast_ray(agent.x, agent.y, agent.rotation + angle, view, agent.id)
        for angle in ray_angles(view.vision)
    ]


def build_percept(agent: AgentView, view: WorldView, hits: Sequence[RayHit] | None = None) -> List[float]:
    if hits is None:
        hits = agent_vision(agent, view)
    vision = view.vision
    percept = [hit.distance / vision.range for hit in hits]
    percept.append(agent.health_fraction)
    percept.append(view.time_step / vision.time_normalizer)
    return percept


def think(agent: AgentView, network: "NeuralNetwork", view: WorldView) -> List[float]:
    return network.forward(build_percept(agent, view))
