from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Set, Tuple

from pygame.math import Vector2

from .network import NeuralNetwork

if TYPE_CHECKING:
    from ...config import AgentKindConfig, SimulationConfig


class AgentKind(str, Enum):
    ESCAPER = "escaper"
    PURSUER = "pursuer"


RoomKey = Tuple[int, int]


@dataclass(slots=True)
class Agent:
    id: str
    kind: AgentKind
    position: Vector2
    rotation: float
    health: float
    network: NeuralNetwork
    fitness: float = 0.0
    is_interacting: bool = False
    collected_orbs: Set[str] = field(default_factory=set)
    visited_rooms: Set[RoomKey] = field(default_factory=set)
    last_door_interaction_tick: int = 0

    @property
    def alive(self) -> bool:
        return self.health > 0


def kind_config(config: "SimulationConfig", kind: AgentKind) -> "AgentKindConfig":
    if kind is AgentKind.ESCAPER:
        return config.escaper
    if kind is AgentKind.PURSUER:
        return config.pursuer
    raise ValueError(f"Unknown agent kind: {kind!r}")
