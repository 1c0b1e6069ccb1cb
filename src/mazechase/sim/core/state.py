from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Set

from pygame.math import Vector2

from ...config import VisionConfig
from .agent import Agent, AgentKind
from .geometry import Cell, Door, Orb


@dataclass
class GameState:
    agents: List[Agent]
    walls: Set[Cell]
    doors: List[Door]
    orbs: List[Orb]
    checkpoints: List[Vector2]
    generation: int = 0
    time_step: int = 0
    vision: VisionConfig = field(default_factory=VisionConfig)

    def agents_of(self, kind: AgentKind) -> List[Agent]:
        return [agent for agent in self.agents if agent.kind is kind]

    def living(self, kind: AgentKind) -> List[Agent]:
        return [agent for agent in self.agents if agent.kind is kind and agent.alive]
