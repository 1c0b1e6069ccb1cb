from __future__ import annotations

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml


@dataclass
class AgentKindConfig:
    max_speed: float = 0.5
    max_health: float = 100.0
    start_x_offset: float = 5.0
    start_from_far_edge: bool = False
    start_rotation: float = 0.0
    start_y: float = 5.0
    start_y_spacing: float = 2.0
    offspring_y_jitter: float = 10.0

    def start_x(self, map_size: int) -> float:
        if self.start_from_far_edge:
            return map_size - self.start_x_offset
        return self.start_x_offset


def _default_escaper() -> AgentKindConfig:
    return AgentKindConfig(max_speed=0.5, max_health=100.0, start_rotation=0.0)


def _default_pursuer() -> AgentKindConfig:
    return AgentKindConfig(max_speed=0.4, max_health=200.0, start_from_far_edge=True, start_rotation=math.pi)


@dataclass
class VisionConfig:
    ray_count: int = 8
    angle: float = math.pi / 2
    range: float = 10.0
    step: float = 0.5
    wall_radius: float = 0.5
    door_radius: float = 0.5
    checkpoint_radius: float = 1.0
    agent_radius: float = 0.5
    time_normalizer: float = 1000.0


@dataclass
class DoorConfig:
    interaction_time: int = 20
    interaction_range: float = 3.0
    intent_threshold: float = 0.5
    reward: float = 30.0
    reward_cooldown_ticks: int = 50


@dataclass
class RewardConfig:
    room_exploration: float = 100.0
    orb: float = 50.0
    orb_collection_range: float = 2.0
    door_proximity: float = 0.5
    checkpoint_scale: float = 1000.0
    pursuit_scale: float = 100.0


@dataclass
class CombatConfig:
    melee_range: float = 2.0
    damage: float = 10.0
    reward: float = 10.0


@dataclass
class MovementConfig:
    turn_rate: float = 0.1
    collision_radius: float = 1.0
    boundary_margin: float = 1.0


@dataclass
class GenerationConfig:
    max_ticks: int = 1000
    escape_radius: float = 2.0


@dataclass
class SchedulingConfig:
    initial_batch_size: int = 10
    max_batch_size: int = 50
    ticks_per_speed_unit: float = 2.0
    render_speed_limit: float = 5.0


@dataclass
class SimulationConfig:
    map_size: int = 60
    population_size: int = 20
    seed: Optional[int] = None
    grid_size: int = 14
    hidden_size: int = 16
    output_size: int = 4
    mutation_rate: float = 0.2
    mutation_strength: float = 0.1
    checkpoint_inset: float = 5.0
    vision: VisionConfig = field(default_factory=VisionConfig)
    doors: DoorConfig = field(default_factory=DoorConfig)
    rewards: RewardConfig = field(default_factory=RewardConfig)
    combat: CombatConfig = field(default_factory=CombatConfig)
    movement: MovementConfig = field(default_factory=MovementConfig)
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    scheduling: SchedulingConfig = field(default_factory=SchedulingConfig)
    escaper: AgentKindConfig = field(default_factory=_default_escaper)
    pursuer: AgentKindConfig = field(default_factory=_default_pursuer)

    @property
    def network_input_size(self) -> int:
        return self.vision.ray_count + 2

    @property
    def half_population(self) -> int:
        return self.population_size // 2

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        return load_config(data)


_SECTIONS = {
    "vision": VisionConfig,
    "doors": DoorConfig,
    "rewards": RewardConfig,
    "combat": CombatConfig,
    "movement": MovementConfig,
    "generation": GenerationConfig,
    "scheduling": SchedulingConfig,
}


def load_config(raw: dict) -> SimulationConfig:
    sections = {name: section(**raw.get(name, {})) for name, section in _SECTIONS.items()}

    def _kind(name: str, default: AgentKindConfig) -> AgentKindConfig:
        values = raw.get(name, {})
        merged = {**default.__dict__, **values}
        return AgentKindConfig(**merged)

    escaper = _kind("escaper", _default_escaper())
    pursuer = _kind("pursuer", _default_pursuer())
    sim_values = {k: v for k, v in raw.items() if k not in {*_SECTIONS, "escaper", "pursuer"}}
    return SimulationConfig(escaper=escaper, pursuer=pursuer, **sections, **sim_values)
