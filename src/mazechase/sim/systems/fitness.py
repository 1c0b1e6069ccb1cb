from __future__ import annotations

from typing import TYPE_CHECKING

from ..core.agent import Agent, AgentKind
from ..core.geometry import room_key
from ..utils.math2d import _nearest

if TYPE_CHECKING:
    from ...config import SimulationConfig
    from ..core.state import GameState


def reward_exploration(config: SimulationConfig, agent: Agent) -> bool:
    key = room_key(agent.position, config.grid_size)
    if key in agent.visited_rooms:
        return False
    agent.visited_rooms.add(key)
    agent.fitness += config.rewards.room_exploration
    return True


def _shape_escaper(state: GameState, config: SimulationConfig, agent: Agent) -> None:
    rewards = config.rewards
    if state.checkpoints:
        _, checkpoint_dist = _nearest(agent.position, state.checkpoints, lambda c: c)
        agent.fitness += (rewards.checkpoint_scale - checkpoint_dist) / rewards.checkpoint_scale
    if state.doors:
        _, door_dist = _nearest(agent.position, state.doors, lambda d: d.position)
        if door_dist < config.doors.interaction_range:
            agent.fitness += rewards.door_proximity


def _shape_pursuer(state: GameState, config: SimulationConfig, agent: Agent) -> None:
    escapers = state.living(AgentKind.ESCAPER)
    if not escapers:
        return
    rewards = config.rewards
    _, escaper_dist = _nearest(agent.position, escapers, lambda e: e.position)
    agent.fitness += (rewards.pursuit_scale - escaper_dist) / rewards.pursuit_scale


def update_fitness(state: GameState, config: SimulationConfig, agent: Agent) -> None:
    reward_exploration(config, agent)
    if agent.kind is AgentKind.ESCAPER:
        _shape_escaper(state, config, agent)
    elif agent.kind is AgentKind.PURSUER:
        _shape_pursuer(state, config, agent)
    else:
        raise ValueError(f"Unknown agent kind: {agent.kind!r}")
