from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, List

from ..core.agent import Agent, AgentKind
from ..types.metrics import GenerationSummary

if TYPE_CHECKING:
    from ...config import SimulationConfig
    from ..core.state import GameState


def has_escaped(state: GameState, config: SimulationConfig, agent: Agent) -> bool:
    radius = config.generation.escape_radius
    return any(agent.position.distance_to(checkpoint) < radius for checkpoint in state.checkpoints)


def _best(values: List[float]) -> float:
    return max(values) if values else 0.0


def _average(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _fitness(agents: Iterable[Agent]) -> List[float]:
    return [agent.fitness for agent in agents]


def summarize_generation(state: GameState, config: SimulationConfig) -> GenerationSummary:
    escapers = state.agents_of(AgentKind.ESCAPER)
    pursuers = state.agents_of(AgentKind.PURSUER)
    escaper_fitness = _fitness(escapers)
    pursuer_fitness = _fitness(pursuers)
    return GenerationSummary(
        generation=state.generation,
        ticks=state.time_step,
        escapers=len(escapers),
        escapers_alive=sum(1 for agent in escapers if agent.alive),
        escapers_escaped=sum(1 for agent in escapers if agent.alive and has_escaped(state, config, agent)),
        pursuers=len(pursuers),
        best_escaper_fitness=_best(escaper_fitness),
        best_pursuer_fitness=_best(pursuer_fitness),
        average_escaper_fitness=_average(escaper_fitness),
        average_pursuer_fitness=_average(pursuer_fitness),
        orbs_collected=sum(len(agent.collected_orbs) for agent in escapers),
    )
