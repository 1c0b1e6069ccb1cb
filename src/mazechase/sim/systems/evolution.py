from __future__ import annotations

from typing import TYPE_CHECKING, List

from loguru import logger
from pygame.math import Vector2

from ...rng import DeterministicRng
from ..core.agent import Agent, AgentKind, kind_config
from ..core.network import NeuralNetwork
from ..types.metrics import GenerationSummary
from .metrics import has_escaped, summarize_generation

if TYPE_CHECKING:
    from ...config import SimulationConfig
    from ..core.state import GameState


def new_network(config: SimulationConfig, rng: DeterministicRng) -> NeuralNetwork:
    return NeuralNetwork(config.network_input_size, config.hidden_size, config.output_size, rng)


def create_initial_agent(config: SimulationConfig, kind: AgentKind, index: int, rng: DeterministicRng) -> Agent:
    spawn = kind_config(config, kind)
    return Agent(
        id=f"{kind.value}-{index}",
        kind=kind,
        position=Vector2(spawn.start_x(config.map_size), spawn.start_y + index * spawn.start_y_spacing),
        rotation=spawn.start_rotation,
        health=spawn.max_health,
        network=new_network(config, rng),
    )


def create_offspring(
    config: SimulationConfig, parent: Agent, generation: int, index: int, rng: DeterministicRng
) -> Agent:
    spawn = kind_config(config, parent.kind)
    network = parent.network.clone()
    network.mutate(config.mutation_rate, config.mutation_strength, rng)
    return Agent(
        id=f"{parent.kind.value}-g{generation}-{index}",
        kind=parent.kind,
        position=Vector2(spawn.start_x(config.map_size), spawn.start_y + rng.next_range(0.0, spawn.offspring_y_jitter)),
        rotation=spawn.start_rotation,
        health=spawn.max_health,
        network=network,
    )


def seed_population(config: SimulationConfig, kind: AgentKind, rng: DeterministicRng) -> List[Agent]:
    return [create_initial_agent(config, kind, i, rng) for i in range(config.half_population)]


def should_end_generation(state: GameState, config: SimulationConfig) -> bool:
    if state.time_step >= config.generation.max_ticks:
        return True
    return all(
        not agent.alive or has_escaped(state, config, agent) for agent in state.agents_of(AgentKind.ESCAPER)
    )


def fittest(population: List[Agent]) -> Agent:
    # sorted() is stable, so equal fitness keeps sequence order.
    return sorted(population, key=lambda agent: agent.fitness, reverse=True)[0]


def next_population(
    state: GameState, config: SimulationConfig, kind: AgentKind, rng: DeterministicRng
) -> tuple[List[Agent], bool]:
    """Offspring of the fittest individual of ``kind``, or a fresh seed if none exist."""
    population = state.agents_of(kind)
    if not population:
        logger.debug("[Evolution] {} population empty, reseeding {}", kind.value, config.half_population)
        return seed_population(config, kind, rng), True
    parent = fittest(population)
    generation = state.generation + 1
    offspring = [create_offspring(config, parent, generation, i, rng) for i in range(config.half_population)]
    return offspring, False


def evolve(state: GameState, config: SimulationConfig, rng: DeterministicRng) -> GenerationSummary:
    """Replace every agent with the next generation and advance the counters."""
    summary = summarize_generation(state, config)
    agents: List[Agent] = []
    reseeded: List[str] = []
    for kind in (AgentKind.ESCAPER, AgentKind.PURSUER):
        population, was_reseeded = next_population(state, config, kind, rng)
        agents.extend(population)
        if was_reseeded:
            reseeded.append(kind.value)

    state.agents = agents
    for orb in state.orbs:
        orb.collected = False
    state.generation += 1
    state.time_step = 0
    summary.reseeded = tuple(reseeded)
    logger.info(
        "[Evolution] generation {} finished after {} ticks: escapers alive {}/{}, escaped {}, "
        "best escaper {:.2f}, best pursuer {:.2f}",
        summary.generation,
        summary.ticks,
        summary.escapers_alive,
        summary.escapers,
        summary.escapers_escaped,
        summary.best_escaper_fitness,
        summary.best_pursuer_fitness,
    )
    return summary
