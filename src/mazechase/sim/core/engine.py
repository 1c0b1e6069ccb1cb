from __future__ import annotations

import math
from concurrent.futures import Executor
from dataclasses import replace
from itertools import repeat
from time import perf_counter
from typing import List, Optional

from loguru import logger

from ...config import SimulationConfig
from ...rng import DeterministicRng
from ..systems import evolution, fitness, interaction, movement
from ..systems.snapshot import decode_snapshot, encode_state
from ..systems.vision import WorldView, think
from ..types.metrics import GenerationSummary, TickMetrics
from ..types.snapshot import SnapshotDecodeError
from .agent import AgentKind
from .geometry import default_checkpoints, generate_grid_maze, generate_orbs
from .state import GameState


class GameEngine:
    """Owns one simulation: geometry, both populations and the generation counter.

    Engines share no state with each other. Each tick runs door progress,
    perception and inference for every living agent, then applies the results
    in agent order, then combat and the end-of-generation check.
    """

    def __init__(
        self,
        map_size: Optional[int] = None,
        population_size: Optional[int] = None,
        *,
        config: Optional[SimulationConfig] = None,
        rng: Optional[DeterministicRng] = None,
        executor: Optional[Executor] = None,
    ):
        config = config if config is not None else SimulationConfig()
        overrides = {}
        if map_size is not None:
            overrides["map_size"] = map_size
        if population_size is not None:
            overrides["population_size"] = population_size
        self._config = replace(config, **overrides) if overrides else config
        self._rng = rng if rng is not None else DeterministicRng(self._config.seed)
        self._executor = executor
        scheduling = self._config.scheduling
        self._speed_multiplier = 1.0
        self._batch_size = max(1, scheduling.initial_batch_size)
        self._should_render = True
        self._last_summary: Optional[GenerationSummary] = None
        self._state = self._initialize_game()

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def batch_size(self) -> int:
        return self._batch_size

    @property
    def speed_multiplier(self) -> float:
        return self._speed_multiplier

    @property
    def last_summary(self) -> Optional[GenerationSummary]:
        return self._last_summary

    def get_state(self) -> GameState:
        return self._state

    def should_render_frame(self) -> bool:
        return self._should_render

    def set_simulation_speed(self, multiplier: float) -> None:
        scheduling = self._config.scheduling
        self._speed_multiplier = multiplier
        self._should_render = multiplier <= scheduling.render_speed_limit
        batch = math.ceil(multiplier * scheduling.ticks_per_speed_unit)
        self._batch_size = max(1, min(batch, scheduling.max_batch_size))

    def _initialize_game(self) -> GameState:
        config = self._config
        agents = evolution.seed_population(config, AgentKind.ESCAPER, self._rng)
        agents.extend(evolution.seed_population(config, AgentKind.PURSUER, self._rng))
        walls, doors = generate_grid_maze(config.map_size, config.grid_size, self._rng)
        return GameState(
            agents=agents,
            walls=walls,
            doors=doors,
            orbs=generate_orbs(config.map_size, config.grid_size),
            checkpoints=default_checkpoints(config.map_size, config.checkpoint_inset),
            vision=config.vision,
        )

    def _regenerate_geometry(self) -> None:
        config = self._config
        walls, doors = generate_grid_maze(config.map_size, config.grid_size, self._rng)
        self._state.walls = walls
        self._state.doors = doors
        self._state.orbs = generate_orbs(config.map_size, config.grid_size)
        logger.debug("[GameEngine] regenerated maze geometry ({} doors)", len(doors))

    def update(self) -> None:
        """Run up to ``batch_size`` ticks, returning early after a generation change."""
        for _ in range(self._batch_size):
            if self.step().evolved:
                break

    def _decide(self, view: WorldView) -> List[Optional[List[float]]]:
        agents = self._state.agents
        living = [i for i, agent in enumerate(agents) if agent.alive]
        views = [view.agents[i] for i in living]
        networks = [agents[i].network for i in living]
        if self._executor is not None:
            results = list(self._executor.map(think, views, networks, repeat(view)))
        else:
            results = list(map(think, views, networks, repeat(view)))
        decisions: List[Optional[List[float]]] = [None] * len(agents)
        for index, outputs in zip(living, results):
            decisions[index] = outputs
        return decisions

    def step(self) -> TickMetrics:
        start = perf_counter()
        config = self._config
        state = self._state
        state.time_step += 1
        tick = state.time_step
        generation = state.generation

        toggled = interaction.advance_doors(state, config)
        decisions = self._decide(WorldView.capture(state, config))

        intent = config.output_size - 1
        for agent, outputs in zip(state.agents, decisions):
            if outputs is None:
                continue
            movement.move_agent(state, config, agent, outputs)
            interaction.handle_door_interaction(state, config, agent, outputs[intent])
            interaction.collect_orbs(state, config, agent)
            fitness.update_fitness(state, config, agent)

        hits = interaction.resolve_combat(state, config)
        escapers_alive = len(state.living(AgentKind.ESCAPER))
        pursuers_alive = len(state.living(AgentKind.PURSUER))
        doors_open = sum(1 for door in state.doors if door.is_open)

        summary = None
        if self.should_end_generation():
            summary = self._evolve()

        return TickMetrics(
            tick=tick,
            generation=generation,
            escapers_alive=escapers_alive,
            pursuers_alive=pursuers_alive,
            doors_open=doors_open,
            doors_toggled=len(toggled),
            combat_hits=hits,
            evolved=summary is not None,
            summary=summary,
            tick_duration_ms=(perf_counter() - start) * 1000.0,
        )

    def should_end_generation(self) -> bool:
        return evolution.should_end_generation(self._state, self._config)

    def _evolve(self) -> GenerationSummary:
        summary = evolution.evolve(self._state, self._config, self._rng)
        if summary.reseeded:
            self._regenerate_geometry()
        self._last_summary = summary
        return summary

    def save_state(self) -> str:
        return encode_state(self._state)

    def load_state(self, snapshot: str | bytes) -> None:
        """Replace the live generation with ``snapshot``.

        Walls and checkpoints are kept. On :class:`SnapshotDecodeError` the
        engine is left exactly as it was.
        """
        try:
            decoded = decode_snapshot(snapshot, self._config)
        except SnapshotDecodeError as exc:
            logger.warning("[GameEngine] rejected snapshot: {}", exc)
            raise
        state = self._state
        state.agents = decoded.agents
        state.doors = decoded.doors
        state.orbs = decoded.orbs
        state.generation = decoded.generation
        state.time_step = decoded.time_step
        logger.info(
            "[GameEngine] loaded generation {} at tick {} ({} agents)",
            decoded.generation,
            decoded.time_step,
            len(decoded.agents),
        )
