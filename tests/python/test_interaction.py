from __future__ import annotations

import math

import pytest
from pygame.math import Vector2

from mazechase.config import SimulationConfig
from mazechase.rng import DeterministicRng
from mazechase.sim.core.agent import Agent, AgentKind
from mazechase.sim.core.geometry import Door, Orb
from mazechase.sim.core.network import NeuralNetwork
from mazechase.sim.core.state import GameState
from mazechase.sim.systems.interaction import (
    advance_doors,
    collect_orbs,
    handle_door_interaction,
    held_door,
    resolve_combat,
)
from mazechase.sim.systems.movement import move_agent, would_collide


def _agent(agent_id: str, kind: AgentKind, x: float, y: float, health: float = 100.0) -> Agent:
    return Agent(
        id=agent_id,
        kind=kind,
        position=Vector2(x, y),
        rotation=0.0,
        health=health,
        network=NeuralNetwork(10, 16, 4, DeterministicRng(0)),
    )


def _state(agents, walls=(), doors=(), orbs=(), time_step: int = 0) -> GameState:
    return GameState(
        agents=list(agents),
        walls=set(walls),
        doors=list(doors),
        orbs=list(orbs),
        checkpoints=[],
        time_step=time_step,
    )


# movement


def test_move_forward_at_full_speed():
    config = SimulationConfig()
    agent = _agent("escaper-0", AgentKind.ESCAPER, 10.0, 10.0)
    state = _state([agent])

    assert move_agent(state, config, agent, [1.0, 0.0, 0.0, 0.0])

    assert agent.position.x == pytest.approx(10.5)
    assert agent.position.y == pytest.approx(10.0)
    assert agent.rotation == 0.0


def test_turn_applies_before_advance_and_wraps():
    config = SimulationConfig()
    agent = _agent("pursuer-0", AgentKind.PURSUER, 10.0, 10.0, health=200.0)
    state = _state([agent])

    move_agent(state, config, agent, [1.0, 1.0, 0.0, 0.0])

    assert agent.rotation == pytest.approx(2 * math.pi - 0.1)
    assert agent.position.x == pytest.approx(10.0 + math.cos(-0.1) * 0.4)
    assert agent.position.y == pytest.approx(10.0 + math.sin(-0.1) * 0.4)


def test_blocked_step_keeps_position_but_not_heading():
    config = SimulationConfig()
    agent = _agent("escaper-0", AgentKind.ESCAPER, 10.0, 10.0)
    state = _state([agent], walls={(11, 10)})

    assert not move_agent(state, config, agent, [1.0, 0.0, 0.5, 0.0])

    assert agent.position == Vector2(10.0, 10.0)
    assert agent.rotation == pytest.approx(0.05)


def test_closed_door_blocks_and_open_door_lets_through():
    config = SimulationConfig()
    door = Door(position=Vector2(11, 10), is_open=False, is_vertical=True)
    agent = _agent("escaper-0", AgentKind.ESCAPER, 10.0, 10.0)
    state = _state([agent], doors=[door])

    assert would_collide(state, 10.5, 10.0, 1.0)
    assert not move_agent(state, config, agent, [1.0, 0.0, 0.0, 0.0])

    door.is_open = True
    assert move_agent(state, config, agent, [1.0, 0.0, 0.0, 0.0])
    assert agent.position.x == pytest.approx(10.5)


def test_position_is_clamped_to_margin():
    config = SimulationConfig()
    agent = _agent("escaper-0", AgentKind.ESCAPER, 58.8, 30.0)
    state = _state([agent])

    assert move_agent(state, config, agent, [1.0, 0.0, 0.0, 0.0])

    assert agent.position.x == pytest.approx(59.0)


def test_interacting_agent_does_not_move():
    config = SimulationConfig()
    agent = _agent("escaper-0", AgentKind.ESCAPER, 10.0, 10.0)
    agent.is_interacting = True
    state = _state([agent])

    assert not move_agent(state, config, agent, [1.0, 1.0, 0.0, 0.0])

    assert agent.position == Vector2(10.0, 10.0)
    assert agent.rotation == 0.0


# doors


def test_door_toggles_once_after_interaction_time():
    config = SimulationConfig()
    door = Door(position=Vector2(14, 7), is_open=False, is_vertical=True)
    agent = _agent("escaper-0", AgentKind.ESCAPER, 12.5, 7.0)
    state = _state([agent], doors=[door])

    toggled_at = []
    for tick in range(1, 22):
        state.time_step = tick
        if advance_doors(state, config):
            toggled_at.append(tick)
            assert door.interaction_progress == 0.0
            assert door.interacting_agent is None
        handle_door_interaction(state, config, agent, 0.9)
        assert 0.0 <= door.interaction_progress <= 1.0

    # Claimed on tick 1, then twenty ticks of progress.
    assert toggled_at == [21]
    assert door.is_open
    assert door.interacting_agent == agent.id


def test_claim_sets_interacting_and_release_resets_progress():
    config = SimulationConfig()
    door = Door(position=Vector2(14, 7), is_open=False, is_vertical=True)
    agent = _agent("escaper-0", AgentKind.ESCAPER, 12.5, 7.0)
    state = _state([agent], doors=[door], time_step=60)

    assert handle_door_interaction(state, config, agent, 0.9) is door
    assert agent.is_interacting
    assert held_door(state, agent.id) is door

    advance_doors(state, config)
    assert door.interaction_progress == pytest.approx(0.05)

    assert handle_door_interaction(state, config, agent, 0.2) is None
    assert not agent.is_interacting
    assert door.interacting_agent is None
    assert door.interaction_progress == 0.0


def test_claimed_door_is_not_available_to_others():
    config = SimulationConfig()
    door = Door(position=Vector2(14, 7), is_open=False, is_vertical=True)
    first = _agent("escaper-0", AgentKind.ESCAPER, 12.5, 7.0)
    second = _agent("pursuer-0", AgentKind.PURSUER, 15.5, 7.0, health=200.0)
    state = _state([first, second], doors=[door], time_step=60)

    handle_door_interaction(state, config, first, 0.9)

    assert handle_door_interaction(state, config, second, 0.9) is None
    assert not second.is_interacting
    assert door.interacting_agent == first.id


def test_door_out_of_range_is_ignored():
    config = SimulationConfig()
    door = Door(position=Vector2(14, 7), is_open=False, is_vertical=True)
    agent = _agent("escaper-0", AgentKind.ESCAPER, 11.0, 7.0)
    state = _state([agent], doors=[door], time_step=60)

    assert handle_door_interaction(state, config, agent, 0.9) is None
    assert door.interacting_agent is None


def test_door_reward_is_debounced():
    config = SimulationConfig()
    door = Door(position=Vector2(14, 7), is_open=False, is_vertical=True)
    agent = _agent("escaper-0", AgentKind.ESCAPER, 12.5, 7.0)
    state = _state([agent], doors=[door], time_step=100)

    handle_door_interaction(state, config, agent, 0.9)
    assert agent.fitness == 30.0
    assert agent.last_door_interaction_tick == 100

    state.time_step = 149
    handle_door_interaction(state, config, agent, 0.9)
    assert agent.fitness == 30.0

    state.time_step = 150
    handle_door_interaction(state, config, agent, 0.9)
    assert agent.fitness == 60.0
    assert agent.last_door_interaction_tick == 150


# orbs


def test_orb_collection_is_per_agent():
    config = SimulationConfig()
    orb = Orb(id="orb-0", position=Vector2(7, 7))
    first = _agent("escaper-0", AgentKind.ESCAPER, 7.5, 7.5)
    second = _agent("escaper-1", AgentKind.ESCAPER, 6.5, 7.0)
    state = _state([first, second], orbs=[orb])

    assert collect_orbs(state, config, first) == 1
    assert collect_orbs(state, config, first) == 0
    assert collect_orbs(state, config, second) == 1

    assert first.fitness == 50.0
    assert second.fitness == 50.0
    assert first.collected_orbs == {"orb-0"}


def test_pursuers_do_not_collect_orbs():
    config = SimulationConfig()
    orb = Orb(id="orb-0", position=Vector2(7, 7))
    pursuer = _agent("pursuer-0", AgentKind.PURSUER, 7.0, 7.0, health=200.0)
    state = _state([pursuer], orbs=[orb])

    assert collect_orbs(state, config, pursuer) == 0
    assert pursuer.fitness == 0.0


def test_globally_collected_orb_is_skipped():
    config = SimulationConfig()
    orb = Orb(id="orb-0", position=Vector2(7, 7), collected=True)
    escaper = _agent("escaper-0", AgentKind.ESCAPER, 7.0, 7.0)
    state = _state([escaper], orbs=[orb])

    assert collect_orbs(state, config, escaper) == 0


# combat


def test_melee_hit_damages_escaper_and_rewards_pursuer():
    config = SimulationConfig()
    escaper = _agent("escaper-0", AgentKind.ESCAPER, 10.0, 10.0)
    pursuer = _agent("pursuer-0", AgentKind.PURSUER, 11.0, 10.0, health=200.0)
    state = _state([escaper, pursuer])

    assert resolve_combat(state, config) == 1

    assert escaper.health == 90.0
    assert pursuer.fitness == 10.0


def test_melee_out_of_range_and_health_floor():
    config = SimulationConfig()
    escaper = _agent("escaper-0", AgentKind.ESCAPER, 10.0, 10.0, health=5.0)
    near = _agent("pursuer-0", AgentKind.PURSUER, 11.0, 10.0, health=200.0)
    far = _agent("pursuer-1", AgentKind.PURSUER, 12.0, 10.0, health=200.0)
    state = _state([escaper, near, far])

    assert resolve_combat(state, config) == 1

    assert escaper.health == 0.0
    assert not escaper.alive
    assert far.fitness == 0.0
    assert resolve_combat(state, config) == 0
