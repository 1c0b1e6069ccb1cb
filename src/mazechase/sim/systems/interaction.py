from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

from ..core.agent import Agent, AgentKind
from ..core.geometry import Door

if TYPE_CHECKING:
    from ...config import SimulationConfig
    from ..core.state import GameState


def advance_doors(state: GameState, config: SimulationConfig) -> List[Door]:
    """Advance every claimed door; doors that complete toggle and drop their claim."""
    toggled: List[Door] = []
    step = 1.0 / config.doors.interaction_time
    for door in state.doors:
        if door.interacting_agent is None:
            continue
        door.interaction_progress = min(1.0, door.interaction_progress + step)
        # Summed float steps can land a hair under 1.0.
        if door.interaction_progress >= 1.0 - 1e-9:
            door.is_open = not door.is_open
            door.interaction_progress = 0.0
            door.interacting_agent = None
            toggled.append(door)
    return toggled


def held_door(state: GameState, agent_id: str) -> Optional[Door]:
    for door in state.doors:
        if door.interacting_agent == agent_id:
            return door
    return None


def _nearest_free_door(state: GameState, agent: Agent, interaction_range: float) -> Optional[Door]:
    nearest: Optional[Door] = None
    nearest_dist = interaction_range
    for door in state.doors:
        if door.interacting_agent is not None:
            continue
        dist = agent.position.distance_to(door.position)
        if dist < nearest_dist:
            nearest = door
            nearest_dist = dist
    return nearest


def release_door(state: GameState, agent: Agent) -> None:
    door = held_door(state, agent.id)
    if door is not None:
        door.interacting_agent = None
        door.interaction_progress = 0.0
    agent.is_interacting = False


def handle_door_interaction(state: GameState, config: SimulationConfig, agent: Agent, intent: float) -> Optional[Door]:
    """Claim, hold or release a door depending on the agent's intent output.

    Returns the door the agent holds after this call, if any. Claiming or
    holding pays ``doors.reward`` at most once per ``reward_cooldown_ticks``.
    """
    doors = config.doors
    if intent <= doors.intent_threshold:
        release_door(state, agent)
        return None

    door = held_door(state, agent.id)
    if door is None:
        door = _nearest_free_door(state, agent, doors.interaction_range)
    if door is None:
        agent.is_interacting = False
        return None

    door.interacting_agent = agent.id
    agent.is_interacting = True
    if state.time_step - agent.last_door_interaction_tick >= doors.reward_cooldown_ticks:
        agent.fitness += doors.reward
        agent.last_door_interaction_tick = state.time_step
    return door


def collect_orbs(state: GameState, config: SimulationConfig, agent: Agent) -> int:
    if agent.kind is not AgentKind.ESCAPER:
        return 0
    rewards = config.rewards
    collected = 0
    for orb in state.orbs:
        if orb.collected or orb.id in agent.collected_orbs:
            continue
        if agent.position.distance_to(orb.position) < rewards.orb_collection_range:
            agent.collected_orbs.add(orb.id)
            agent.fitness += rewards.orb
            collected += 1
    return collected


def resolve_combat(state: GameState, config: SimulationConfig) -> int:
    """Pairwise melee between pursuers and escapers that were alive when the scan began."""
    combat = config.combat
    escapers = state.living(AgentKind.ESCAPER)
    pursuers = state.living(AgentKind.PURSUER)
    hits = 0
    for pursuer in pursuers:
        for escaper in escapers:
            if pursuer.position.distance_to(escaper.position) < combat.melee_range:
                escaper.health = max(0.0, escaper.health - combat.damage)
                pursuer.fitness += combat.reward
                hits += 1
    return hits
