from __future__ import annotations

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, List

from pydantic import ValidationError
from pygame.math import Vector2

from ..core.agent import Agent
from ..core.geometry import Door, Orb
from ..core.network import NetworkShapeError, NeuralNetwork
from ..types.snapshot import AgentModel, SnapshotDecodeError, SnapshotModel, room_key_label

if TYPE_CHECKING:
    from ...config import SimulationConfig
    from ..core.state import GameState


@dataclass
class DecodedSnapshot:
    generation: int
    time_step: int
    agents: List[Agent]
    doors: List[Door]
    orbs: List[Orb]


def _position(vector: Vector2) -> Dict[str, float]:
    return {"x": vector.x, "y": vector.y}


def _agent_payload(agent: Agent) -> Dict[str, Any]:
    return {
        "id": agent.id,
        "position": _position(agent.position),
        "rotation": agent.rotation,
        "type": agent.kind.value,
        "health": agent.health,
        "fitness": agent.fitness,
        "isInteracting": agent.is_interacting,
        "network": agent.network.to_payload(),
        "collectedOrbs": sorted(agent.collected_orbs),
        "visitedRooms": [room_key_label(key) for key in sorted(agent.visited_rooms)],
        "lastDoorInteraction": agent.last_door_interaction_tick,
    }


def encode_state(state: GameState) -> str:
    payload = {
        "generation": state.generation,
        "timeStep": state.time_step,
        "orbs": [
            {"id": orb.id, "position": _position(orb.position), "collected": orb.collected}
            for orb in state.orbs
        ],
        "doors": [
            {
                "position": _position(door.position),
                "isOpen": door.is_open,
                "isVertical": door.is_vertical,
                "interactionProgress": door.interaction_progress,
                "interactingAgent": door.interacting_agent,
            }
            for door in state.doors
        ],
        "agents": [_agent_payload(agent) for agent in state.agents],
    }
    return json.dumps(payload)


def _build_agent(model: AgentModel, config: SimulationConfig) -> Agent:
    network = NeuralNetwork.from_payload(
        config.network_input_size,
        config.hidden_size,
        config.output_size,
        model.network.weights,
        model.network.biases,
    )
    return Agent(
        id=model.id,
        kind=model.type,
        position=Vector2(model.position.x, model.position.y),
        rotation=model.rotation,
        health=model.health,
        network=network,
        fitness=model.fitness,
        is_interacting=model.is_interacting,
        collected_orbs=set(model.collected_orbs),
        visited_rooms=set(model.visited_rooms),
        last_door_interaction_tick=model.last_door_interaction,
    )


def decode_snapshot(text: str | bytes, config: SimulationConfig) -> DecodedSnapshot:
    """Parse and validate a snapshot without touching any engine.

    Raises :class:`SnapshotDecodeError` for malformed JSON, schema violations
    and networks whose shape does not match ``config``.
    """
    try:
        raw = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise SnapshotDecodeError(f"snapshot is not valid JSON: {exc}") from exc
    try:
        model = SnapshotModel.model_validate(raw)
    except ValidationError as exc:
        raise SnapshotDecodeError(f"snapshot failed validation: {exc.error_count()} error(s)") from exc

    agents = []
    for agent_model in model.agents:
        try:
            agents.append(_build_agent(agent_model, config))
        except NetworkShapeError as exc:
            raise SnapshotDecodeError(f"agent {agent_model.id!r} has an incompatible network: {exc}") from exc

    doors = [
        Door(
            position=Vector2(door.position.x, door.position.y),
            is_open=door.is_open,
            is_vertical=door.is_vertical,
            interaction_progress=door.interaction_progress,
            interacting_agent=door.interacting_agent,
        )
        for door in model.doors
    ]
    orbs = [
        Orb(id=orb.id, position=Vector2(orb.position.x, orb.position.y), collected=orb.collected)
        for orb in model.orbs
    ]
    return DecodedSnapshot(
        generation=model.generation,
        time_step=model.time_step,
        agents=agents,
        doors=doors,
        orbs=orbs,
    )
