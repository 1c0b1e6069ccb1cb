"""Wire schema for a saved generation.

Field aliases follow the camelCase JSON layout written by ``save_state``.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..core.agent import AgentKind


class SnapshotDecodeError(ValueError):
    """A snapshot could not be turned into engine state; live state was not touched."""


class _WireModel(BaseModel):
    # json.loads accepts NaN and Infinity; engine geometry cannot.
    model_config = ConfigDict(allow_inf_nan=False)


class PositionModel(_WireModel):
    x: float
    y: float


class OrbModel(_WireModel):
    id: str
    position: PositionModel
    collected: bool


class DoorModel(_WireModel):
    model_config = ConfigDict(extra="ignore")

    position: PositionModel
    is_open: bool = Field(alias="isOpen")
    is_vertical: bool = Field(alias="isVertical")
    interaction_progress: float = Field(alias="interactionProgress", ge=0.0, le=1.0)
    interacting_agent: Optional[str] = Field(alias="interactingAgent")


class NetworkModel(_WireModel):
    weights: List[List[List[float]]]
    biases: List[List[float]]


class AgentModel(_WireModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    position: PositionModel
    rotation: float
    type: AgentKind
    health: float = Field(ge=0.0)
    fitness: float
    is_interacting: bool = Field(alias="isInteracting")
    network: NetworkModel
    collected_orbs: List[str] = Field(alias="collectedOrbs")
    visited_rooms: List[tuple[int, int]] = Field(alias="visitedRooms")
    last_door_interaction: int = Field(alias="lastDoorInteraction")

    @field_validator("visited_rooms", mode="before")
    @classmethod
    def _parse_room_keys(cls, value: object) -> object:
        if not isinstance(value, list):
            return value
        rooms = []
        for key in value:
            if isinstance(key, str):
                parts = key.split(",")
                if len(parts) != 2:
                    raise ValueError(f"room key must look like 'x,y', got {key!r}")
                rooms.append((int(parts[0]), int(parts[1])))
            else:
                rooms.append(key)
        return rooms


class SnapshotModel(_WireModel):
    model_config = ConfigDict(extra="ignore")

    generation: int = Field(ge=0)
    time_step: int = Field(alias="timeStep", ge=0)
    orbs: List[OrbModel]
    doors: List[DoorModel]
    agents: List[AgentModel]

    @model_validator(mode="after")
    def _check_references(self) -> "SnapshotModel":
        agent_ids = [agent.id for agent in self.agents]
        if len(set(agent_ids)) != len(agent_ids):
            raise ValueError("agent ids must be unique")
        orb_ids = [orb.id for orb in self.orbs]
        if len(set(orb_ids)) != len(orb_ids):
            raise ValueError("orb ids must be unique")
        known = set(agent_ids)
        claimants = [door.interacting_agent for door in self.doors if door.interacting_agent is not None]
        for claimant in claimants:
            if claimant not in known:
                raise ValueError(f"door claimed by unknown agent {claimant!r}")
        if len(set(claimants)) != len(claimants):
            raise ValueError("an agent may hold at most one door claim")
        return self


def room_key_label(key: tuple[int, int]) -> str:
    return f"{key[0]},{key[1]}"
