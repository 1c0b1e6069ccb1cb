from __future__ import annotations

import asyncio
import json
from dataclasses import asdict
from typing import Any, Dict, Set

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse, Response
from loguru import logger

from ..config import SimulationConfig
from ..sim.core.engine import GameEngine
from ..sim.core.state import GameState
from ..sim.types.snapshot import SnapshotDecodeError

_MIN_SPEED = 0.5
_MAX_SPEED = 25.0


def frame_payload(state: GameState) -> Dict[str, Any]:
    return {
        "generation": state.generation,
        "timeStep": state.time_step,
        "agents": [
            {
                "id": agent.id,
                "type": agent.kind.value,
                "x": agent.position.x,
                "y": agent.position.y,
                "rotation": agent.rotation,
                "health": agent.health,
                "fitness": agent.fitness,
                "isInteracting": agent.is_interacting,
            }
            for agent in state.agents
        ],
        "doors": [
            {
                "x": door.position.x,
                "y": door.position.y,
                "isOpen": door.is_open,
                "isVertical": door.is_vertical,
                "interactionProgress": door.interaction_progress,
            }
            for door in state.doors
        ],
        "orbs": [{"id": orb.id, "x": orb.position.x, "y": orb.position.y} for orb in state.orbs],
    }


def geometry_payload(state: GameState) -> Dict[str, Any]:
    return {
        "walls": [{"x": x, "y": y} for x, y in sorted(state.walls)],
        "checkpoints": [{"x": c.x, "y": c.y} for c in state.checkpoints],
    }


class SimulationController:
    """Drives one engine on a timer and pushes frames to websocket clients."""

    def __init__(self, config: SimulationConfig, frame_interval: float = 1.0 / 30.0):
        self.config = config
        self.engine = GameEngine(config=config)
        self.frame_interval = frame_interval
        self.running = False
        self.clients: Set[WebSocket] = set()
        self._lock = asyncio.Lock()
        self._loop_task: asyncio.Task | None = None
        self._last_generation = self.engine.get_state().generation

    async def start(self) -> None:
        if self._loop_task is None:
            self._loop_task = asyncio.create_task(self._loop())
        self.running = True

    async def stop(self) -> None:
        self.running = False

    async def reset(self) -> None:
        async with self._lock:
            speed = self.engine.speed_multiplier
            self.engine = GameEngine(config=self.config)
            self.engine.set_simulation_speed(speed)
            self._last_generation = 0
        await self._broadcast_frame()

    async def set_speed(self, multiplier: float) -> float:
        multiplier = max(_MIN_SPEED, min(_MAX_SPEED, multiplier))
        async with self._lock:
            self.engine.set_simulation_speed(multiplier)
        return multiplier

    async def save(self) -> str:
        async with self._lock:
            return self.engine.save_state()

    async def load(self, snapshot: str) -> None:
        async with self._lock:
            self.engine.load_state(snapshot)
            self._last_generation = self.engine.get_state().generation
        await self._broadcast_frame()

    async def advance(self) -> bool:
        """Run one engine update; returns True when a frame should be pushed."""
        async with self._lock:
            self.engine.update()
            generation = self.engine.get_state().generation
            new_generation = generation != self._last_generation
            self._last_generation = generation
            return self.engine.should_render_frame() or new_generation

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.frame_interval)
            if not self.running:
                continue
            try:
                render = await self.advance()
            except Exception:
                logger.exception("[SimulationController] engine update failed, pausing")
                self.running = False
                continue
            if render:
                await self._broadcast_frame()

    def _serialize_frame(self) -> str:
        return json.dumps({"type": "frame", "payload": frame_payload(self.engine.get_state())})

    async def _broadcast_frame(self) -> str:
        frame = self._serialize_frame()
        stale: Set[WebSocket] = set()
        for client in self.clients:
            try:
                await client.send_text(frame)
            except WebSocketDisconnect:
                stale.add(client)
        for client in stale:
            self.clients.discard(client)
        return frame


app = FastAPI(title="Maze Chase Simulation")
controller = SimulationController(SimulationConfig())


@app.on_event("startup")
async def _startup() -> None:
    await controller.start()


@app.get("/api/status")
async def status() -> JSONResponse:
    state = controller.engine.get_state()
    summary = controller.engine.last_summary
    return JSONResponse(
        {
            "running": controller.running,
            "generation": state.generation,
            "timeStep": state.time_step,
            "agents": len(state.agents),
            "speed": controller.engine.speed_multiplier,
            "lastGeneration": asdict(summary) if summary is not None else None,
        }
    )


@app.get("/api/geometry")
async def geometry() -> JSONResponse:
    return JSONResponse(geometry_payload(controller.engine.get_state()))


@app.post("/api/control/start")
async def start_simulation() -> JSONResponse:
    await controller.start()
    return JSONResponse({"running": True})


@app.post("/api/control/stop")
async def stop_simulation() -> JSONResponse:
    await controller.stop()
    return JSONResponse({"running": False})


@app.post("/api/control/reset")
async def reset_simulation() -> JSONResponse:
    await controller.reset()
    return JSONResponse({"running": controller.running, "generation": 0})


@app.post("/api/control/speed")
async def set_speed(payload: dict) -> JSONResponse:
    multiplier = await controller.set_speed(float(payload.get("multiplier", 1.0)))
    return JSONResponse({"multiplier": multiplier, "render": controller.engine.should_render_frame()})


@app.get("/api/state/save")
async def save_state() -> Response:
    snapshot = await controller.save()
    generation = controller.engine.get_state().generation
    return Response(
        content=snapshot,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="mazechase-gen-{generation}.json"'},
    )


@app.post("/api/state/load")
async def load_state(request: Request) -> JSONResponse:
    body = await request.body()
    try:
        await controller.load(body.decode("utf-8", errors="replace"))
    except SnapshotDecodeError as exc:
        return JSONResponse({"loaded": False, "error": str(exc)}, status_code=400)
    state = controller.engine.get_state()
    return JSONResponse({"loaded": True, "generation": state.generation, "timeStep": state.time_step})


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    await websocket.accept()
    controller.clients.add(websocket)
    await websocket.send_text(json.dumps({"type": "geometry", "payload": geometry_payload(controller.engine.get_state())}))
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        controller.clients.discard(websocket)
        logger.debug("[SimulationController] client disconnected, {} remaining", len(controller.clients))


__all__ = ["app", "controller", "SimulationController"]
