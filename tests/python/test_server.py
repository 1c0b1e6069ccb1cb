import asyncio
import json

import pytest

from mazechase.app.server import SimulationController, frame_payload, geometry_payload
from mazechase.config import SimulationConfig
from mazechase.sim.types.snapshot import SnapshotDecodeError


def _controller() -> SimulationController:
    return SimulationController(SimulationConfig(seed=6, population_size=6))


def test_frame_payload_lists_every_agent_and_door() -> None:
    controller = _controller()
    state = controller.engine.get_state()

    frame = frame_payload(state)
    geometry = geometry_payload(state)

    assert len(frame["agents"]) == 6
    assert frame["agents"][0]["type"] == "escaper"
    assert len(frame["doors"]) == len(state.doors)
    assert len(geometry["walls"]) == len(state.walls)
    assert geometry["checkpoints"] == [{"x": 55.0, "y": 5.0}, {"x": 55.0, "y": 55.0}]


def test_controller_speed_is_clamped() -> None:
    controller = _controller()

    async def exercise() -> None:
        assert await controller.set_speed(100.0) == 25.0
        assert controller.engine.batch_size == 50
        assert not controller.engine.should_render_frame()
        assert await controller.set_speed(0.0) == 0.5
        assert controller.engine.batch_size == 1

    asyncio.run(exercise())


def test_controller_advance_and_broadcast() -> None:
    controller = _controller()

    async def exercise() -> None:
        assert await controller.advance()
        assert controller.engine.get_state().time_step == 10
        frame = json.loads(await controller._broadcast_frame())
        assert frame["type"] == "frame"
        assert frame["payload"]["timeStep"] == 10

    asyncio.run(exercise())


def test_controller_save_load_and_reset() -> None:
    controller = _controller()

    async def exercise() -> None:
        await controller.advance()
        snapshot = await controller.save()
        await controller.reset()
        assert controller.engine.get_state().time_step == 0

        await controller.load(snapshot)
        assert controller.engine.get_state().time_step == 10
        assert await controller.save() == snapshot

        with pytest.raises(SnapshotDecodeError):
            await controller.load("{}")
        assert await controller.save() == snapshot

    asyncio.run(exercise())


def test_controller_pauses_when_an_update_fails(monkeypatch) -> None:
    controller = SimulationController(SimulationConfig(seed=6, population_size=6), frame_interval=0.001)

    def broken_update() -> None:
        raise RuntimeError("engine failure")

    monkeypatch.setattr(controller.engine, "update", broken_update)

    async def exercise() -> None:
        await controller.start()
        for _ in range(200):
            await asyncio.sleep(0.005)
            if not controller.running:
                break
        assert not controller.running
        assert not controller._loop_task.done()
        controller._loop_task.cancel()

    asyncio.run(exercise())
