import asyncio
import json

from fastapi.testclient import TestClient

from coopsim.app.server import QueuedSnapshot, SimulationController, SnapshotQueue, create_app
from coopsim.sim.core.config import SimulationConfig


def _config() -> SimulationConfig:
    return SimulationConfig(
        food_amount=5,
        herbivore_amount=10,
        carnivore_amount_1=2,
        carnivore_amount_2=2,
        screen_size_x=300.0,
        screen_size_y=300.0,
        seed=9,
    )


class _FakeClient:
    def __init__(self) -> None:
        self.sent = []

    async def send_text(self, text: str) -> None:
        self.sent.append(json.loads(text)["tick"])


def test_snapshot_queue_ack_cleanup() -> None:
    controller = SimulationController(_config())
    controller.snapshots.attach(_FakeClient())

    async def exercise() -> None:
        controller.tick = 1
        await controller.broadcast()
        controller.tick = 2
        await controller.broadcast()
        assert controller.snapshots.ticks() == [1, 2]
        await controller.handle_message(json.dumps({"type": "ack", "tick": 1}))
        assert controller.snapshots.ticks() == [2]
        await controller.handle_message("not json")
        await controller.handle_message(json.dumps({"type": "ack", "tick": "2"}))
        assert controller.snapshots.ticks() == [2]

    asyncio.run(exercise())


def test_advance_steps_the_world_and_queues_a_snapshot() -> None:
    controller = SimulationController(_config())
    client = _FakeClient()
    controller.snapshots.attach(client)

    async def exercise() -> None:
        await controller.advance()
        await controller.advance()

    asyncio.run(exercise())
    assert controller.tick == 2
    assert controller.world.metrics.tick == 2
    assert client.sent == [1, 2]
    assert controller.snapshots.ticks() == [1, 2]
    payload = json.loads(controller.snapshots.latest().payload)
    assert payload["type"] == "snapshot"
    assert payload["payload"]["tick"] == 2
    assert len(payload["payload"]["agents"]) == 14


def test_reset_clears_the_queue_and_tick() -> None:
    controller = SimulationController(_config())

    async def exercise() -> None:
        await controller.advance()
        await controller.reset()

    asyncio.run(exercise())
    assert controller.tick == 0
    assert controller.snapshots.ticks() == [0]


def test_http_endpoints() -> None:
    app = create_app(_config(), autostart=False)
    with TestClient(app) as client:
        status = client.get("/api/status").json()
        assert status["running"] is False
        assert status["tick"] == 0
        assert status["herbivores"] == 10
        assert status["carnivores"] == 4

        snapshot = client.get("/api/snapshot").json()
        assert len(snapshot["foods"]) == 5
        assert snapshot["metadata"]["seed"] == 9

        assert client.post("/api/control/speed", json={"multiplier": 10}).json() == {"multiplier": 5.0}
        assert client.post("/api/control/speed", json={"multiplier": 0.01}).json() == {"multiplier": 0.1}
        assert client.post("/api/control/start").json() == {"running": True}
        assert client.post("/api/control/stop").json() == {"running": False}
        assert client.post("/api/control/reset").json() == {"running": False, "tick": 0}


def test_clients_receive_only_unsent_snapshots() -> None:
    controller = SimulationController(_config())
    client = _FakeClient()

    async def exercise() -> None:
        await controller.advance()
        controller.snapshots.attach(client)
        await controller.snapshots.flush(client)
        await controller.advance()
        await controller.advance()

    asyncio.run(exercise())
    assert client.sent == [1, 2, 3]


def test_without_clients_only_the_latest_snapshot_is_queued() -> None:
    controller = SimulationController(_config())

    async def exercise() -> None:
        for _ in range(200):
            await controller.advance()

    asyncio.run(exercise())
    assert controller.tick == 200
    assert controller.snapshots.ticks() == [200]


def test_silent_client_cannot_grow_the_queue_past_its_bound() -> None:
    queue = SnapshotQueue(maxlen=5)
    queue.attach(_FakeClient())

    async def exercise() -> None:
        for tick in range(1, 21):
            await queue.push(QueuedSnapshot(tick=tick, payload=json.dumps({"tick": tick})))

    asyncio.run(exercise())
    assert queue.ticks() == [16, 17, 18, 19, 20]
