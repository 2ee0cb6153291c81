"""Live simulation over HTTP and WebSocket.

One asyncio task advances the world at `updates_per_second` (scaled by the
speed multiplier) and pushes serialized snapshots onto a queue. Each client
receives every queued snapshot newer than the last one it was sent; snapshots
leave the queue once a client acknowledges their tick, and the queue is bounded
so an idle or silent client cannot hold the whole history.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections import deque
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..errors import ConfigError
from ..sim.core.config import SimulationConfig
from ..sim.core.world import World
from ..sim.types.snapshot import Snapshot

logger = logging.getLogger(__name__)

MIN_SPEED = 0.1
MAX_SPEED = 5.0
# Unacknowledged snapshots kept for slow clients; older ones are dropped.
MAX_QUEUED_SNAPSHOTS = 300


@dataclass(frozen=True)
class QueuedSnapshot:
    tick: int
    payload: str


class SpeedRequest(BaseModel):
    multiplier: float = 1.0


def snapshot_payload(snapshot: Snapshot) -> Dict[str, Any]:
    return {
        "tick": snapshot.tick,
        "metrics": asdict(snapshot.metrics),
        "agents": snapshot.agents,
        "foods": snapshot.foods,
        "world": asdict(snapshot.world),
        "metadata": asdict(snapshot.metadata),
    }


class SnapshotQueue:
    """Snapshots awaiting acknowledgement plus a send cursor per client."""

    def __init__(self, maxlen: int = MAX_QUEUED_SNAPSHOTS) -> None:
        self._items: deque[QueuedSnapshot] = deque(maxlen=maxlen)
        self._cursors: Dict[WebSocket, int] = {}
        self._lock = asyncio.Lock()

    @property
    def clients(self) -> List[WebSocket]:
        return list(self._cursors)

    def ticks(self) -> List[int]:
        return [item.tick for item in self._items]

    def latest(self) -> Optional[QueuedSnapshot]:
        return self._items[-1] if self._items else None

    def attach(self, client: WebSocket) -> None:
        self._cursors[client] = -1

    def detach(self, client: WebSocket) -> None:
        self._cursors.pop(client, None)

    async def push(self, item: QueuedSnapshot) -> None:
        async with self._lock:
            if not self._cursors:
                # Without clients only the latest snapshot is kept.
                self._items.clear()
            self._items.append(item)

    async def acknowledge(self, tick: int) -> None:
        async with self._lock:
            while self._items and self._items[0].tick <= tick:
                self._items.popleft()

    async def clear(self) -> None:
        async with self._lock:
            self._items.clear()
        for client in self._cursors:
            self._cursors[client] = -1

    async def flush(self, client: WebSocket) -> None:
        cursor = self._cursors.get(client, -1)
        async with self._lock:
            pending = [item for item in self._items if item.tick > cursor]
        for item in pending:
            await client.send_text(item.payload)
            cursor = item.tick
        self._cursors[client] = cursor


class SimulationController:
    def __init__(self, config: SimulationConfig, broadcast_interval: int = 1):
        self.config = config
        self.world = World(config)
        self.broadcast_interval = max(1, broadcast_interval)
        self.running = False
        self.tick = 0
        self.speed_multiplier = 1.0
        self.snapshots = SnapshotQueue()
        self._step_lock = asyncio.Lock()
        self._task: asyncio.Task | None = None

    async def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._run())
        self.running = True

    async def stop(self) -> None:
        self.running = False

    async def shutdown(self) -> None:
        self.running = False
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def reset(self) -> None:
        async with self._step_lock:
            self.world.reset()
            self.tick = 0
        await self.snapshots.clear()
        logger.info("Simulation reset (seed %d)", self.config.seed)
        await self.broadcast()

    async def advance(self) -> None:
        """Run one tick and broadcast on the configured interval."""
        async with self._step_lock:
            self.tick += 1
            self.world.step(self.tick)
        if self.tick % self.broadcast_interval == 0:
            await self.broadcast()

    def set_speed(self, multiplier: float) -> float:
        self.speed_multiplier = max(MIN_SPEED, min(MAX_SPEED, multiplier))
        return self.speed_multiplier

    async def snapshot(self) -> Snapshot:
        async with self._step_lock:
            return self.world.snapshot(self.tick)

    def status(self) -> Dict[str, Any]:
        world = self.world
        return {
            "running": self.running,
            "tick": self.tick,
            "speed": self.speed_multiplier,
            "herbivores": len(world.herbivores),
            "carnivores": len(world.carnivores_1) + len(world.carnivores_2),
            "metrics": asdict(world.snapshot(self.tick).metrics),
        }

    async def broadcast(self) -> None:
        snapshot = self.world.snapshot(self.tick)
        message = {"type": "snapshot", "tick": snapshot.tick, "payload": snapshot_payload(snapshot)}
        await self.snapshots.push(QueuedSnapshot(tick=snapshot.tick, payload=json.dumps(message)))
        for client in self.snapshots.clients:
            try:
                await self.snapshots.flush(client)
            except WebSocketDisconnect:
                logger.info("Dropping disconnected client")
                self.snapshots.detach(client)

    async def handle_message(self, text: str) -> None:
        try:
            message = json.loads(text)
        except json.JSONDecodeError:
            logger.debug("Ignoring malformed websocket message: %r", text)
            return
        if not isinstance(message, dict) or message.get("type") != "ack":
            return
        tick = message.get("tick")
        if isinstance(tick, int):
            await self.snapshots.acknowledge(tick)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.config.seconds_per_update / self.speed_multiplier)
            if self.running:
                await self.advance()


def create_app(config: SimulationConfig | None = None, autostart: bool = True) -> FastAPI:
    controller = SimulationController(config if config is not None else SimulationConfig())
    app = FastAPI(title="Cooperative Predator/Prey Simulation")
    app.state.controller = controller

    @app.on_event("startup")
    async def _startup() -> None:
        if autostart:
            await controller.start()

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        await controller.shutdown()

    @app.get("/api/status")
    async def status() -> JSONResponse:
        return JSONResponse(controller.status())

    @app.get("/api/snapshot")
    async def current_snapshot() -> JSONResponse:
        return JSONResponse(snapshot_payload(await controller.snapshot()))

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
        return JSONResponse({"running": controller.running, "tick": controller.tick})

    @app.post("/api/control/speed")
    async def set_speed(request: SpeedRequest) -> JSONResponse:
        return JSONResponse({"multiplier": controller.set_speed(request.multiplier)})

    @app.websocket("/ws")
    async def stream(websocket: WebSocket) -> None:
        await websocket.accept()
        controller.snapshots.attach(websocket)
        try:
            await controller.snapshots.flush(websocket)
            while True:
                await controller.handle_message(await websocket.receive_text())
        except WebSocketDisconnect:
            controller.snapshots.detach(websocket)

    return app


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Serve the simulation over HTTP and WebSocket")
    parser.add_argument("--config", type=Path, default=None)
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--paused", action="store_true", help="Wait for /api/control/start before ticking.")
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        config = SimulationConfig.from_yaml(args.config) if args.config else SimulationConfig()
    except ConfigError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 2

    uvicorn.run(create_app(config, autostart=not args.paused), host=args.host, port=args.port)
    return 0


__all__ = ["create_app", "SimulationController", "SnapshotQueue", "snapshot_payload"]


if __name__ == "__main__":
    sys.exit(main())
