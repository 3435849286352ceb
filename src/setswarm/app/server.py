from __future__ import annotations

import asyncio
import json
from collections import deque
from dataclasses import asdict, dataclass
from typing import Dict, Set

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from ..sim.core.config import AppConfig, SwarmConfig
from ..sim.core.swarm import Swarm
from .registry import Strategy, create_problem, create_strategy


@dataclass(frozen=True)
class QueuedSnapshot:
    iteration: int
    payload: str


class SwarmController:
    """Steps a single swarm on the event loop and fans snapshots out to websocket clients."""

    def __init__(
        self,
        config: SwarmConfig,
        broadcast_interval: int = 1,
        iteration_delay: float = 0.05,
        queue_limit: int = 100,
    ):
        self.config = config
        self.broadcast_interval = max(1, broadcast_interval)
        self.iteration_delay = max(0.0, iteration_delay)
        self.running = False
        self.speed_multiplier = 1.0
        self.clients: Set[WebSocket] = set()
        self._client_last_sent: Dict[WebSocket, int] = {}
        # unacknowledged snapshots beyond the limit drop off the old end
        self._snapshot_queue: deque[QueuedSnapshot] = deque(maxlen=max(1, queue_limit))
        self._lock = asyncio.Lock()
        self._queue_lock = asyncio.Lock()
        self._loop_task: asyncio.Task | None = None
        self.swarm, self.strategy = self._build()

    def _build(self) -> tuple[Swarm, Strategy]:
        run = self.config.run
        evaluator = create_problem(run.problem, run.problem_seed, self.config.noise)
        swarm = Swarm(run.n_particles, evaluator, run.swarm_seed, self.config.heuristics.build())
        return swarm, create_strategy(run.strategy, swarm)

    @property
    def iteration(self) -> int:
        return self.swarm.iteration

    async def start(self) -> None:
        if self._loop_task is None:
            self._loop_task = asyncio.create_task(self._loop())
        self.running = True

    async def stop(self) -> None:
        self.running = False

    async def reset(self) -> None:
        async with self._lock:
            self.swarm, self.strategy = self._build()
        async with self._queue_lock:
            self._snapshot_queue.clear()
        for client in self._client_last_sent:
            self._client_last_sent[client] = -1
        await self._broadcast_snapshot()

    async def step(self) -> None:
        async with self._lock:
            self.strategy.update()
        if self.iteration % self.broadcast_interval == 0:
            await self._broadcast_snapshot()

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.iteration_delay / self.speed_multiplier)
            if not self.running:
                continue
            await self.step()

    async def acknowledge(self, iteration: int) -> None:
        async with self._queue_lock:
            while self._snapshot_queue and self._snapshot_queue[0].iteration <= iteration:
                self._snapshot_queue.popleft()

    def _serialize_snapshot(self) -> QueuedSnapshot:
        snapshot = self.swarm.snapshot()
        payload = {
            "type": "snapshot",
            "iteration": snapshot.iteration,
            "payload": {
                "iteration": snapshot.iteration,
                "metrics": asdict(snapshot.metrics) if snapshot.metrics is not None else None,
                "particles": snapshot.particles,
                "groups": [asdict(group) for group in snapshot.groups],
                "best": asdict(snapshot.best),
                "metadata": asdict(snapshot.metadata),
            },
        }
        return QueuedSnapshot(iteration=snapshot.iteration, payload=json.dumps(payload))

    async def _send_pending_snapshots(self, client: WebSocket) -> None:
        last_sent = self._client_last_sent.get(client, -1)
        async with self._queue_lock:
            pending = [item for item in self._snapshot_queue if item.iteration > last_sent]
        for item in pending:
            await client.send_text(item.payload)
            last_sent = item.iteration
        self._client_last_sent[client] = last_sent

    async def _broadcast_snapshot(self) -> None:
        queued = self._serialize_snapshot()
        async with self._queue_lock:
            self._snapshot_queue.append(queued)
        stale: Set[WebSocket] = set()
        for client in self.clients:
            try:
                await self._send_pending_snapshots(client)
            except WebSocketDisconnect:
                stale.add(client)
        for client in stale:
            self.clients.discard(client)
            self._client_last_sent.pop(client, None)


app_config = AppConfig()
app = FastAPI(title="Set Swarm Monitor")
controller = SwarmController(
    app_config.swarm,
    broadcast_interval=app_config.broadcast_interval,
    iteration_delay=app_config.iteration_delay,
    queue_limit=app_config.snapshot_queue_limit,
)


@app.on_event("startup")
async def _startup() -> None:
    await controller.start()


@app.get("/api/status")
async def status() -> JSONResponse:
    swarm = controller.swarm
    metrics = swarm.metrics
    return JSONResponse(
        {
            "running": controller.running,
            "iteration": controller.iteration,
            "problem": controller.config.run.problem,
            "strategy": controller.config.run.strategy,
            "best_particle": swarm.best_particle,
            "best_cost": swarm.evaluator.cost_text(swarm.best()),
            "metrics": asdict(metrics) if metrics is not None else None,
        }
    )


@app.get("/api/heuristics")
async def heuristics() -> JSONResponse:
    return JSONResponse(controller.swarm.heuristics.as_dict())


@app.post("/api/heuristics")
async def update_heuristics(payload: dict) -> JSONResponse:
    try:
        controller.swarm.heuristics.update(**payload)
    except (KeyError, ValueError) as exc:
        return JSONResponse({"error": str(exc)}, status_code=400)
    return JSONResponse(controller.swarm.heuristics.as_dict())


@app.get("/api/debug/{section}")
async def debug(section: str) -> JSONResponse:
    try:
        report = controller.swarm.debug_report(section)
    except ValueError as exc:
        return JSONResponse({"error": str(exc)}, status_code=404)
    return JSONResponse({"section": section, "report": report})


@app.post("/api/control/start")
async def start_swarm() -> JSONResponse:
    controller.running = True
    return JSONResponse({"running": True})


@app.post("/api/control/stop")
async def stop_swarm() -> JSONResponse:
    controller.running = False
    return JSONResponse({"running": False})


@app.post("/api/control/step")
async def step_swarm() -> JSONResponse:
    await controller.step()
    return JSONResponse({"iteration": controller.iteration})


@app.post("/api/control/reset")
async def reset_swarm() -> JSONResponse:
    await controller.reset()
    return JSONResponse({"running": controller.running, "iteration": controller.iteration})


@app.post("/api/control/speed")
async def set_speed(payload: dict) -> JSONResponse:
    speed = float(payload.get("multiplier", 1.0))
    controller.speed_multiplier = max(0.1, min(5.0, speed))
    return JSONResponse({"multiplier": controller.speed_multiplier})


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    await websocket.accept()
    controller.clients.add(websocket)
    controller._client_last_sent[websocket] = -1
    await controller._send_pending_snapshots(websocket)
    try:
        while True:
            message = await websocket.receive_text()
            try:
                payload = json.loads(message)
            except json.JSONDecodeError:
                continue
            if payload.get("type") == "ack":
                iteration = payload.get("iteration")
                if isinstance(iteration, int):
                    await controller.acknowledge(iteration)
    except WebSocketDisconnect:
        controller.clients.discard(websocket)
        controller._client_last_sent.pop(websocket, None)


__all__ = ["app", "controller"]
