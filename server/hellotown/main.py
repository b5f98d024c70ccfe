from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
import time
from pathlib import Path

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from hellotown.db.models import VoteIn
from hellotown.db.store import WorldStoreError
from hellotown.sim.engine import TownSimulation
from hellotown.sim.world_events import VotingClosedError


LOGGER = logging.getLogger("hellotown.main")


def _load_env_from_repo_root() -> None:
    # server/hellotown/main.py -> repo root is 2 levels up from "server"
    env_path = Path(__file__).resolve().parents[2] / ".env"
    if not env_path.exists():
        return

    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        if not key:
            continue

        value = value.strip()
        if value and value[0] == value[-1] and value[0] in {'"', "'"}:
            value = value[1:-1]
        os.environ.setdefault(key, value)


_load_env_from_repo_root()


class WsHub:
    def __init__(self) -> None:
        self._clients: set[WebSocket] = set()
        self._lock = asyncio.Lock()

    async def add(self, ws: WebSocket) -> None:
        await ws.accept()
        async with self._lock:
            self._clients.add(ws)

    async def remove(self, ws: WebSocket) -> None:
        async with self._lock:
            self._clients.discard(ws)

    async def send(self, ws: WebSocket, message: dict) -> None:
        await ws.send_text(json.dumps(message, ensure_ascii=False))

    async def broadcast(self, message: dict) -> None:
        async with self._lock:
            clients = list(self._clients)
        if not clients:
            return

        serialized = json.dumps(message, ensure_ascii=False)
        stale: list[WebSocket] = []
        for ws in clients:
            try:
                await ws.send_text(serialized)
            except Exception:
                stale.append(ws)
        if stale:
            async with self._lock:
                for ws in stale:
                    self._clients.discard(ws)


TICK_LOOP_ENABLED = os.getenv("TICK_LOOP_ENABLED", "0").strip().lower() in {"1", "true", "yes", "on"}
TICK_INTERVAL_SEC = float(os.getenv("TICK_INTERVAL_SEC", "4.0"))
NO_CACHE_HEADERS = {"Cache-Control": "no-cache", "Connection": "keep-alive"}

app = FastAPI(title="HelloWorldTown Simulation Server", version="0.1.0")
simulation = TownSimulation.from_env()
hub = WsHub()

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


async def run_tick() -> dict:
    started_at = time.perf_counter()
    world = await simulation.tick()
    payload = world.to_payload()
    await hub.broadcast({"type": "world", "payload": payload})

    tick_ms = (time.perf_counter() - started_at) * 1000.0
    avg = getattr(app.state, "avg_tick_ms", 0.0)
    if avg <= 0.0:
        app.state.avg_tick_ms = tick_ms
    else:
        app.state.avg_tick_ms = (avg * 0.88) + (tick_ms * 0.12)
    app.state.last_tick_ms = tick_ms
    return payload


async def tick_loop() -> None:
    while True:
        await asyncio.sleep(max(0.1, TICK_INTERVAL_SEC))
        try:
            await run_tick()
        except WorldStoreError as exc:
            LOGGER.warning("Tick skipped, world store unavailable: %s", exc)
        except Exception:
            LOGGER.exception("Tick failed")


@app.on_event("startup")
async def startup() -> None:
    app.state.last_tick_ms = 0.0
    app.state.avg_tick_ms = 0.0
    app.state.tick_task = asyncio.create_task(tick_loop()) if TICK_LOOP_ENABLED else None


@app.on_event("shutdown")
async def shutdown() -> None:
    task = getattr(app.state, "tick_task", None)
    if task:
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task


@app.get("/api/health")
async def health() -> dict:
    return {
        "status": "ok",
        "last_tick_ms": round(float(getattr(app.state, "last_tick_ms", 0.0)), 3),
        "avg_tick_ms": round(float(getattr(app.state, "avg_tick_ms", 0.0)), 3),
    }


@app.post("/api/update")
async def update() -> dict:
    try:
        return await run_tick()
    except WorldStoreError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from None


@app.get("/api/stream")
async def stream() -> JSONResponse:
    try:
        world = await simulation.load_world()
    except WorldStoreError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from None
    return JSONResponse(content=world.to_payload(), headers=NO_CACHE_HEADERS)


@app.post("/api/vote")
async def vote(payload: VoteIn) -> dict:
    try:
        world = await simulation.vote(payload.voterId, payload.option)
    except VotingClosedError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from None
    except WorldStoreError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from None
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from None
    return {"accepted": True, "votes": dict(world.votes)}


@app.websocket("/ws/stream")
async def ws_stream(ws: WebSocket) -> None:
    await hub.add(ws)
    try:
        world = await simulation.load_world()
        await hub.send(ws, {"type": "world", "payload": world.to_payload()})

        while True:
            await ws.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        await hub.remove(ws)


def run() -> None:
    try:
        port = int(os.getenv("PORT", "8000"))
    except ValueError:
        port = 8000
    uvicorn.run(app, host=os.getenv("HOST", "0.0.0.0"), port=port)
