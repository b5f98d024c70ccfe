import pytest
from fastapi.testclient import TestClient

from conftest import NOW_MS, FakeTextGenerator, quiet_config
from hellotown import main
from hellotown.db.store import MemoryWorldStore, WorldStoreError
from hellotown.sim.config import SimConfig
from hellotown.sim.engine import TownSimulation, WorldEngine
from hellotown.sim.world import initial_world
from hellotown.sim.world_events import VOTING_OPTIONS, open_vote


class FailingStore(MemoryWorldStore):
    def load(self):
        raise WorldStoreError("database is down")


@pytest.fixture
def store() -> MemoryWorldStore:
    return MemoryWorldStore()


@pytest.fixture
def client(monkeypatch, store, rng, clock):
    engine = WorldEngine(FakeTextGenerator(), config=quiet_config(), rng=rng, clock=clock)
    monkeypatch.setattr(main, "simulation", TownSimulation(store, engine))
    with TestClient(main.app) as test_client:
        yield test_client


def open_vote_in(store: MemoryWorldStore) -> None:
    world = initial_world(NOW_MS)
    open_vote(world, NOW_MS, SimConfig())
    store.store(world.to_payload())


def test_health(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_stream_returns_initial_world_without_caching(client):
    response = client.get("/api/stream")

    assert response.status_code == 200
    assert response.headers["cache-control"] == "no-cache"
    body = response.json()
    assert len(body["sprites"]) == 8
    assert body["activeVoting"] is False
    assert body["conversationHistory"] == []


def test_update_advances_and_persists(client, store):
    response = client.post("/api/update")

    assert response.status_code == 200
    body = response.json()
    assert body["time"] == NOW_MS
    assert {sprite["id"] for sprite in body["sprites"]} >= {"truman", "sarah"}
    assert store.load() == body
    assert client.get("/api/stream").json() == body


def test_vote_requires_open_vote(client):
    response = client.post("/api/vote", json={"voterId": "viewer-1", "option": VOTING_OPTIONS[0]})

    assert response.status_code == 409


def test_vote_is_recorded(client, store):
    open_vote_in(store)

    response = client.post("/api/vote", json={"voterId": "viewer-1", "option": VOTING_OPTIONS[1]})

    assert response.status_code == 200
    assert response.json() == {"accepted": True, "votes": {"viewer-1": VOTING_OPTIONS[1]}}
    assert store.load()["votes"] == {"viewer-1": VOTING_OPTIONS[1]}


def test_vote_rejects_unknown_option(client, store):
    open_vote_in(store)

    response = client.post("/api/vote", json={"voterId": "viewer-1", "option": "Flood the town"})

    assert response.status_code == 400


def test_vote_validates_body(client):
    response = client.post("/api/vote", json={"option": VOTING_OPTIONS[0]})

    assert response.status_code == 422


def test_store_failure_is_reported(monkeypatch, rng, clock):
    engine = WorldEngine(FakeTextGenerator(), config=quiet_config(), rng=rng, clock=clock)
    monkeypatch.setattr(main, "simulation", TownSimulation(FailingStore(), engine))

    with TestClient(main.app) as client:
        assert client.post("/api/update").status_code == 503
        assert client.get("/api/stream").status_code == 503


def test_websocket_sends_current_world(client):
    with client.websocket_connect("/ws/stream") as ws:
        message = ws.receive_json()

    assert message["type"] == "world"
    assert len(message["payload"]["sprites"]) == 8
