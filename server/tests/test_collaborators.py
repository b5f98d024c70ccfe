from types import SimpleNamespace

import pytest

from hellotown.db.store import MemoryWorldStore, PostgresWorldStore, store_from_env
from hellotown.llm.client import LLMClient


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "WORLD_STORE_BACKEND",
        "WORLD_DATABASE_URL",
        "DATABASE_URL",
        "WORLD_STATE_KEY",
        "WORLD_STATE_TABLE",
        "OPENAI_API_KEY",
        "LLM_API_KEY",
        "LLM_TIMEOUT_SEC",
        "LLM_MODEL",
        "LLM_BASE_URL",
    ):
        monkeypatch.delenv(name, raising=False)


class TestStoreSelection:
    def test_memory_without_database_url(self):
        assert isinstance(store_from_env(), MemoryWorldStore)

    def test_postgres_with_database_url(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://town@localhost/town")
        monkeypatch.setenv("WORLD_STATE_TABLE", "town; DROP TABLE x")

        store = store_from_env()

        assert isinstance(store, PostgresWorldStore)
        assert store.key == "gameState"
        assert store.table_name == "world_state"

    def test_explicit_memory_backend_wins(self, monkeypatch):
        monkeypatch.setenv("WORLD_STORE_BACKEND", "memory")
        monkeypatch.setenv("DATABASE_URL", "postgresql://town@localhost/town")

        assert isinstance(store_from_env(), MemoryWorldStore)


def test_memory_store_hands_out_copies():
    store = MemoryWorldStore()
    payload = {"sprites": [{"id": "sarah"}]}
    store.store(payload)
    payload["sprites"].clear()

    loaded = store.load()
    loaded["sprites"].append({"id": "emma"})

    assert store.load() == {"sprites": [{"id": "sarah"}]}


class FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.requests = []

    async def create(self, **kwargs):
        self.requests.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=self.content))])


def make_client(completions: FakeCompletions) -> LLMClient:
    sdk = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return LLMClient(
        enabled=True,
        base_url="https://llm.test/v1",
        model="gpt-3.5-turbo",
        api_key="test",
        _sdk_client=sdk,
    )


class TestLLMClient:
    def test_disabled_without_key(self):
        client = LLMClient.from_env()

        assert not client.enabled
        assert client.model == "gpt-3.5-turbo"

    def test_timeout_is_clamped(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        monkeypatch.setenv("LLM_TIMEOUT_SEC", "9999")

        client = LLMClient.from_env()

        assert client.enabled
        assert client.timeout_sec == 180.0

    @pytest.mark.asyncio
    async def test_disabled_client_returns_nothing(self):
        client = LLMClient.from_env()

        assert await client.complete("hello", max_tokens=10, temperature=0.5) is None

    @pytest.mark.asyncio
    async def test_complete_sends_single_user_message(self):
        completions = FakeCompletions("  Lovely morning.  ")
        client = make_client(completions)

        text = await client.complete("Say hi", max_tokens=75, temperature=0.8)

        assert text == "Lovely morning."
        request = completions.requests[0]
        assert request["messages"] == [{"role": "user", "content": "Say hi"}]
        assert request["max_tokens"] == 75
        assert request["temperature"] == 0.8

    @pytest.mark.asyncio
    async def test_sdk_errors_become_none(self):
        client = make_client(FakeCompletions(error=RuntimeError("rate limited")))

        assert await client.complete("Say hi", max_tokens=75, temperature=0.8) is None
