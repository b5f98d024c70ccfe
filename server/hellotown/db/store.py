from __future__ import annotations

import copy
import json
import logging
import os
import re
from typing import Any, Protocol

import psycopg
from psycopg.rows import dict_row


LOGGER = logging.getLogger("hellotown.db.store")
_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class WorldStoreError(RuntimeError):
    pass


class WorldStore(Protocol):
    def load(self) -> dict[str, Any] | None: ...

    def store(self, payload: dict[str, Any]) -> None: ...


def _safe_identifier(raw: str, fallback: str) -> str:
    name = (raw or "").strip()
    if not name:
        return fallback
    return name if _IDENTIFIER_RE.match(name) else fallback


def _quote_identifier(identifier: str) -> str:
    return f'"{identifier}"'


class MemoryWorldStore:
    def __init__(self, payload: dict[str, Any] | None = None) -> None:
        self._payload = copy.deepcopy(payload)

    def load(self) -> dict[str, Any] | None:
        return copy.deepcopy(self._payload)

    def store(self, payload: dict[str, Any]) -> None:
        self._payload = copy.deepcopy(payload)


class PostgresWorldStore:
    """Keeps the whole world snapshot as one JSONB row keyed by name."""

    def __init__(self, database_url: str, key: str = "gameState", table_name: str = "world_state") -> None:
        self.database_url = database_url
        self.key = key
        self.table_name = _safe_identifier(table_name, "world_state")
        self._table_ident = _quote_identifier(self.table_name)
        self._conn: Any | None = None

    def _connection(self) -> Any:
        if self._conn is not None and not self._conn.closed:
            return self._conn
        try:
            self._conn = psycopg.connect(self.database_url, autocommit=True, row_factory=dict_row)
            with self._conn.cursor() as cur:
                cur.execute(
                    f"""
                    CREATE TABLE IF NOT EXISTS {self._table_ident} (
                        key TEXT PRIMARY KEY,
                        payload JSONB NOT NULL,
                        updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
                    )
                    """
                )
        except psycopg.Error as exc:
            self._conn = None
            raise WorldStoreError(f"failed to connect world store: {exc}") from exc
        return self._conn

    def load(self) -> dict[str, Any] | None:
        conn = self._connection()
        try:
            with conn.cursor() as cur:
                cur.execute(f"SELECT payload FROM {self._table_ident} WHERE key = %s", (self.key,))
                row = cur.fetchone()
        except psycopg.Error as exc:
            raise WorldStoreError(f"failed to load world state: {exc}") from exc
        if row is None:
            return None
        payload = row.get("payload")
        if isinstance(payload, str):
            payload = json.loads(payload)
        return payload

    def store(self, payload: dict[str, Any]) -> None:
        conn = self._connection()
        try:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    INSERT INTO {self._table_ident} (key, payload, updated_at)
                    VALUES (%s, %s::jsonb, now())
                    ON CONFLICT (key) DO UPDATE
                    SET payload = EXCLUDED.payload, updated_at = EXCLUDED.updated_at
                    """,
                    (self.key, json.dumps(payload, ensure_ascii=False)),
                )
        except psycopg.Error as exc:
            raise WorldStoreError(f"failed to store world state: {exc}") from exc


def store_from_env() -> WorldStore:
    backend = os.getenv("WORLD_STORE_BACKEND", "auto").strip().lower()
    database_url = (os.getenv("WORLD_DATABASE_URL") or os.getenv("DATABASE_URL") or "").strip() or None
    if backend == "auto":
        backend = "postgres" if database_url else "memory"

    if backend == "postgres":
        if database_url:
            return PostgresWorldStore(
                database_url,
                key=os.getenv("WORLD_STATE_KEY", "gameState").strip() or "gameState",
                table_name=os.getenv("WORLD_STATE_TABLE", "world_state"),
            )
        LOGGER.warning("WORLD_STORE_BACKEND=postgres requested, but WORLD_DATABASE_URL/DATABASE_URL is empty.")

    return MemoryWorldStore()
