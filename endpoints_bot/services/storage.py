"""
Key-value storage backends for bot state.

Any store with get/set/delete by key is enough for sessions:
- InMemoryKeyValueStore: dev and tests, lost on restart
- SQLiteKeyValueStore: single-instance deployments (default)
- SupabaseKeyValueStore: shared table when running several instances

Values are JSON-serializable dicts. Keys are namespaced by callers,
e.g. "sessions:12345".
"""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional

from endpoints_bot.config import Settings
from endpoints_bot.telegram_bot.logging_config import bot_logger as logger


class KeyValueStore:
    """Interface for session persistence."""

    async def get(self, key: str) -> Optional[dict[str, Any]]:
        raise NotImplementedError

    async def set(self, key: str, value: dict[str, Any]) -> None:
        raise NotImplementedError

    async def delete(self, key: str) -> None:
        raise NotImplementedError


class InMemoryKeyValueStore(KeyValueStore):
    """Plain dict storage."""

    def __init__(self):
        self._data: dict[str, str] = {}

    async def get(self, key: str) -> Optional[dict[str, Any]]:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    async def set(self, key: str, value: dict[str, Any]) -> None:
        # Stored serialized so callers can't mutate the stored copy
        self._data[key] = json.dumps(value)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def raw(self, key: str) -> Optional[dict[str, Any]]:
        """Stored value as persisted (for inspection in tests and tooling)."""
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    def put_raw(self, key: str, value: dict[str, Any]) -> None:
        self._data[key] = json.dumps(value)


class SQLiteKeyValueStore(KeyValueStore):
    """Single-table SQLite storage."""

    def __init__(self, db_path: str):
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self.db_path = db_path
        self._shared_conn: Optional[sqlite3.Connection] = None
        if db_path == ":memory:":
            # One connection, otherwise every connect() sees an empty database
            self._shared_conn = sqlite3.connect(db_path, check_same_thread=False)
        self.init_schema()

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        if self._shared_conn is not None:
            yield self._shared_conn
            self._shared_conn.commit()
            return

        conn = sqlite3.connect(self.db_path, check_same_thread=False)
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def init_schema(self) -> None:
        with self.connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )

    async def get(self, key: str) -> Optional[dict[str, Any]]:
        with self.connect() as conn:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        return json.loads(row[0]) if row else None

    async def set(self, key: str, value: dict[str, Any]) -> None:
        with self.connect() as conn:
            conn.execute(
                "INSERT INTO kv (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, json.dumps(value)),
            )

    async def delete(self, key: str) -> None:
        with self.connect() as conn:
            conn.execute("DELETE FROM kv WHERE key = ?", (key,))


class SupabaseKeyValueStore(KeyValueStore):
    """
    Storage in a Supabase table.

    Expected table:
        create table bot_kv (key text primary key, value jsonb not null);
    """

    def __init__(self, client, table: str = "bot_kv"):
        self.client = client
        self.table = table

    async def get(self, key: str) -> Optional[dict[str, Any]]:
        result = self.client.table(self.table).select("value").eq("key", key).execute()
        if not result.data:
            return None
        return result.data[0]["value"]

    async def set(self, key: str, value: dict[str, Any]) -> None:
        self.client.table(self.table).upsert(
            {"key": key, "value": value}, on_conflict="key"
        ).execute()

    async def delete(self, key: str) -> None:
        self.client.table(self.table).delete().eq("key", key).execute()


def create_store(settings: Settings) -> KeyValueStore:
    """Build the storage backend selected in settings."""
    backend = settings.session_backend.lower()

    if backend == "memory":
        logger.warning("Using in-memory session storage, sessions are lost on restart")
        return InMemoryKeyValueStore()

    if backend == "sqlite":
        logger.info(f"Using SQLite session storage at {settings.database_path}")
        return SQLiteKeyValueStore(settings.database_path)

    if backend == "supabase":
        from endpoints_bot.supabase_client import get_supabase_admin

        logger.info(f"Using Supabase session storage, table={settings.sessions_table}")
        return SupabaseKeyValueStore(get_supabase_admin(), settings.sessions_table)

    raise ValueError(f"Unknown session backend: {settings.session_backend}")
