from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, Optional

from .errors import PersistenceParseFailure


MEMORY_DB_PATH = ":memory:"


class KeyValueStore:
    """SQLite-backed durable key → string mapping.

    ブラウザの localStorage 相当。値は常に文字列（JSON スナップショット）として保存し、
    書き込みは呼び出しごとに即時コミットする。
    ``:memory:`` の場合は接続ごとに別 DB になるため、単一の接続を保持して使い回す。
    """

    def __init__(self, db_path: str) -> None:
        self.db_path = db_path
        self._memory_conn: Optional[sqlite3.Connection] = None
        if db_path == MEMORY_DB_PATH:
            self._memory_conn = self._connect()
        else:
            self._ensure_dirs()
        self._init_db()

    # --- low-level helpers ---
    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=10.0, isolation_level=None, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        if self._memory_conn is not None:
            yield self._memory_conn
            return
        conn = self._connect()
        try:
            yield conn
        finally:
            conn.close()

    def _ensure_dirs(self) -> None:
        p = Path(self.db_path)
        if p.parent and not p.parent.exists():
            p.parent.mkdir(parents=True, exist_ok=True)

    def _init_db(self) -> None:
        with self._connection() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );
                """
            )

    # --- public API ---
    def get(self, key: str) -> Optional[str]:
        with self._connection() as conn:
            row = conn.execute("SELECT value FROM kv WHERE key = ?;", (key,)).fetchone()
            return None if row is None else str(row["value"])

    def set(self, key: str, value: str) -> None:
        now = datetime.now(timezone.utc).isoformat()
        with self._connection() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO kv(key, value, updated_at) VALUES (?, ?, ?);",
                (key, value, now),
            )

    def delete(self, key: str) -> bool:
        with self._connection() as conn:
            cur = conn.execute("DELETE FROM kv WHERE key = ?;", (key,))
            return cur.rowcount > 0

    def close(self) -> None:
        """Close the shared in-memory connection; later calls raise ``sqlite3.ProgrammingError``."""
        if self._memory_conn is not None:
            self._memory_conn.close()


def load_json(store: KeyValueStore, key: str, default: Any) -> Any:
    """Read ``key`` and decode it as JSON.

    未保存なら default を返す。壊れた JSON は PersistenceParseFailure を送出する。
    """
    raw = store.get(key)
    if raw is None or raw == "":
        return default
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise PersistenceParseFailure(key, str(exc)) from exc
