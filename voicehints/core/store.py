from __future__ import annotations

import json
import logging
import sqlite3
import threading
import time
from pathlib import Path
from typing import Any

from voicehints.core.models import WeightVector
from voicehints.core.settings import HintSettings

logger = logging.getLogger("voicehints.store")

MAX_METRICS_SESSIONS = 100


class HintStore:
    """SQLite-backed persistence for settings, learned weights and metrics.

    Each call opens its own connection so the store can be shared between
    the tick loop and the REPL without handing connections across threads.
    """

    def __init__(self, db_path: str = "/tmp/voicehints/store.db") -> None:
        self._db_path = db_path
        self._lock = threading.RLock()
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._initialize()

    @property
    def db_path(self) -> str:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        return conn

    def _initialize(self) -> None:
        with self._lock, self._connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS kv_state (
                    key TEXT PRIMARY KEY,
                    value_json TEXT NOT NULL,
                    updated_at REAL NOT NULL
                );

                CREATE TABLE IF NOT EXISTS metrics_history (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    saved_at REAL NOT NULL,
                    payload_json TEXT NOT NULL
                );
                """
            )
            conn.commit()

    def _put(self, key: str, payload: Any) -> None:
        with self._lock, self._connect() as conn:
            conn.execute(
                """
                INSERT INTO kv_state(key, value_json, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key)
                DO UPDATE SET value_json=excluded.value_json, updated_at=excluded.updated_at
                """,
                (key, json.dumps(payload, sort_keys=True), time.time()),
            )
            conn.commit()

    def _get(self, key: str) -> Any | None:
        with self._lock, self._connect() as conn:
            row = conn.execute("SELECT value_json FROM kv_state WHERE key = ?", (key,)).fetchone()
        if not row:
            return None
        return json.loads(row[0])

    def _delete(self, key: str) -> None:
        with self._lock, self._connect() as conn:
            conn.execute("DELETE FROM kv_state WHERE key = ?", (key,))
            conn.commit()

    # Settings
    def save_settings(self, settings: HintSettings) -> None:
        self._put("settings", settings.to_dict())

    def load_settings(self) -> HintSettings:
        payload = self._get("settings")
        if payload is not None and not isinstance(payload, dict):
            logger.warning("[Store] Stored settings are not an object, using defaults")
            return HintSettings()
        return HintSettings.from_dict(payload, strict=False)

    # Learned weights
    def save_weights(self, weights: WeightVector) -> None:
        self._put("weights", weights.to_dict())

    def load_weights(self) -> WeightVector | None:
        payload = self._get("weights")
        if payload is None:
            return None
        return WeightVector.from_dict(payload)

    def clear_weights(self) -> None:
        self._delete("weights")

    # Enabled flag
    def set_enabled(self, enabled: bool) -> None:
        self._put("enabled", bool(enabled))

    def get_enabled(self, default: bool = True) -> bool:
        value = self._get("enabled")
        return default if value is None else bool(value)

    # Metrics history
    def append_metrics(self, payload: dict[str, Any], saved_at: float | None = None) -> None:
        ts = saved_at if saved_at is not None else time.time()
        with self._lock, self._connect() as conn:
            conn.execute(
                "INSERT INTO metrics_history(saved_at, payload_json) VALUES (?, ?)",
                (ts, json.dumps(payload, sort_keys=True)),
            )
            conn.execute(
                """
                DELETE FROM metrics_history
                WHERE id NOT IN (
                    SELECT id FROM metrics_history ORDER BY id DESC LIMIT ?
                )
                """,
                (MAX_METRICS_SESSIONS,),
            )
            conn.commit()

    def list_metrics(self) -> list[dict[str, Any]]:
        with self._lock, self._connect() as conn:
            rows = conn.execute("SELECT saved_at, payload_json FROM metrics_history ORDER BY id ASC").fetchall()
        return [{**json.loads(payload), "saved_at": saved_at} for saved_at, payload in rows]

    def clear_metrics(self) -> None:
        with self._lock, self._connect() as conn:
            conn.execute("DELETE FROM metrics_history")
            conn.commit()
