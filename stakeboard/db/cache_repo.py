"""Persistence for the withdrawal amount cache.

The whole cache lives as one JSON document under a fixed key in the
kv_store table.
"""
from __future__ import annotations

import json
import sqlite3
from typing import Dict

from stakeboard.errors import CacheIOError
from stakeboard.shared.time_utils import now_utc

WITHDRAWAL_CACHE_KEY = "stxtz_withdrawal_cache"


class WithdrawalCacheRepo:
    def __init__(self, conn: sqlite3.Connection, key: str = WITHDRAWAL_CACHE_KEY):
        self.conn = conn
        self.key = key

    def load(self) -> Dict[str, float]:
        """Read the cached amounts. A missing row is an empty cache.

        Raises:
            CacheIOError: if the row can't be read or isn't a JSON object.
        """
        try:
            row = self.conn.execute(
                "SELECT value FROM kv_store WHERE key = ?", (self.key,),
            ).fetchone()
        except sqlite3.Error as e:
            raise CacheIOError(f"Failed to read withdrawal cache: {e}") from e

        if row is None:
            return {}

        try:
            data = json.loads(row[0])
        except ValueError as e:
            raise CacheIOError(f"Corrupt withdrawal cache: {e}") from e
        if not isinstance(data, dict):
            raise CacheIOError("Corrupt withdrawal cache: not a JSON object")

        entries: Dict[str, float] = {}
        for k, v in data.items():
            if isinstance(v, (int, float)) and not isinstance(v, bool):
                entries[k] = float(v)
        return entries

    def save(self, entries: Dict[str, float]) -> None:
        """Replace the stored cache.

        Raises:
            CacheIOError: if the write fails.
        """
        try:
            self.conn.execute(
                """INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
                   ON CONFLICT(key) DO UPDATE SET
                       value = excluded.value, updated_at = excluded.updated_at""",
                (self.key, json.dumps(entries), now_utc()),
            )
            self.conn.commit()
        except sqlite3.Error as e:
            raise CacheIOError(f"Failed to save withdrawal cache: {e}") from e

    def clear(self) -> None:
        try:
            self.conn.execute("DELETE FROM kv_store WHERE key = ?", (self.key,))
            self.conn.commit()
        except sqlite3.Error as e:
            raise CacheIOError(f"Failed to clear withdrawal cache: {e}") from e
