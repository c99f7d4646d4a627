"""SQLite backed persistence for podai history."""

from __future__ import annotations

import json
import logging
import random as _random
import sqlite3
import time
from datetime import date
from pathlib import Path
from typing import List, Optional

from pydantic import TypeAdapter, ValidationError

from .config import APP_DIR, MAX_HISTORY_LIMIT
from .models import HistoryItem, PodcastResult

DB_PATH = APP_DIR / "podai.db"
HISTORY_KEY = "podai_history"
HISTORY_LIMIT = MAX_HISTORY_LIMIT
SNIPPET_LENGTH = 100

_HISTORY_ADAPTER = TypeAdapter(List[HistoryItem])


class StorageError(RuntimeError):
    """Raised when something goes wrong while accessing the storage."""


class HistoryNotFoundError(StorageError):
    """Raised when a history item id does not exist."""


class KeyValueStore:
    """A local key-value mechanism holding one text value per key."""

    def __init__(self, db_path: Optional[Path] = None) -> None:
        self.db_path = db_path or DB_PATH
        self._ensure_initialised()

    def _ensure_initialised(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )

    def get(self, key: str) -> Optional[str]:
        with sqlite3.connect(self.db_path) as conn:
            cur = conn.execute("SELECT value FROM kv WHERE key = ?", (key,))
            row = cur.fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                "INSERT INTO kv(key, value) VALUES(?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, value),
            )

    def delete(self, key: str) -> None:
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("DELETE FROM kv WHERE key = ?", (key,))


class HistoryStore:
    """Most-recent-first list of completed transformations.

    The whole list lives under a single key and is rewritten on every
    mutation. It never holds more than ``limit`` items; the oldest entries
    are dropped when a new one pushes it over. Limits above
    ``HISTORY_LIMIT`` are clamped to it.
    """

    def __init__(self, kv: Optional[KeyValueStore] = None, limit: int = HISTORY_LIMIT) -> None:
        self.kv = kv or KeyValueStore()
        self.limit = min(limit, HISTORY_LIMIT)

    def list(self) -> List[HistoryItem]:
        raw = self.kv.get(HISTORY_KEY)
        if not raw:
            return []
        try:
            return _HISTORY_ADAPTER.validate_json(raw)
        except ValidationError as exc:
            logging.warning("Failed to parse history, starting empty: %s", exc)
            return []

    def _write(self, items: List[HistoryItem]) -> None:
        payload = _HISTORY_ADAPTER.dump_json(items, by_alias=True).decode("utf-8")
        self.kv.set(HISTORY_KEY, payload)

    def add(self, result: PodcastResult, file_name: str) -> HistoryItem:
        items = self.list()
        timestamp = int(time.time() * 1000)
        item = HistoryItem(
            id=_new_id(timestamp, {existing.id for existing in items}),
            timestamp=timestamp,
            file_name=file_name,
            persona_id=result.selected_persona_id,
            transcript_snippet=result.transcript[:SNIPPET_LENGTH] + "...",
            full_transcript=result.transcript,
            transformed_content=result.transformed_content,
        )
        items.insert(0, item)
        self._write(items[: self.limit])
        logging.debug("Saved history item %s for %s", item.id, file_name)
        return item

    def get(self, item_id: str) -> HistoryItem:
        for item in self.list():
            if item.id == item_id:
                return item
        raise HistoryNotFoundError(f"History item with id {item_id} not found")

    def delete(self, item_id: str) -> bool:
        items = self.list()
        remaining = [item for item in items if item.id != item_id]
        if len(remaining) == len(items):
            return False
        self._write(remaining)
        return True

    def clear(self) -> int:
        count = len(self.list())
        self.kv.delete(HISTORY_KEY)
        return count

    def random(self) -> Optional[HistoryItem]:
        items = self.list()
        if not items:
            return None
        return _random.choice(items)

    def export_json(self) -> str:
        return json.dumps(
            [item.model_dump(by_alias=True) for item in self.list()],
            indent=2,
            ensure_ascii=False,
        )

    def export(self, directory: Path, today: Optional[date] = None) -> Path:
        """Write the full history as a dated JSON archive inside *directory*."""

        if not self.list():
            raise StorageError("History is empty; nothing to export.")
        directory.mkdir(parents=True, exist_ok=True)
        destination = directory / export_filename(today or date.today())
        destination.write_text(self.export_json(), encoding="utf-8")
        return destination


def export_filename(today: date) -> str:
    return f"podai_history_export_{today.isoformat()}.json"


def _new_id(timestamp: int, taken: set) -> str:
    candidate = timestamp
    while str(candidate) in taken:
        candidate += 1
    return str(candidate)
