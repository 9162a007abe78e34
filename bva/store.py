"""
Device-state persistence for the Bible Verses App.

Two layers:

- KeyValueStore: opaque string keys -> serialized JSON strings.
    * SqliteKeyValueStore  (kv_store table in the app's SQLite file)
    * MemoryKeyValueStore  (dict-backed; tests and throwaway runs)

- StorageService: typed records on top of a KeyValueStore: displayed
  history, the schedule of pending reveals, the current verse, widget
  settings, collections and theme sync.

StorageService favours availability over durability: a failed read is
logged and answered with an empty default, a failed write is logged and
dropped. Read-modify-write sequences run under a per-service lock so
that interleaved timer and foreground callbacks cannot lose updates.
"""

from __future__ import annotations

import json
import sqlite3
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Protocol

from . import config
from .db import get_conn
from .model import (
    Collection,
    DisplayedVerseRecord,
    ScheduledReveal,
    Verse,
    WidgetSettings,
)
from .util import error, utc_now
from .widget import WidgetBridge, sync_widget

# Everything a broken backend or a corrupt record can raise on the way in/out.
PERSISTENCE_ERRORS = (sqlite3.Error, OSError, ValueError, KeyError, TypeError)


class KeyValueStore(Protocol):
    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryKeyValueStore:
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove_item(self, key: str) -> None:
        self.data.pop(key, None)


KV_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS kv_store (
    key          TEXT PRIMARY KEY,
    value        TEXT NOT NULL,
    updated_utc  TEXT NOT NULL
);
"""


class SqliteKeyValueStore:
    """
    Key-value store backed by one table in a SQLite file.

    The schema is applied on first use (idempotent).
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._schema_ready = False

    def _ensure_schema(self, conn: sqlite3.Connection) -> None:
        if not self._schema_ready:
            conn.executescript(KV_SCHEMA_SQL)
            self._schema_ready = True

    def get_item(self, key: str) -> Optional[str]:
        with get_conn(self.db_path) as conn:
            self._ensure_schema(conn)
            row = conn.execute("SELECT value FROM kv_store WHERE key = ?;", (key,)).fetchone()
        return None if row is None else row["value"]

    def set_item(self, key: str, value: str) -> None:
        with get_conn(self.db_path) as conn:
            self._ensure_schema(conn)
            conn.execute(
                """
                INSERT INTO kv_store (key, value, updated_utc)
                VALUES (:key, :value, :updated_utc)
                ON CONFLICT(key) DO UPDATE SET
                    value       = excluded.value,
                    updated_utc = excluded.updated_utc;
                """,
                {
                    "key": key,
                    "value": value,
                    "updated_utc": utc_now().isoformat(timespec="seconds"),
                },
            )
            conn.commit()

    def remove_item(self, key: str) -> None:
        with get_conn(self.db_path) as conn:
            self._ensure_schema(conn)
            conn.execute("DELETE FROM kv_store WHERE key = ?;", (key,))
            conn.commit()

    def keys(self) -> List[str]:
        with get_conn(self.db_path) as conn:
            self._ensure_schema(conn)
            rows = conn.execute("SELECT key FROM kv_store ORDER BY key;").fetchall()
        return [r["key"] for r in rows]


class StorageService:
    """
    Typed persistence of device state over a KeyValueStore.

    Besides the storage-level names (get_scheduled_verses, add_displayed_verse,
    ...), it exposes the schedule-store names the engine consumes
    (list_pending, insert, remove_by_id, list_displayed_history,
    append_displayed, get_current_verse, set_current_verse, get_settings).
    """

    def __init__(
        self,
        kv: KeyValueStore,
        bridge: Optional[WidgetBridge] = None,
        clock: Callable[[], Any] = utc_now,
        history_cap: int = config.HISTORY_CAP,
    ):
        self.kv = kv
        self.bridge = bridge
        self.clock = clock
        self.history_cap = history_cap
        self.lock = threading.RLock()

    # ---------- raw JSON helpers ----------

    def _read_json(self, key: str, what: str) -> Any:
        try:
            raw = self.kv.get_item(key)
            return None if raw is None else json.loads(raw)
        except PERSISTENCE_ERRORS as e:
            error(f"Error getting {what}: {e!r}")
            return None

    def _write_json(self, key: str, value: Any, what: str) -> bool:
        try:
            self.kv.set_item(key, json.dumps(value, ensure_ascii=False))
            return True
        except PERSISTENCE_ERRORS as e:
            error(f"Error saving {what}: {e!r}")
            return False

    # ---------- displayed history ----------

    def get_displayed_verses(self) -> List[DisplayedVerseRecord]:
        """Displayed history, newest first as stored."""
        data = self._read_json(config.KEY_DISPLAYED_VERSES, "displayed verses")
        if not data:
            return []
        try:
            return [DisplayedVerseRecord.from_dict(d) for d in data]
        except PERSISTENCE_ERRORS as e:
            error(f"Error decoding displayed verses: {e!r}")
            return []

    def add_displayed_verse(self, verse: Verse, displayed_at=None) -> None:
        """Record `verse` at the head of history, keeping the newest `history_cap`."""
        record = DisplayedVerseRecord(
            verse=verse,
            displayed_at=displayed_at if displayed_at is not None else self.clock(),
        )
        with self.lock:
            displayed = self.get_displayed_verses()
            displayed.insert(0, record)
            trimmed = displayed[: self.history_cap]
            self._write_json(
                config.KEY_DISPLAYED_VERSES,
                [r.to_dict() for r in trimmed],
                "displayed verse",
            )

    def list_displayed_history(self) -> List[DisplayedVerseRecord]:
        return self.get_displayed_verses()

    def append_displayed(self, record: DisplayedVerseRecord) -> None:
        self.add_displayed_verse(record.verse, displayed_at=record.displayed_at)

    # ---------- scheduled reveals ----------

    def get_scheduled_verses(self) -> List[ScheduledReveal]:
        """Pending reveals, ascending by scheduled_for."""
        data = self._read_json(config.KEY_SCHEDULED_VERSES, "scheduled verses")
        if not data:
            return []
        try:
            reveals = [ScheduledReveal.from_dict(d) for d in data]
        except PERSISTENCE_ERRORS as e:
            error(f"Error decoding scheduled verses: {e!r}")
            return []
        reveals.sort(key=lambda r: r.scheduled_for)
        return reveals

    def add_scheduled_verse(self, reveal: ScheduledReveal) -> None:
        with self.lock:
            scheduled = self.get_scheduled_verses()
            scheduled.append(reveal)
            scheduled.sort(key=lambda r: r.scheduled_for)
            self._write_json(
                config.KEY_SCHEDULED_VERSES,
                [r.to_dict() for r in scheduled],
                "scheduled verse",
            )

    def remove_scheduled_verse(self, reveal_id: str) -> bool:
        """
        Remove the pending reveal with `reveal_id`.

        Removing an id that is not pending is a no-op. Returns True only
        when this call removed an entry.
        """
        with self.lock:
            scheduled = self.get_scheduled_verses()
            remaining = [r for r in scheduled if r.id != reveal_id]
            if len(remaining) == len(scheduled):
                return False
            return self._write_json(
                config.KEY_SCHEDULED_VERSES,
                [r.to_dict() for r in remaining],
                "scheduled verses",
            )

    def list_pending(self) -> List[ScheduledReveal]:
        return self.get_scheduled_verses()

    def insert(self, reveal: ScheduledReveal) -> None:
        self.add_scheduled_verse(reveal)

    def remove_by_id(self, reveal_id: str) -> bool:
        return self.remove_scheduled_verse(reveal_id)

    # ---------- current verse ----------

    def get_current_verse(self) -> Optional[Verse]:
        data = self._read_json(config.KEY_CURRENT_VERSE, "current verse")
        if not data:
            return None
        try:
            return Verse.from_dict(data)
        except PERSISTENCE_ERRORS as e:
            error(f"Error decoding current verse: {e!r}")
            return None

    def set_current_verse(self, verse: Verse) -> None:
        self._write_json(config.KEY_CURRENT_VERSE, verse.to_dict(), "current verse")

    # ---------- widget settings ----------

    def get_widget_settings(self) -> WidgetSettings:
        data = self._read_json(config.KEY_WIDGET_SETTINGS, "widget settings")
        if not data:
            return WidgetSettings()
        try:
            return WidgetSettings.from_dict(data)
        except PERSISTENCE_ERRORS as e:
            error(f"Error decoding widget settings: {e!r}")
            return WidgetSettings()

    def get_settings(self) -> WidgetSettings:
        return self.get_widget_settings()

    def save_widget_settings(self, settings: WidgetSettings) -> None:
        """Persist settings, then sync them to the widget (best-effort)."""
        if self._write_json(config.KEY_WIDGET_SETTINGS, settings.to_dict(), "widget settings"):
            sync_widget(
                self.bridge,
                "update_widget_settings",
                settings.refresh_frequency.value,
                settings.custom_hours,
            )

    # ---------- collections ----------

    def get_collections(self) -> List[Collection]:
        data = self._read_json(config.KEY_COLLECTIONS, "collections")
        if not data:
            return []
        try:
            return [Collection.from_dict(d) for d in data]
        except PERSISTENCE_ERRORS as e:
            error(f"Error decoding collections: {e!r}")
            return []

    def save_collection(self, collection: Collection) -> None:
        """Insert or replace (by id) a collection."""
        with self.lock:
            collections = self.get_collections()
            for i, existing in enumerate(collections):
                if existing.id == collection.id:
                    collections[i] = collection
                    break
            else:
                collections.append(collection)
            self._write_json(
                config.KEY_COLLECTIONS,
                [c.to_dict() for c in collections],
                "collection",
            )

    def delete_collection(self, collection_id: str) -> None:
        with self.lock:
            collections = self.get_collections()
            remaining = [c for c in collections if c.id != collection_id]
            if len(remaining) != len(collections):
                self._write_json(
                    config.KEY_COLLECTIONS,
                    [c.to_dict() for c in remaining],
                    "collections",
                )

    # ---------- theme ----------

    def get_custom_colors(self) -> Optional[Dict[str, str]]:
        data = self._read_json(config.KEY_CUSTOM_COLORS, "custom colors")
        if not isinstance(data, dict):
            return None
        # secondary colors are no longer supported
        data.pop("secondary", None)
        return data

    def save_custom_colors(self, primary: Optional[str]) -> None:
        colors = {"primary": primary} if primary else {}
        if self._write_json(config.KEY_CUSTOM_COLORS, colors, "custom colors"):
            sync_widget(self.bridge, "update_theme_colors", primary or None)

    def get_theme_name(self) -> Optional[str]:
        data = self._read_json(config.KEY_THEME_NAME, "theme name")
        return data if isinstance(data, str) else None

    def save_theme_name(self, name: str) -> None:
        if self._write_json(config.KEY_THEME_NAME, name, "theme name"):
            sync_widget(self.bridge, "update_theme_name", name)
