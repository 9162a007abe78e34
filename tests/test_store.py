import json
import sqlite3
from datetime import datetime, timedelta, timezone

import pytest

from bva import config
from bva.db import ping
from bva.model import (
    Collection,
    RefreshFrequency,
    ScheduledReveal,
    Verse,
    WidgetSettings,
)
from bva.store import MemoryKeyValueStore, SqliteKeyValueStore, StorageService

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def verse(n, book="John", chapter=3):
    return Verse(book=book, chapter=chapter, verse_number=n, text=f"Text of {book} {chapter}:{n}.")


class BrokenKeyValueStore:
    def get_item(self, key):
        raise sqlite3.OperationalError("database is locked")

    def set_item(self, key, value):
        raise sqlite3.OperationalError("database is locked")

    def remove_item(self, key):
        raise sqlite3.OperationalError("database is locked")


@pytest.fixture
def sqlite_store(tmp_path, bridge, clock):
    return StorageService(SqliteKeyValueStore(tmp_path / "state" / "verses.sqlite"), bridge=bridge, clock=clock)


# ---------- key-value backends ----------


def test_memory_kv_basic_operations():
    kv = MemoryKeyValueStore({"a": "1"})
    assert kv.get_item("a") == "1"
    kv.set_item("b", "2")
    kv.remove_item("a")
    kv.remove_item("missing")
    assert kv.data == {"b": "2"}


def test_sqlite_kv_upserts_and_removes(tmp_path):
    db_path = tmp_path / "nested" / "kv.sqlite"
    kv = SqliteKeyValueStore(db_path)
    assert kv.get_item("x") is None
    kv.set_item("x", "1")
    kv.set_item("x", "2")
    kv.set_item("a", "3")
    assert kv.get_item("x") == "2"
    assert kv.keys() == ["a", "x"]
    kv.remove_item("x")
    assert kv.get_item("x") is None
    assert ping(db_path)


def test_sqlite_kv_persists_across_instances(tmp_path):
    db_path = tmp_path / "kv.sqlite"
    SqliteKeyValueStore(db_path).set_item("k", "v")
    assert SqliteKeyValueStore(db_path).get_item("k") == "v"


def test_ping_missing_database(tmp_path):
    assert not ping(tmp_path / "absent.sqlite")


# ---------- displayed history ----------


def test_displayed_history_newest_first(store, clock):
    store.add_displayed_verse(verse(14))
    clock.advance(hours=1)
    store.add_displayed_verse(verse(15))
    history = store.get_displayed_verses()
    assert [r.verse.reference for r in history] == ["John 3:15", "John 3:14"]
    assert history[0].displayed_at == T0 + timedelta(hours=1)


def test_displayed_history_is_capped(bridge, clock):
    store = StorageService(MemoryKeyValueStore(), bridge=bridge, clock=clock, history_cap=5)
    for n in range(1, 9):
        store.add_displayed_verse(verse(n), displayed_at=T0 + timedelta(minutes=n))
    history = store.list_displayed_history()
    assert len(history) == 5
    assert [r.verse.verse_number for r in history] == [8, 7, 6, 5, 4]


def test_default_history_cap_is_100(store):
    for n in range(1, 106):
        store.add_displayed_verse(verse(n))
    assert len(store.get_displayed_verses()) == config.HISTORY_CAP == 100


def test_append_displayed_keeps_timestamp(store):
    from bva.model import DisplayedVerseRecord

    store.append_displayed(DisplayedVerseRecord(verse=verse(16), displayed_at=T0 - timedelta(days=1)))
    assert store.get_displayed_verses()[0].displayed_at == T0 - timedelta(days=1)


def test_expanded_verse_round_trips_through_history(store):
    expanded = Verse(book="John", chapter=3, verse_number=14, text="A. B.", reference="John 3:14-16")
    store.add_displayed_verse(expanded)
    got = store.get_displayed_verses()[0].verse
    assert got == expanded
    assert got.is_range


# ---------- schedule ----------


def test_scheduled_verses_are_sorted_ascending(store):
    store.add_scheduled_verse(ScheduledReveal("b", verse(2), T0 + timedelta(hours=2)))
    store.add_scheduled_verse(ScheduledReveal("a", verse(1), T0 + timedelta(hours=1)))
    store.insert(ScheduledReveal("c", verse(3), T0 + timedelta(hours=3), collection_id="col"))
    pending = store.list_pending()
    assert [r.id for r in pending] == ["a", "b", "c"]
    assert pending[2].collection_id == "col"


def test_remove_scheduled_verse_is_idempotent(store):
    store.insert(ScheduledReveal("a", verse(1), T0))
    assert store.remove_by_id("a") is True
    assert store.remove_by_id("a") is False
    assert store.remove_scheduled_verse("never-existed") is False
    assert store.get_scheduled_verses() == []


def test_schedule_round_trips_through_sqlite(sqlite_store):
    sqlite_store.insert(ScheduledReveal("x", verse(16), T0 + timedelta(days=1)))
    reveal = sqlite_store.get_scheduled_verses()[0]
    assert reveal.id == "x"
    assert reveal.verse.reference == "John 3:16"
    assert reveal.scheduled_for == T0 + timedelta(days=1)


def test_reads_javascript_timestamps():
    raw = json.dumps([{
        "id": "js",
        "verse": {"verse": "Text.", "reference": "John 3:16", "book": "John", "chapter": 3, "verseNumber": 16},
        "scheduledFor": "2026-03-02T09:00:00.000Z",
    }])
    store = StorageService(MemoryKeyValueStore({config.KEY_SCHEDULED_VERSES: raw}))
    reveal = store.get_scheduled_verses()[0]
    assert reveal.scheduled_for == datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
    assert reveal.verse.text == "Text."


# ---------- failure handling ----------


def test_corrupt_json_reads_as_defaults(capsys):
    kv = MemoryKeyValueStore({
        config.KEY_DISPLAYED_VERSES: "{not json",
        config.KEY_SCHEDULED_VERSES: "[{\"id\": 1}]",
        config.KEY_CURRENT_VERSE: "null",
        config.KEY_WIDGET_SETTINGS: "{\"refreshFrequency\": \"weekly\"}",
        config.KEY_COLLECTIONS: "[{}]",
    })
    store = StorageService(kv)
    assert store.get_displayed_verses() == []
    assert store.get_scheduled_verses() == []
    assert store.get_current_verse() is None
    assert store.get_widget_settings() == WidgetSettings()
    assert store.get_collections() == []
    assert "[error]" in capsys.readouterr().err


def test_broken_backend_never_raises(bridge, capsys):
    store = StorageService(BrokenKeyValueStore(), bridge=bridge)
    assert store.get_displayed_verses() == []
    assert store.list_pending() == []
    assert store.get_current_verse() is None
    assert store.get_settings().refresh_frequency is RefreshFrequency.DAILY

    store.add_displayed_verse(verse(1))
    store.insert(ScheduledReveal("a", verse(1), T0))
    store.set_current_verse(verse(1))
    assert store.remove_by_id("a") is False

    store.save_widget_settings(WidgetSettings(RefreshFrequency.HOURLY))
    assert bridge.calls == []
    assert "database is locked" in capsys.readouterr().err


# ---------- current verse and settings ----------


def test_current_verse_round_trip(store):
    assert store.get_current_verse() is None
    store.set_current_verse(verse(16))
    assert store.get_current_verse() == verse(16)


def test_current_verse_is_stored_in_widget_shape(store):
    store.set_current_verse(verse(16))
    data = json.loads(store.kv.get_item(config.KEY_CURRENT_VERSE))
    assert data["verse"] == data["text"] == "Text of John 3:16."
    assert data["reference"] == "John 3:16"
    assert data["verseNumber"] == 16


def test_widget_settings_default_to_daily(store):
    settings = store.get_widget_settings()
    assert settings.refresh_frequency is RefreshFrequency.DAILY
    assert settings.custom_hours is None


def test_saving_settings_syncs_widget(store, bridge):
    store.save_widget_settings(WidgetSettings(RefreshFrequency.CUSTOM, custom_hours=6))
    assert store.get_settings() == WidgetSettings(RefreshFrequency.CUSTOM, custom_hours=6)
    assert bridge.calls == [("update_widget_settings", "custom", 6)]


def test_settings_intervals():
    assert WidgetSettings(RefreshFrequency.HOURLY).interval() == timedelta(hours=1)
    assert WidgetSettings(RefreshFrequency.DAILY).interval() == timedelta(hours=24)
    assert WidgetSettings(RefreshFrequency.CUSTOM, 6).interval() == timedelta(hours=6)
    assert WidgetSettings(RefreshFrequency.CUSTOM).interval(24) == timedelta(hours=24)
    assert WidgetSettings(RefreshFrequency.CUSTOM, 0).interval(24) == timedelta(hours=24)
    assert WidgetSettings(RefreshFrequency.ON_APP_OPEN).interval() == timedelta(0)
    assert not WidgetSettings(RefreshFrequency.ON_APP_OPEN).pre_schedules


# ---------- collections ----------


def test_collections_upsert_and_delete(store):
    store.save_collection(Collection(id="c1", name="Comfort", verses=[verse(16)], created_at=T0))
    store.save_collection(Collection(id="c2", name="Hope"))
    store.save_collection(Collection(id="c1", name="Comfort II", verses=[verse(16), verse(17)]))
    collections = store.get_collections()
    assert [(c.id, c.name) for c in collections] == [("c1", "Comfort II"), ("c2", "Hope")]
    assert [v.reference for v in collections[0].verses] == ["John 3:16", "John 3:17"]

    store.delete_collection("c1")
    store.delete_collection("missing")
    assert [c.id for c in store.get_collections()] == ["c2"]


# ---------- theme ----------


def test_custom_colors_drop_secondary(bridge):
    kv = MemoryKeyValueStore({config.KEY_CUSTOM_COLORS: json.dumps({"primary": "#112233", "secondary": "#445566"})})
    store = StorageService(kv, bridge=bridge)
    assert store.get_custom_colors() == {"primary": "#112233"}


def test_save_custom_colors_syncs_widget(store, bridge):
    assert store.get_custom_colors() is None
    store.save_custom_colors("#aabbcc")
    assert store.get_custom_colors() == {"primary": "#aabbcc"}
    store.save_custom_colors(None)
    assert store.get_custom_colors() == {}
    assert bridge.calls == [("update_theme_colors", "#aabbcc"), ("update_theme_colors", None)]


def test_theme_name_round_trip(store, bridge):
    assert store.get_theme_name() is None
    store.save_theme_name("sunrise")
    assert store.get_theme_name() == "sunrise"
    assert bridge.calls == [("update_theme_name", "sunrise")]
