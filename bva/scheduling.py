"""
Scheduling engine for the Bible Verses App.

The engine owns no state of its own: every call reads and writes through
a StorageService. Each ScheduledReveal moves from PENDING to exactly one
terminal state:

    PENDING --promote_next_due (scheduled_for <= now)--> DISPLAYED
    PENDING --cancel(id)---------------------------------> CANCELLED

Storage writes complete before the widget is told anything; the widget
push is best-effort and never fails the operation that triggered it.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Sequence

from . import config
from .context import ContextExpander
from .index import ScriptureIndex
from .model import ScheduledReveal, Verse
from .picker import VersePicker
from .store import StorageService
from .util import info, utc_now
from .widget import WidgetBridge, notify_widget


def _new_id() -> str:
    return uuid.uuid4().hex


class SchedulingEngine:
    """
    Orchestrates picker, expander and storage.

    Invoked from a timer (tick), on app foreground, and on explicit user
    scheduling. `clock` must return timezone-aware datetimes.
    """

    def __init__(
        self,
        store: StorageService,
        index: ScriptureIndex,
        picker: Optional[VersePicker] = None,
        expander: Optional[ContextExpander] = None,
        bridge: Optional[WidgetBridge] = None,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] = _new_id,
        book_scope: Optional[Sequence[str]] = None,
    ):
        self.store = store
        self.index = index
        self.picker = picker or VersePicker(index)
        self.expander = expander or ContextExpander(index)
        self.bridge = bridge if bridge is not None else store.bridge
        self.clock = clock
        self.id_factory = id_factory
        self._book_scope = list(book_scope) if book_scope is not None else None

    @property
    def book_scope(self) -> List[str]:
        if self._book_scope is not None:
            return self._book_scope
        return self.picker.default_scope()

    # ---------- cadence ----------

    def refresh_interval(self) -> timedelta:
        """
        Spacing between auto-generated reveals: 1h (hourly), 24h (daily),
        custom_hours (custom; 24 when unset/invalid), 0 (onAppOpen).
        """
        return self.store.get_settings().interval(config.DEFAULT_CUSTOM_HOURS)

    # ---------- helpers ----------

    def _pick_expanded(self, current: Optional[Verse]) -> Optional[Verse]:
        """
        Pick and expand a verse whose expanded reference differs from the
        current one. After DISTINCT_PICK_ATTEMPTS the last candidate is
        returned even if it repeats.
        """
        expanded = None
        for _ in range(config.DISTINCT_PICK_ATTEMPTS):
            raw = self.picker.pick_distinct_from_current(current, book_scope=self.book_scope)
            if raw is None:
                return None
            expanded = self.expander.expand(raw)
            if current is None or expanded.reference != current.reference:
                return expanded
        return expanded

    def _display(self, verse: Verse, now: datetime) -> None:
        with self.store.lock:
            self.store.set_current_verse(verse)
            self.store.add_displayed_verse(verse, displayed_at=now)

    # ---------- transitions ----------

    def promote_next_due(self) -> Optional[Verse]:
        """
        Promote the earliest reveal with scheduled_for <= now.

        The reveal is removed from the schedule first; only the call that
        actually removed it goes on to write current verse and history, so
        racing callers cannot display it twice. Returns the expanded verse
        that was promoted, or None when nothing is due.
        """
        with self.store.lock:
            now = self.clock()
            due = [r for r in self.store.list_pending() if r.is_due(now)]
            if not due:
                return None
            reveal = min(due, key=lambda r: r.scheduled_for)

            expanded = self.expander.expand(reveal.verse)
            if not self.store.remove_by_id(reveal.id):
                return None
            self._display(expanded, now)

        info(f"Promoted {expanded.reference} (scheduled {reveal.scheduled_for.isoformat()}).")
        notify_widget(self.bridge, expanded.text, expanded.reference)
        return expanded

    def cancel(self, reveal_id: str) -> bool:
        """Cancel a pending reveal. Unknown ids are a no-op (returns False)."""
        return self.store.remove_by_id(reveal_id)

    def on_app_foreground(self) -> Optional[Verse]:
        """
        Bring the widget in line when the app gains focus.

        onAppOpen: show a fresh verse (distinct from the current one).
        Other cadences: re-push the current verse, or pick one if there is
        none yet. Falls back to promote_next_due() when nothing can be picked.
        Returns the verse now current, or None.
        """
        settings = self.store.get_settings()
        current = self.store.get_current_verse()

        if settings.pre_schedules and current is not None:
            notify_widget(self.bridge, current.text, current.reference)
            return current

        verse = self._pick_expanded(current)
        if verse is None:
            return self.promote_next_due()

        self._display(verse, self.clock())
        notify_widget(self.bridge, verse.text, verse.reference)
        return verse

    def populate_schedule(self, count: int = config.DEFAULT_POPULATE_COUNT) -> List[ScheduledReveal]:
        """
        Pre-schedule `count` reveals at now + interval * (n + 1).

        No-op for onAppOpen. Verses shown in the most recent history and
        verses already in this batch are avoided; the batch stops early
        when the picker can no longer find a fresh verse.
        """
        settings = self.store.get_settings()
        if not settings.pre_schedules:
            return []

        interval = settings.interval(config.DEFAULT_CUSTOM_HOURS)
        now = self.clock()

        history = sorted(
            self.store.list_displayed_history(),
            key=lambda r: r.displayed_at,
            reverse=True,
        )[: config.RECENT_EXCLUSION_WINDOW]
        exclude = set()
        for record in history:
            exclude.add(record.verse.reference)
            exclude.add(record.verse.single_reference)

        scope = self.book_scope
        scheduled: List[ScheduledReveal] = []
        max_attempts = count * config.POPULATE_ATTEMPTS_PER_VERSE
        attempts = 0

        while len(scheduled) < count and attempts < max_attempts:
            attempts += 1
            raw = self.picker.pick_random(
                exclude_refs=exclude,
                book_scope=scope,
                max_attempts=config.PICK_ATTEMPTS,
            )
            # None: empty scope. Excluded: the picker fell back after its budget.
            if raw is None or raw.reference in exclude:
                break

            verse = self.expander.expand(raw)
            if verse.reference in exclude:
                exclude.add(raw.reference)
                continue

            reveal = ScheduledReveal(
                id=self.id_factory(),
                verse=verse,
                scheduled_for=now + interval * (len(scheduled) + 1),
            )
            self.store.insert(reveal)
            exclude.add(raw.reference)
            exclude.add(verse.reference)
            scheduled.append(reveal)

        if scheduled:
            info(f"Scheduled {len(scheduled)} verse(s) every {interval}.")
        return scheduled

    def schedule_explicit(
        self,
        verse: Verse,
        when: datetime,
        collection_id: Optional[str] = None,
    ) -> ScheduledReveal:
        """Schedule a verse the user chose, exactly as given (no expansion)."""
        reveal = ScheduledReveal(
            id=self.id_factory(),
            verse=verse,
            scheduled_for=when,
            collection_id=collection_id,
        )
        self.store.insert(reveal)
        return reveal

    def tick(self) -> Optional[Verse]:
        """Timer callback: promote whatever has become due."""
        return self.promote_next_due()

    # ---------- read-only views ----------

    def next_due(self) -> Optional[ScheduledReveal]:
        """Earliest pending reveal still in the future."""
        now = self.clock()
        for reveal in self.store.list_pending():
            if reveal.scheduled_for > now:
                return reveal
        return None

    def list_scheduled(self) -> List[ScheduledReveal]:
        return self.store.list_pending()

    def feed(self, limit: int = config.FEED_CAP):
        """Displayed history, newest first, capped for presentation."""
        records = sorted(
            self.store.list_displayed_history(),
            key=lambda r: r.displayed_at,
            reverse=True,
        )
        return records[:limit]


# ---------------------------------------------------------------------------
# Explicit scheduling presets
# ---------------------------------------------------------------------------

PRESET_DAYS = {"today": 0, "tomorrow": 1, "next_week": 7}


def schedule_time_for_preset(
    preset: str,
    now: Optional[datetime] = None,
    hour: int = config.DEFAULT_SCHEDULE_HOUR,
    minute: int = 0,
    custom: Optional[datetime] = None,
) -> datetime:
    """
    Resolve a "schedule for ..." choice to a timestamp in local time.

    today / tomorrow / next_week land on `hour:minute` of that day.
    custom uses `custom`; a custom time that is not in the future moves
    to the same time tomorrow.
    """
    now = (now or utc_now()).astimezone()

    if preset == "custom":
        if custom is None:
            raise ValueError("custom preset requires a datetime")
        when = custom if custom.tzinfo is not None else custom.astimezone()
        if when <= now:
            when = when + timedelta(days=1)
        return when

    if preset not in PRESET_DAYS:
        raise ValueError(f"Unknown schedule preset {preset!r}; expected one of {sorted(PRESET_DAYS)} or 'custom'")

    day = now + timedelta(days=PRESET_DAYS[preset])
    return day.replace(hour=hour, minute=minute, second=0, microsecond=0)


def is_today_past_due(
    now: Optional[datetime] = None,
    hour: int = config.DEFAULT_SCHEDULE_HOUR,
) -> bool:
    """Whether today's default slot has already passed."""
    now = (now or utc_now()).astimezone()
    return now.replace(hour=hour, minute=0, second=0, microsecond=0) <= now
