"""
Status and listing helpers for the Bible Verses App.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from .model import DisplayedVerseRecord, ScheduledReveal
from .scheduling import SchedulingEngine
from .util import info, utc_now, warn


def time_ago_label(when: datetime, now: Optional[datetime] = None) -> str:
    """'Just now', '5m ago', '3h ago', '2d ago', else 'Mar 04'."""
    now = now or utc_now()
    diff = now - when
    mins = int(diff.total_seconds() // 60)
    hours = mins // 60
    days = hours // 24

    if mins < 1:
        return "Just now"
    if mins < 60:
        return f"{mins}m ago"
    if hours < 24:
        return f"{hours}h ago"
    if days < 7:
        return f"{days}d ago"
    return when.astimezone().strftime("%b %d")


def scheduled_label(when: datetime, now: Optional[datetime] = None) -> str:
    """'Past due', 'In 12m', 'In 5h', 'In 3d', else 'Mar 04 09:00'."""
    now = now or utc_now()
    diff = when - now
    if diff.total_seconds() < 0:
        return "Past due"

    mins = int(diff.total_seconds() // 60)
    hours = mins // 60
    days = hours // 24

    if mins < 60:
        return f"In {mins}m"
    if hours < 24:
        return f"In {hours}h"
    if days < 7:
        return f"In {days}d"
    return when.astimezone().strftime("%b %d %H:%M")


def get_status(engine: SchedulingEngine) -> Dict[str, Any]:
    """
    Collect a snapshot of the device state:
    corpus size, settings, current verse, schedule and history counts.
    """
    settings = engine.store.get_settings()
    current = engine.store.get_current_verse()
    pending = engine.store.list_pending()
    upcoming = engine.next_due()
    history = engine.store.list_displayed_history()

    return {
        "corpus_version": engine.index.corpus.version,
        "books": len(engine.index.get_all_books()),
        "verses": engine.index.verse_count(),
        "scope": engine.book_scope,
        "refresh_frequency": settings.refresh_frequency.value,
        "custom_hours": settings.custom_hours,
        "refresh_interval": engine.refresh_interval(),
        "current_verse": current,
        "pending": len(pending),
        "due_now": sum(1 for r in pending if r.is_due(engine.clock())),
        "next_due": upcoming,
        "history": len(history),
    }


def print_status(engine: SchedulingEngine) -> None:
    """
    Print a human-readable status report.
    """
    s = get_status(engine)
    info(f"Corpus: {s['corpus_version'] or '(unnamed)'} - {s['books']} book(s), {s['verses']} verse(s)")
    scope = s["scope"]
    if scope:
        info(f"Random scope: {scope[0]} .. {scope[-1]} ({len(scope)} book(s))")
    else:
        warn("Random scope is empty.")

    freq = s["refresh_frequency"]
    if freq == "custom":
        freq = f"custom ({s['custom_hours'] or 'default'} h)"
    info(f"Refresh: {freq}, interval {s['refresh_interval']}")

    current = s["current_verse"]
    if current is None:
        warn("No current verse yet.")
    else:
        info(f"Current verse: {current.reference}")

    info(f"Pending reveals: {s['pending']} ({s['due_now']} due now)")
    upcoming = s["next_due"]
    if upcoming is not None:
        info(f"Next up: {upcoming.verse.reference} ({scheduled_label(upcoming.scheduled_for, engine.clock())})")
    info(f"History entries: {s['history']}")


def print_scheduled(reveals: List[ScheduledReveal], now: Optional[datetime] = None) -> None:
    if not reveals:
        info("Nothing scheduled.")
        return
    for r in reveals:
        tag = f" [{r.collection_id}]" if r.collection_id else ""
        print(f"{r.id}  {scheduled_label(r.scheduled_for, now):>12}  {r.verse.reference}{tag}")


def print_history(records: List[DisplayedVerseRecord], now: Optional[datetime] = None) -> None:
    if not records:
        info("No verses displayed yet.")
        return
    for r in records:
        print(f"{time_ago_label(r.displayed_at, now):>10}  {r.verse.reference}")
        print(f"    {r.verse.text}")
