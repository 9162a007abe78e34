"""
Data model definitions for the Bible Verses App.

Corpus side (immutable, loaded once):
- VerseData: a (verse_number, text) pair inside a chapter
- Chapter  : ordered verses of one chapter
- Book     : canonical name, abbreviation and ordered chapters
- Corpus   : ordered books of one translation

Device-state side (persisted through bva.store):
- Verse                : a resolved verse or an expanded multi-verse quotation
- DisplayedVerseRecord : a verse that has been shown in the rotating feed
- ScheduledReveal      : a promise to reveal a verse at/after a time
- WidgetSettings       : refresh cadence for the home-screen widget
- Collection           : a named, user-curated list of verses

The to_dict()/from_dict() pairs use the camelCase record shape the
mobile app persisted, so existing stores round-trip unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .util import from_iso, to_iso


# ---------------------------------------------------------------------------
# Corpus
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class VerseData:
    verse_number: int
    text: str


@dataclass(frozen=True)
class Chapter:
    number: int
    verses: Tuple[VerseData, ...]


@dataclass(frozen=True)
class Book:
    name: str
    abbreviation: str
    chapters: Tuple[Chapter, ...]

    def matches(self, name_or_abbrev: str) -> bool:
        key = name_or_abbrev.strip().lower()
        return key == self.name.lower() or key == self.abbreviation.lower()


@dataclass(frozen=True)
class Corpus:
    """
    The complete Book/Chapter/Verse text dataset for one translation.

    Built once at process start and shared read-only by the index,
    picker and expander.
    """
    version: str
    books: Tuple[Book, ...]


# ---------------------------------------------------------------------------
# Verses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Verse:
    """
    A single verse, or an expanded quotation spanning several verses.

    For an expanded quotation, book/chapter/verse_number describe the
    first verse of the window and `reference` carries the range
    (e.g. 'John 3:14-16').
    """
    book: str
    chapter: int
    verse_number: int
    text: str
    reference: str = ""

    def __post_init__(self) -> None:
        if self.chapter < 1 or self.verse_number < 1:
            raise ValueError(
                f"chapter and verse must be >= 1, got {self.chapter}:{self.verse_number}"
            )
        if not self.text or not self.text.strip():
            raise ValueError(f"verse text must be non-empty ({self.single_reference})")
        if not self.reference:
            object.__setattr__(self, "reference", self.single_reference)

    @property
    def single_reference(self) -> str:
        """'Book C:V' for the first verse, ignoring any range."""
        return f"{self.book} {self.chapter}:{self.verse_number}"

    @property
    def is_range(self) -> bool:
        return self.reference != self.single_reference

    def to_dict(self) -> Dict[str, Any]:
        return {
            "verse": self.text,
            "reference": self.reference,
            "book": self.book,
            "chapter": self.chapter,
            "verseNumber": self.verse_number,
            "text": self.text,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Verse":
        text = data.get("text") or data.get("verse") or ""
        return cls(
            book=str(data["book"]),
            chapter=int(data["chapter"]),
            verse_number=int(data["verseNumber"]),
            text=str(text),
            reference=str(data.get("reference") or ""),
        )


def format_range_reference(first: Verse, last: Verse) -> str:
    """
    Reference for a window running from `first` to `last`.

    - same verse           : 'John 3:16'
    - same book and chapter: 'John 3:14-16'
    - same book            : 'John 3:36-4:2'
    - different books      : 'Malachi 4:6-Matthew 1:1'
    """
    if (
        first.book == last.book
        and first.chapter == last.chapter
        and first.verse_number == last.verse_number
    ):
        return first.reference
    if first.book == last.book and first.chapter == last.chapter:
        return f"{first.book} {first.chapter}:{first.verse_number}-{last.verse_number}"
    if first.book == last.book:
        return (
            f"{first.book} {first.chapter}:{first.verse_number}"
            f"-{last.chapter}:{last.verse_number}"
        )
    return f"{first.single_reference}-{last.single_reference}"


# ---------------------------------------------------------------------------
# Device state
# ---------------------------------------------------------------------------


@dataclass
class DisplayedVerseRecord:
    verse: Verse
    displayed_at: datetime
    scheduled_for: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "verse": self.verse.to_dict(),
            "displayedAt": to_iso(self.displayed_at),
        }
        if self.scheduled_for is not None:
            data["scheduledFor"] = to_iso(self.scheduled_for)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DisplayedVerseRecord":
        scheduled = data.get("scheduledFor")
        return cls(
            verse=Verse.from_dict(data["verse"]),
            displayed_at=from_iso(data["displayedAt"]),
            scheduled_for=from_iso(scheduled) if scheduled else None,
        )


@dataclass
class ScheduledReveal:
    """
    A pending reveal. It leaves the schedule exactly once: promoted into
    displayed history when due, or cancelled by id.
    """
    id: str
    verse: Verse
    scheduled_for: datetime
    collection_id: Optional[str] = None

    def __post_init__(self) -> None:
        # naive times are UTC, as in to_iso()
        if self.scheduled_for.tzinfo is None:
            self.scheduled_for = self.scheduled_for.replace(tzinfo=timezone.utc)

    def is_due(self, now: datetime) -> bool:
        return self.scheduled_for <= now

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "verse": self.verse.to_dict(),
            "scheduledFor": to_iso(self.scheduled_for),
        }
        if self.collection_id is not None:
            data["collectionId"] = self.collection_id
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScheduledReveal":
        return cls(
            id=str(data["id"]),
            verse=Verse.from_dict(data["verse"]),
            scheduled_for=from_iso(data["scheduledFor"]),
            collection_id=data.get("collectionId"),
        )


class RefreshFrequency(Enum):
    HOURLY = "hourly"
    DAILY = "daily"
    CUSTOM = "custom"
    ON_APP_OPEN = "onAppOpen"


@dataclass
class WidgetSettings:
    refresh_frequency: RefreshFrequency = RefreshFrequency.DAILY
    custom_hours: Optional[int] = None

    def __post_init__(self) -> None:
        if not isinstance(self.refresh_frequency, RefreshFrequency):
            self.refresh_frequency = RefreshFrequency(self.refresh_frequency)

    @property
    def pre_schedules(self) -> bool:
        """Whether reveals are generated ahead of time for this cadence."""
        return self.refresh_frequency is not RefreshFrequency.ON_APP_OPEN

    def interval(self, default_hours: int = 24) -> timedelta:
        """
        Refresh cadence. ON_APP_OPEN yields timedelta(0), meaning the
        widget is not interval-driven.
        """
        freq = self.refresh_frequency
        if freq is RefreshFrequency.HOURLY:
            return timedelta(hours=1)
        if freq is RefreshFrequency.DAILY:
            return timedelta(hours=24)
        if freq is RefreshFrequency.CUSTOM:
            hours = self.custom_hours
            if not isinstance(hours, int) or isinstance(hours, bool) or hours <= 0:
                hours = default_hours
            return timedelta(hours=hours)
        if freq is RefreshFrequency.ON_APP_OPEN:
            return timedelta(0)
        raise ValueError(f"Unhandled refresh frequency: {freq!r}")

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"refreshFrequency": self.refresh_frequency.value}
        if self.custom_hours is not None:
            data["customHours"] = self.custom_hours
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WidgetSettings":
        hours = data.get("customHours")
        return cls(
            refresh_frequency=RefreshFrequency(data.get("refreshFrequency", "daily")),
            custom_hours=int(hours) if hours is not None else None,
        )


@dataclass
class Collection:
    id: str
    name: str
    verses: List[Verse] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "verses": [v.to_dict() for v in self.verses],
            "createdAt": to_iso(self.created_at) if self.created_at else None,
            "updatedAt": to_iso(self.updated_at) if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Collection":
        created = data.get("createdAt")
        updated = data.get("updatedAt")
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            verses=[Verse.from_dict(v) for v in data.get("verses", [])],
            created_at=from_iso(created) if created else None,
            updated_at=from_iso(updated) if updated else None,
        )
