from __future__ import annotations

import itertools
import random
from datetime import datetime, timedelta, timezone

import pytest

from bva.context import ContextExpander
from bva.index import ScriptureIndex
from bva.loader import corpus_from_dict
from bva.picker import VersePicker
from bva.scheduling import SchedulingEngine
from bva.store import MemoryKeyValueStore, StorageService


def _book(name, abbreviation, chapters):
    return {
        "name": name,
        "abbreviation": abbreviation,
        "chapters": [
            {
                "chapterNumber": number,
                "verses": [{"verseNumber": n, "text": t} for n, t in verses],
            }
            for number, verses in chapters
        ],
    }


# Hand-written corpus: lowercase starts, missing terminal punctuation,
# non-contiguous chapters, chapter and book boundaries.
SMALL_CORPUS = {
    "version": "TEST",
    "books": [
        _book("Genesis", "Gen", [
            (1, [
                (1, "In the beginning God created the heaven and the earth."),
                (2, "and the earth was without form;"),
                (3, "And God said, Let there be light:"),
            ]),
            (2, [
                (1, "and there was light."),
            ]),
        ]),
        _book("Matthew", "Matt", [
            (1, [
                (1, "The book of the generation of Jesus Christ."),
                (2, "Abraham begat Isaac;"),
                (3, "and Isaac begat Jacob."),
            ]),
        ]),
        _book("John", "Jn", [
            (3, [
                (14, "And as Moses lifted up the serpent in the wilderness,"),
                (15, "even so must the Son of man be lifted up:"),
                (16, "That whosoever believeth in him should not perish."),
                (17, "For God sent not his Son into the world to condemn the world."),
            ]),
            (4, [
                (1, "When therefore the Lord knew how the Pharisees had heard,"),
            ]),
        ]),
        _book("1 John", "1Jn", [
            (1, [
                (9, "If we confess our sins, he is faithful and just to forgive us."),
            ]),
        ]),
        _book("Jude", "Jude", [
            (1, [
                (1, "Jude, the servant of Jesus Christ!"),
                (2, "mercy unto you, and peace"),
            ]),
        ]),
    ],
}


def wide_corpus_dict(books=("Genesis", "Exodus", "Matthew", "Mark", "Luke"), chapters=3, verses=8):
    """Many self-contained verses: every verse expands to itself."""
    return {
        "version": "WIDE",
        "books": [
            _book(
                name,
                name[:3],
                [
                    (c, [(v, f"Word of {name} {c}:{v}.") for v in range(1, verses + 1)])
                    for c in range(1, chapters + 1)
                ],
            )
            for name in books
        ],
    }


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class RecordingBridge:
    def __init__(self):
        self.calls = []

    def update_verse(self, text, reference):
        self.calls.append(("update_verse", text, reference))
        return True

    def update_widget_settings(self, frequency, custom_hours=None):
        self.calls.append(("update_widget_settings", frequency, custom_hours))
        return True

    def update_theme_colors(self, primary_hex):
        self.calls.append(("update_theme_colors", primary_hex))
        return True

    def update_theme_name(self, name):
        self.calls.append(("update_theme_name", name))
        return True

    def verse_pushes(self):
        return [c for c in self.calls if c[0] == "update_verse"]


class FailingBridge(RecordingBridge):
    def update_verse(self, text, reference):
        self.calls.append(("update_verse", text, reference))
        raise RuntimeError("widget process not running")


@pytest.fixture
def small_index():
    return ScriptureIndex(corpus_from_dict(SMALL_CORPUS))


@pytest.fixture
def wide_index():
    return ScriptureIndex(corpus_from_dict(wide_corpus_dict()))


@pytest.fixture
def clock():
    return FixedClock(datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def bridge():
    return RecordingBridge()


@pytest.fixture
def store(bridge, clock):
    return StorageService(MemoryKeyValueStore(), bridge=bridge, clock=clock)


def make_engine(index, store, clock, seed=7, book_scope=None):
    counter = itertools.count(1)
    return SchedulingEngine(
        store,
        index,
        picker=VersePicker(index, rng=random.Random(seed)),
        expander=ContextExpander(index),
        clock=clock,
        id_factory=lambda: f"r{next(counter)}",
        book_scope=book_scope,
    )


@pytest.fixture
def engine(small_index, store, clock):
    return make_engine(small_index, store, clock)


@pytest.fixture
def wide_engine(wide_index, store, clock):
    return make_engine(wide_index, store, clock)
