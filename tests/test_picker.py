import random

from bva.model import Verse
from bva.picker import VersePicker


def test_default_scope_starts_at_matthew(small_index):
    picker = VersePicker(small_index)
    assert picker.default_scope() == ["Matthew", "John", "1 John", "Jude"]


def test_default_scope_falls_back_to_whole_corpus_without_start_book(small_index):
    picker = VersePicker(small_index, scope_start="Revelation")
    assert picker.default_scope() == small_index.get_all_books()


def test_picks_come_from_scope(wide_index):
    picker = VersePicker(wide_index, rng=random.Random(1))
    for _ in range(50):
        verse = picker.pick_random(book_scope=["Mark", "Luke"])
        assert verse.book in ("Mark", "Luke")
        assert wide_index.get_verse(verse.book, verse.chapter, verse.verse_number) == verse


def test_default_scope_is_used_when_none_given(wide_index):
    picker = VersePicker(wide_index, rng=random.Random(2))
    books = {picker.pick_random().book for _ in range(60)}
    assert books <= {"Matthew", "Mark", "Luke"}


def test_excluded_references_are_avoided_while_budget_allows(wide_index):
    picker = VersePicker(wide_index, rng=random.Random(3))
    exclude = {f"Mark 1:{v}" for v in range(1, 8)}
    for _ in range(30):
        verse = picker.pick_random(exclude_refs=exclude, book_scope=["Mark"])
        assert verse.reference not in exclude


def test_fallback_returns_an_excluded_verse_when_nothing_else_exists(small_index):
    picker = VersePicker(small_index, rng=random.Random(4))
    exclude = {"Jude 1:1", "Jude 1:2"}
    verse = picker.pick_random(exclude_refs=exclude, book_scope=["Jude"], max_attempts=3)
    assert verse is not None
    assert verse.reference in exclude


def test_empty_or_unknown_scope_yields_none(small_index):
    picker = VersePicker(small_index, rng=random.Random(5))
    assert picker.pick_random(book_scope=[]) is None
    assert picker.pick_random(book_scope=["Nowhere"]) is None


def test_unknown_books_in_scope_do_not_block_known_ones(small_index):
    picker = VersePicker(small_index, rng=random.Random(6))
    for _ in range(20):
        assert picker.pick_random(book_scope=["Nowhere", "Jude"]).book == "Jude"


def test_pick_distinct_avoids_current_verse(wide_index):
    picker = VersePicker(wide_index, rng=random.Random(7))
    current = wide_index.get_verse("Mark", 1, 1)
    for _ in range(20):
        verse = picker.pick_distinct_from_current(current, book_scope=["Mark"])
        assert verse.reference != "Mark 1:1"


def test_pick_distinct_also_avoids_first_verse_of_expanded_current(wide_index):
    picker = VersePicker(wide_index, rng=random.Random(8))
    current = Verse(
        book="Mark",
        chapter=1,
        verse_number=1,
        text="Word of Mark 1:1. Word of Mark 1:2.",
        reference="Mark 1:1-2",
    )
    for _ in range(20):
        verse = picker.pick_distinct_from_current(current, book_scope=["Mark"])
        assert verse.reference not in ("Mark 1:1", "Mark 1:1-2")


def test_pick_distinct_without_current(small_index):
    picker = VersePicker(small_index, rng=random.Random(9))
    assert picker.pick_distinct_from_current(None, book_scope=["Genesis"]).book == "Genesis"


def test_seeded_pickers_are_reproducible(wide_index):
    a = VersePicker(wide_index, rng=random.Random(42))
    b = VersePicker(wide_index, rng=random.Random(42))
    assert [a.pick_random().reference for _ in range(10)] == [b.pick_random().reference for _ in range(10)]


def test_single_exclusion_is_never_returned_with_a_generous_budget(small_index):
    picker = VersePicker(small_index, rng=random.Random(10))
    for _ in range(200):
        verse = picker.pick_random(exclude_refs={"Jude 1:1"}, book_scope=["Jude"], max_attempts=50)
        assert verse is not None
        assert verse.reference == "Jude 1:2"
