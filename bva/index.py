"""
Scripture index: read-only lookups over an in-memory Corpus.

Every lookup answers "not found" with None or an empty list; absence is
an expected case (user-typed search, boundary navigation) and never
raises.

Sequential navigation walks the corpus in stored order, crossing
chapter and book boundaries, so that for any verse v with a successor,
get_previous_verse(get_next_verse(v)) == v.
"""

from __future__ import annotations

import re
from typing import Dict, Iterator, List, Optional, Tuple

from .model import Book, Chapter, Corpus, Verse

# "John 3:16", "1 Samuel 2:3", "song of songs 2:1"
REFERENCE_RE = re.compile(
    r"^(\d+\s+)?([A-Za-z]+(?:\s+[A-Za-z]+)*)\s+(\d+):(\d+)",
    re.IGNORECASE,
)

# (book index, chapter index, verse index) into Corpus.books
Position = Tuple[int, int, int]


class ScriptureIndex:
    """
    Lookup, search and navigation over one Corpus.

    The corpus is injected once and never mutated; the index builds a
    flat reading order at construction for O(1) previous/next steps.
    """

    def __init__(self, corpus: Corpus):
        self.corpus = corpus
        self._books_by_key: Dict[str, int] = {}
        for i, book in enumerate(corpus.books):
            self._books_by_key.setdefault(book.name.lower(), i)
            self._books_by_key.setdefault(book.abbreviation.lower(), i)

        self._order: List[Position] = []
        self._position_of: Dict[Tuple[int, int, int], int] = {}
        for b_idx, book in enumerate(corpus.books):
            for c_idx, chapter in enumerate(book.chapters):
                for v_idx, verse_data in enumerate(chapter.verses):
                    self._position_of[(b_idx, chapter.number, verse_data.verse_number)] = len(
                        self._order
                    )
                    self._order.append((b_idx, c_idx, v_idx))

    # ---------- books / chapters ----------

    def _book_index(self, name_or_abbrev: str) -> Optional[int]:
        if not name_or_abbrev:
            return None
        return self._books_by_key.get(name_or_abbrev.strip().lower())

    def find_book(self, name_or_abbrev: str) -> Optional[Book]:
        """Case-insensitive match against book name or abbreviation."""
        idx = self._book_index(name_or_abbrev)
        return None if idx is None else self.corpus.books[idx]

    def get_all_books(self) -> List[str]:
        return [book.name for book in self.corpus.books]

    def get_books_from(self, book_name: str) -> List[str]:
        """
        Book names from `book_name` to the end of the corpus.

        Falls back to the full list when `book_name` is unknown.
        """
        idx = self._book_index(book_name)
        names = self.get_all_books()
        if idx is None:
            return names
        return names[idx:]

    def get_new_testament_books(self) -> List[str]:
        return self.get_books_from("Matthew")

    def _find_chapter(self, book: Book, chapter: int) -> Optional[Chapter]:
        for ch in book.chapters:
            if ch.number == chapter:
                return ch
        return None

    def get_chapters(self, book_name: str) -> List[int]:
        book = self.find_book(book_name)
        if book is None:
            return []
        return [ch.number for ch in book.chapters]

    def get_verses_in_chapter(self, book_name: str, chapter: int) -> List[Verse]:
        book = self.find_book(book_name)
        if book is None:
            return []
        ch = self._find_chapter(book, chapter)
        if ch is None:
            return []
        return [
            Verse(book=book.name, chapter=ch.number, verse_number=v.verse_number, text=v.text)
            for v in ch.verses
        ]

    # ---------- single verses ----------

    def _verse_at(self, pos: int) -> Verse:
        b_idx, c_idx, v_idx = self._order[pos]
        book = self.corpus.books[b_idx]
        chapter = book.chapters[c_idx]
        data = chapter.verses[v_idx]
        return Verse(
            book=book.name,
            chapter=chapter.number,
            verse_number=data.verse_number,
            text=data.text,
        )

    def _position(self, book_name: str, chapter: int, verse_number: int) -> Optional[int]:
        b_idx = self._book_index(book_name)
        if b_idx is None:
            return None
        return self._position_of.get((b_idx, chapter, verse_number))

    def get_verse(self, book_name: str, chapter: int, verse_number: int) -> Optional[Verse]:
        pos = self._position(book_name, chapter, verse_number)
        return None if pos is None else self._verse_at(pos)

    def get_previous_verse(self, verse: Verse) -> Optional[Verse]:
        """
        The verse before `verse` in reading order: the previous verse of the
        chapter, else the last verse of the previous chapter, else the last
        verse of the previous book. None at the start of the corpus.
        """
        pos = self._position(verse.book, verse.chapter, verse.verse_number)
        if pos is None or pos == 0:
            return None
        return self._verse_at(pos - 1)

    def get_next_verse(self, verse: Verse) -> Optional[Verse]:
        """Forward counterpart of get_previous_verse; None at the corpus end."""
        pos = self._position(verse.book, verse.chapter, verse.verse_number)
        if pos is None or pos + 1 >= len(self._order):
            return None
        return self._verse_at(pos + 1)

    def first_verse(self) -> Optional[Verse]:
        return self._verse_at(0) if self._order else None

    def last_verse(self) -> Optional[Verse]:
        return self._verse_at(len(self._order) - 1) if self._order else None

    def verse_count(self) -> int:
        return len(self._order)

    def iter_verses(self, book_name: Optional[str] = None) -> Iterator[Verse]:
        """All verses in corpus order, optionally restricted to one book."""
        if book_name is None:
            for pos in range(len(self._order)):
                yield self._verse_at(pos)
            return

        book = self.find_book(book_name)
        if book is None:
            return
        for ch in book.chapters:
            for v in ch.verses:
                yield Verse(book=book.name, chapter=ch.number, verse_number=v.verse_number, text=v.text)

    # ---------- search / parsing ----------

    def search_by_text(self, query: str, scope_book: Optional[str] = None) -> List[Verse]:
        """
        Case-insensitive substring search in corpus order.

        Unscoped searches also match on the book name; a scoped search
        only looks at verse text. An unknown scope book or a blank query
        yields [].
        """
        needle = query.strip().lower()
        if not needle:
            return []

        if scope_book is not None:
            if self.find_book(scope_book) is None:
                return []
            return [v for v in self.iter_verses(scope_book) if needle in v.text.lower()]

        results: List[Verse] = []
        for book in self.corpus.books:
            book_hit = needle in book.name.lower()
            for ch in book.chapters:
                for v in ch.verses:
                    if book_hit or needle in v.text.lower():
                        results.append(
                            Verse(
                                book=book.name,
                                chapter=ch.number,
                                verse_number=v.verse_number,
                                text=v.text,
                            )
                        )
        return results

    def parse_reference(self, reference: str) -> Optional[Verse]:
        """
        Resolve a reference like 'John 3:16' or '1 Samuel 2:3'.

        Trailing text after chapter:verse (e.g. a '-18' range) is ignored.
        Returns None if the pattern does not match or the lookup fails.
        """
        match = REFERENCE_RE.match(reference.strip())
        if not match:
            return None

        number_prefix, book_name, chapter_str, verse_str = match.groups()
        if number_prefix:
            book_name = f"{number_prefix.strip()} {book_name}"
        book_name = " ".join(book_name.split())
        return self.get_verse(book_name, int(chapter_str), int(verse_str))
