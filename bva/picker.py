"""
Random verse selection.

A pick chooses a uniformly random book from the scope, then a random
chapter of that book, then a random verse of that chapter. Picks whose
reference is excluded are retried up to an attempt budget; once the
budget is spent, one unconditional pick is returned instead. That
fallback trades freshness for a guaranteed answer whenever the scope
holds at least one verse.
"""

from __future__ import annotations

import random
from typing import AbstractSet, List, Optional, Sequence

from . import config
from .index import ScriptureIndex
from .model import Verse


class VersePicker:
    def __init__(
        self,
        index: ScriptureIndex,
        scope_start: str = config.DEFAULT_SCOPE_START,
        rng: Optional[random.Random] = None,
    ):
        self.index = index
        self.scope_start = scope_start
        self.rng = rng if rng is not None else random.Random()

    def default_scope(self) -> List[str]:
        """Books from the configured start book to the end of the corpus."""
        return self.index.get_books_from(self.scope_start)

    def _pick_once(self, book_scope: Sequence[str]) -> Optional[Verse]:
        if not book_scope:
            return None
        book = self.rng.choice(list(book_scope))
        chapters = self.index.get_chapters(book)
        if not chapters:
            return None
        chapter = self.rng.choice(chapters)
        verses = self.index.get_verses_in_chapter(book, chapter)
        if not verses:
            return None
        return self.rng.choice(verses)

    def _scope_has_verses(self, book_scope: Sequence[str]) -> bool:
        for book in book_scope:
            for chapter in self.index.get_chapters(book):
                if self.index.get_verses_in_chapter(book, chapter):
                    return True
        return False

    def pick_random(
        self,
        exclude_refs: AbstractSet[str] = frozenset(),
        book_scope: Optional[Sequence[str]] = None,
        max_attempts: int = config.PICK_ATTEMPTS,
    ) -> Optional[Verse]:
        """
        Pick a random verse whose reference is not in `exclude_refs`.

        Returns None only when `book_scope` holds no verse at all.
        """
        scope = self.default_scope() if book_scope is None else list(book_scope)
        if not scope:
            return None

        for _ in range(max_attempts):
            verse = self._pick_once(scope)
            if verse is None:
                continue
            if verse.reference in exclude_refs:
                continue
            return verse

        # Unconditional fallback. Empty books/chapters can make a single
        # draw miss, so keep drawing while the scope is known to hold verses.
        if not self._scope_has_verses(scope):
            return None
        verse = None
        while verse is None:
            verse = self._pick_once(scope)
        return verse

    def pick_distinct_from_current(
        self,
        current: Optional[Verse],
        book_scope: Optional[Sequence[str]] = None,
    ) -> Optional[Verse]:
        """Pick a verse other than the one currently shown, if possible."""
        exclude: AbstractSet[str] = frozenset()
        if current is not None:
            exclude = frozenset({current.reference, current.single_reference})
        return self.pick_random(
            exclude_refs=exclude,
            book_scope=book_scope,
            max_attempts=config.DISTINCT_PICK_ATTEMPTS,
        )
