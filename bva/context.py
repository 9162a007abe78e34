"""
Context engine for the Bible Verses App.

Two ways of putting a verse in context:

- ContextExpander.expand(verse)
    Grow a single verse into a complete quotation: walk backward until the
    first verse starts with a capital letter and forward until the last
    verse ends with terminal punctuation.

- get_verse_window(index, ref, before=2, after=2)
    A fixed window of verses around a reference, within its chapter.
"""

from __future__ import annotations

from typing import List, Optional

from .index import ScriptureIndex
from .model import Verse, format_range_reference
from .util import warn

TERMINAL_PUNCTUATION = (".", "!", "?", '"')


def starts_capitalized(text: str) -> bool:
    s = text.strip()
    return bool(s) and "A" <= s[0] <= "Z"


def ends_terminal(text: str) -> bool:
    return text.strip().endswith(TERMINAL_PUNCTUATION)


class ContextExpander:
    """
    Expands verses into sentence-complete quotations using an index for
    neighbour lookups.

    Growth stops at the corpus edges. As a guard against corpora where no
    verse ever closes a sentence, at most `max_added` verses are added
    (defaults to the corpus size).
    """

    def __init__(self, index: ScriptureIndex, max_added: Optional[int] = None):
        self.index = index
        self.max_added = index.verse_count() if max_added is None else max_added

    def window(self, verse: Verse) -> List[Verse]:
        """The ordered list of verses that make up the expansion of `verse`."""
        window = [verse]
        if verse.is_range:
            return window

        grow_start = True
        grow_end = True
        added = 0

        changed = True
        while changed:
            changed = False

            if grow_start and not starts_capitalized(window[0].text):
                prev = self.index.get_previous_verse(window[0])
                if prev is None:
                    grow_start = False
                else:
                    window.insert(0, prev)
                    added += 1
                    changed = True

            if grow_end and not ends_terminal(window[-1].text):
                nxt = self.index.get_next_verse(window[-1])
                if nxt is None:
                    grow_end = False
                else:
                    window.append(nxt)
                    added += 1
                    changed = True

            if added and added >= self.max_added:
                warn(
                    f"Expansion of {verse.reference} stopped after {added} verses "
                    "without reaching sentence boundaries."
                )
                break

        return window

    def expand(self, verse: Verse) -> Verse:
        """
        Return `verse` itself when it is already a complete sentence,
        otherwise a synthesized Verse with the joined text and a range
        reference (e.g. 'John 3:14-16').
        """
        window = self.window(verse)
        if len(window) == 1:
            return verse

        first, last = window[0], window[-1]
        return Verse(
            book=first.book,
            chapter=first.chapter,
            verse_number=first.verse_number,
            text=" ".join(v.text.strip() for v in window),
            reference=format_range_reference(first, last),
        )


def get_verse_window(
    index: ScriptureIndex,
    ref: str,
    before: int = 2,
    after: int = 2,
) -> List[Verse]:
    """
    Fetch a window of verses around a reference, clipped to its chapter.

    Example:
        get_verse_window(index, "John 3:16", before=2, after=2)
        -> John 3:14 .. John 3:18
    """
    center = index.parse_reference(ref)
    if center is None:
        warn(f"Could not resolve reference: {ref!r}")
        return []

    verses = index.get_verses_in_chapter(center.book, center.chapter)
    numbers = [v.verse_number for v in verses]
    i = numbers.index(center.verse_number)
    return verses[max(0, i - before): i + after + 1]
