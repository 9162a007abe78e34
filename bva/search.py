"""
Search and passage extraction for the Bible Verses App.

This module provides the console-facing wrappers around ScriptureIndex:

- search_verses(index, query, book=None, limit=None)
    Substring search over verse text (and book names when unscoped)

- get_passage(index, ref)
    Extracts a passage like "John 3:16-18" or "Gen 1:1"

- print_search_results(verses)
    Pretty-print results to the console
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from .index import ScriptureIndex
from .model import Verse
from .util import info, warn


def search_verses(
    index: ScriptureIndex,
    query: str,
    book: Optional[str] = None,
    limit: Optional[int] = None,
) -> List[Verse]:
    """
    Perform a basic text search across verses.

    Parameters
    ----------
    query:
        Text to search for (case-insensitive substring).
    book:
        Optional book name/abbreviation to restrict the search to.
    limit:
        Max number of verses to return (None for all).
    """
    query = query.strip()
    if not query:
        warn("Empty search query; returning no results.")
        return []

    info(f"=== SEARCH === query={query!r}, book={book!r}, limit={limit}")

    if book is not None and index.find_book(book) is None:
        warn(f"Unknown book {book!r}; returning no results.")
        return []

    rows = index.search_by_text(query, scope_book=book)
    if limit is not None:
        rows = rows[:limit]

    info(f"Search returned {len(rows)} verse(s).")
    return rows


def _parse_reference(ref: str) -> Optional[Tuple[str, int, int, int]]:
    """
    Parse a reference string like 'John 3:16-18' or 'Gen 1:1'.

    Returns
    -------
    (book_str, chapter, verse_start, verse_end) or None on failure.
    """
    s = ref.strip()
    if not s:
        warn("Empty reference string.")
        return None

    try:
        space_idx = s.rindex(" ")
    except ValueError:
        warn(f"Could not split book and chapter/verse from reference: {ref!r}")
        return None

    book_str = s[:space_idx].strip()
    cv_str = s[space_idx + 1:].strip()

    if ":" not in cv_str:
        warn(f"Reference missing ':' in chapter:verse part: {ref!r}")
        return None

    chap_str, verse_part = cv_str.split(":", 1)
    try:
        chapter = int(chap_str)
    except ValueError:
        warn(f"Non-integer chapter in reference: {ref!r}")
        return None

    verse_part = verse_part.strip()
    try:
        if "-" in verse_part:
            start_str, end_str = verse_part.split("-", 1)
            v_start = int(start_str.strip())
            v_end = int(end_str.strip())
        else:
            v_start = v_end = int(verse_part)
    except ValueError:
        warn(f"Invalid verse number or range in reference: {ref!r}")
        return None

    if v_end < v_start:
        warn(f"Verse range runs backwards in reference: {ref!r}")
        return None

    return book_str, chapter, v_start, v_end


def get_passage(index: ScriptureIndex, ref: str) -> List[Verse]:
    """
    Fetch a passage like 'John 3:16-18' or 'Gen 1:1' within one chapter.
    """
    info(f"=== PASSAGE === ref={ref!r}")

    parsed = _parse_reference(ref)
    if parsed is None:
        return []

    book_str, chapter, v_start, v_end = parsed
    if index.find_book(book_str) is None:
        warn(f"Could not resolve book name {book_str!r}.")
        return []

    rows = [
        v for v in index.get_verses_in_chapter(book_str, chapter)
        if v_start <= v.verse_number <= v_end
    ]
    info(f"Passage lookup returned {len(rows)} verse(s).")
    return rows


def print_search_results(verses: List[Verse]) -> None:
    """
    Pretty-print search or passage results to the console.
    """
    if not verses:
        info("No results.")
        return

    for v in verses:
        print(f"{v.reference}")
        print(f"    {v.text}")
        print()
