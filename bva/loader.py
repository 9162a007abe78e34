"""
Corpus loading for the Bible Verses App.

This module:
- Loads the canon.json mapping (book order, codes, abbreviations).
- Loads a translation corpus from its JSON file into an immutable Corpus.
- Builds a corpus JSON file from Excel/CSV rows via bva.excel_import.

Corpus JSON shape:

    {
      "version": "NIV",
      "books": [
        {"name": "Genesis", "abbreviation": "Gen",
         "chapters": [{"chapterNumber": 1,
                       "verses": [{"verseNumber": 1, "text": "..."}]}]}
      ]
    }
"""

from __future__ import annotations

import json
from collections import OrderedDict
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .excel_import import TableVerseRow, iter_verses_from_table
from .model import Book, Chapter, Corpus, VerseData
from .paths import CANON_PATH
from .util import info, ok, warn


def load_canon(canon_path: Path = CANON_PATH) -> Dict[int, Dict[str, Any]]:
    """
    Load the 66-book canon definition from data/canon.json.

    Returns
    -------
    dict:
        Map of book_num -> { "code", "name", "abbreviation", "testament" }
    """
    if not canon_path.exists():
        warn(f"canon.json not found at: {canon_path}")
        return {}

    data = json.loads(canon_path.read_text(encoding="utf-8"))

    result: Dict[int, Dict[str, Any]] = {}
    for entry in data:
        num = int(entry["book_num"])
        result[num] = {
            "code": entry["code"],
            "name": entry["name"],
            "abbreviation": entry.get("abbreviation", entry["code"].title()),
            "testament": entry.get("testament", "unknown"),
        }
    return result


def _build_book_lookup(canon: Dict[int, Dict[str, Any]]) -> Dict[str, int]:
    """
    Build a mapping from lowercased book strings to book_num.

    Keys include the 3-letter code (gen), the abbreviation (gen, exod)
    and the full name (genesis).
    """
    lookup: Dict[str, int] = {}
    for num, meta in canon.items():
        for key in (meta["code"], meta["abbreviation"], meta["name"]):
            lookup[key.lower()] = num
    return lookup


def _build_chapter(number: int, verses: Iterable[Tuple[int, str]], book_name: str) -> Chapter:
    by_number: Dict[int, VerseData] = {}
    for verse_number, text in verses:
        text = text.strip()
        if not text:
            warn(f"{book_name} {number}:{verse_number}: empty verse text; skipping.")
            continue
        if verse_number in by_number:
            raise ValueError(f"Duplicate verse {book_name} {number}:{verse_number}")
        by_number[verse_number] = VerseData(verse_number=verse_number, text=text)
    return Chapter(number=number, verses=tuple(by_number[k] for k in sorted(by_number)))


def corpus_from_dict(data: Dict[str, Any]) -> Corpus:
    """
    Build a Corpus from the parsed JSON structure.

    Chapters and verses are sorted ascending; duplicate chapter or verse
    numbers and chapter/verse numbers below 1 raise ValueError.
    """
    if not isinstance(data, dict) or not isinstance(data.get("books"), list):
        raise ValueError("Corpus JSON must be an object with a 'books' list")

    books: List[Book] = []
    seen_names = set()
    for raw_book in data["books"]:
        name = str(raw_book["name"]).strip()
        if name.lower() in seen_names:
            raise ValueError(f"Duplicate book {name!r} in corpus")
        seen_names.add(name.lower())
        abbreviation = str(raw_book.get("abbreviation") or name).strip()

        chapters: Dict[int, Chapter] = {}
        for raw_chapter in raw_book.get("chapters", []):
            number = int(raw_chapter["chapterNumber"])
            if number < 1:
                raise ValueError(f"Invalid chapter number {number} in {name}")
            if number in chapters:
                raise ValueError(f"Duplicate chapter {name} {number}")
            pairs = []
            for raw_verse in raw_chapter.get("verses", []):
                verse_number = int(raw_verse["verseNumber"])
                if verse_number < 1:
                    raise ValueError(f"Invalid verse number {name} {number}:{verse_number}")
                pairs.append((verse_number, str(raw_verse.get("text", ""))))
            chapters[number] = _build_chapter(number, pairs, name)

        books.append(
            Book(
                name=name,
                abbreviation=abbreviation,
                chapters=tuple(chapters[k] for k in sorted(chapters)),
            )
        )

    return Corpus(version=str(data.get("version", "")), books=tuple(books))


def corpus_to_dict(corpus: Corpus) -> Dict[str, Any]:
    return {
        "version": corpus.version,
        "books": [
            {
                "name": book.name,
                "abbreviation": book.abbreviation,
                "chapters": [
                    {
                        "chapterNumber": chapter.number,
                        "verses": [
                            {"verseNumber": v.verse_number, "text": v.text}
                            for v in chapter.verses
                        ],
                    }
                    for chapter in book.chapters
                ],
            }
            for book in corpus.books
        ],
    }


def load_corpus(corpus_path: Path) -> Corpus:
    """
    Load a translation corpus from its JSON file.

    Raises FileNotFoundError if the file is missing and ValueError if the
    content is not a well-formed corpus.
    """
    if not corpus_path.exists():
        raise FileNotFoundError(f"Corpus file not found: {corpus_path}")

    try:
        data = json.loads(corpus_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Corpus file is not valid JSON: {corpus_path}: {e}") from e

    try:
        corpus = corpus_from_dict(data)
    except (KeyError, TypeError) as e:
        raise ValueError(f"Malformed corpus file {corpus_path}: {e!r}") from e

    verse_total = sum(len(c.verses) for b in corpus.books for c in b.chapters)
    info(
        f"Loaded corpus {corpus.version or '(unnamed)'}: "
        f"{len(corpus.books)} book(s), {verse_total} verse(s)."
    )
    return corpus


def write_corpus(corpus: Corpus, out_path: Path) -> None:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(
        json.dumps(corpus_to_dict(corpus), ensure_ascii=False, indent=1),
        encoding="utf-8",
    )


def corpus_from_rows(
    rows: Iterable[TableVerseRow],
    canon: Dict[int, Dict[str, Any]],
    version: str = "",
) -> Tuple[Corpus, int]:
    """
    Group flat verse rows into a Corpus ordered by canon book number.

    Returns (corpus, skipped_row_count). Rows whose book cannot be
    resolved against the canon are skipped with a warning.
    """
    book_lookup = _build_book_lookup(canon)
    grouped: Dict[int, "OrderedDict[int, List[Tuple[int, str]]]"] = {}
    skipped = 0

    for r in rows:
        num = book_lookup.get(r.book.lower())
        if num is None:
            warn(f"Row {r.raw_row_index}: could not resolve book {r.book!r}; skipping.")
            skipped += 1
            continue
        if r.chapter < 1 or r.verse < 1:
            warn(f"Row {r.raw_row_index}: chapter/verse must be >= 1; skipping.")
            skipped += 1
            continue
        chapters = grouped.setdefault(num, OrderedDict())
        chapters.setdefault(r.chapter, []).append((r.verse, r.text))

    books: List[Book] = []
    for num in sorted(grouped):
        meta = canon[num]
        chapters = grouped[num]
        books.append(
            Book(
                name=meta["name"],
                abbreviation=meta["abbreviation"],
                chapters=tuple(
                    _build_chapter(ch, chapters[ch], meta["name"]) for ch in sorted(chapters)
                ),
            )
        )

    return Corpus(version=version, books=tuple(books)), skipped


def import_corpus_from_table(
    table_path: Path,
    out_path: Path,
    version: str,
    sheet_name: Optional[str] = None,
    max_rows: Optional[int] = None,
    dry_run: bool = False,
    canon_path: Path = CANON_PATH,
) -> Optional[Corpus]:
    """
    Build a corpus JSON file from an Excel or CSV table of verses.

    Parameters
    ----------
    table_path:
        Path to the .xlsx/.csv file (columns: book, chapter, verse, text).
    out_path:
        Where to write the corpus JSON.
    version:
        Translation label stored in the corpus (e.g. 'KJV').
    sheet_name:
        Optional worksheet name. If None, the active sheet is used.
    max_rows:
        Optional limit on number of data rows to process (for testing).
    dry_run:
        If True, parse and report but do not write the output file.
    """
    info("=== IMPORT BIBLE ===")
    info(f"Source table     : {table_path}")
    info(f"Output corpus    : {out_path}")
    info(f"Version          : {version}")
    info(f"Sheet name       : {sheet_name or '(active sheet)'}")
    info(f"Dry run          : {dry_run}")
    info(f"Max rows         : {max_rows if max_rows is not None else '(no limit)'}")

    canon = load_canon(canon_path)
    if not canon:
        warn("Canon mapping is empty; cannot resolve book names. Aborting.")
        return None

    rows = list(iter_verses_from_table(table_path, sheet_name=sheet_name, max_rows=max_rows))
    if not rows:
        warn("No usable verse rows found in table.")
        return None
    info(f"Parsed {len(rows)} verse rows from table.")

    corpus, skipped = corpus_from_rows(rows, canon, version=version.upper())
    if not corpus.books:
        warn("No rows left after book resolution. Nothing written.")
        return None

    if skipped:
        info(f"Skipped {skipped} rows due to book/structure issues.")

    if dry_run:
        info("Dry run enabled - corpus file not written.")
        return corpus

    write_corpus(corpus, out_path)
    ok(f"Wrote {len(corpus.books)} book(s) to {out_path}")
    return corpus
