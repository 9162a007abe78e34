"""
Excel and CSV import helpers for building a verse corpus.

This module:
- Opens .xlsx files via openpyxl or .csv files via the csv module.
- Detects the header row and column mapping.
- Yields normalized verse rows: (book, chapter, verse, text).
"""

from __future__ import annotations

import csv
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional

from openpyxl import load_workbook

from .util import info, warn


@dataclass
class TableVerseRow:
    book: str          # Book name or code
    chapter: int
    verse: int
    text: str
    raw_row_index: int  # for diagnostics


HEADER_CANDIDATES: Dict[str, List[str]] = {
    "book": ["book", "bookname", "bk"],
    "chapter": ["chapter", "chap", "ch", "chapternumber"],
    "verse": ["verse", "versenum", "versenumber", "vs", "v"],
    "text": ["text", "versetext", "content", "body"],
}


def _normalize_header(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip().lower().replace(" ", "").replace("-", "").replace("_", "")


def _detect_column_mapping(headers: List[object]) -> Optional[Dict[str, int]]:
    """
    Find which column index corresponds to book/chapter/verse/text.

    Returns { 'book': idx, 'chapter': idx, 'verse': idx, 'text': idx }
    or None if detection fails.
    """
    norm_headers = [_normalize_header(h) for h in headers]
    mapping: Dict[str, int] = {}

    for logical_name, candidates in HEADER_CANDIDATES.items():
        idx_found: Optional[int] = None
        for i, norm in enumerate(norm_headers):
            if norm in candidates:
                idx_found = i
                break
        if idx_found is None:
            warn(f"Could not detect column for '{logical_name}'. Headers were: {headers}")
            return None
        mapping[logical_name] = idx_found

    return mapping


def iter_verses_from_table(
    path: Path,
    sheet_name: Optional[str] = None,
    max_rows: Optional[int] = None,
) -> Iterator[TableVerseRow]:
    """
    Yield TableVerseRow objects from Excel (.xlsx) or CSV (.csv) files.

    Parameters
    ----------
    path:
        Path to the Excel or CSV file.
    sheet_name:
        Optional worksheet name (Excel only). If None, the active sheet is used.
    max_rows:
        Optional limit on number of data rows yielded (for testing).
    """
    path = path.resolve()
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    suffix = path.suffix.lower()
    if suffix == ".csv":
        yield from _iter_rows(_csv_rows(path), max_rows)
    elif suffix in (".xlsx", ".xlsm"):
        yield from _iter_rows(_xlsx_rows(path, sheet_name), max_rows)
    else:
        warn(f"Unsupported file format: {suffix}. Expected .csv, .xlsx or .xlsm")


def _csv_rows(csv_path: Path) -> Iterator[List[object]]:
    info(f"Opening CSV file: {csv_path}")
    with open(csv_path, "r", encoding="utf-8", newline="") as f:
        for row in csv.reader(f):
            yield list(row)


def _xlsx_rows(excel_path: Path, sheet_name: Optional[str]) -> Iterator[List[object]]:
    info(f"Opening Excel file: {excel_path}")
    wb = load_workbook(filename=str(excel_path), read_only=True, data_only=True)
    try:
        if sheet_name is None:
            ws = wb.active
            info(f"Using active sheet: {ws.title!r}")
        else:
            if sheet_name not in wb.sheetnames:
                raise ValueError(
                    f"Sheet {sheet_name!r} not found. Available: {wb.sheetnames}"
                )
            ws = wb[sheet_name]
            info(f"Using sheet: {ws.title!r}")

        for row in ws.iter_rows(values_only=True):
            yield list(row)
    finally:
        wb.close()


def _iter_rows(
    rows: Iterable[List[object]],
    max_rows: Optional[int],
) -> Iterator[TableVerseRow]:
    """Shared header detection and row validation for CSV and Excel."""
    it = iter(rows)
    try:
        headers = next(it)
    except StopIteration:
        warn("Table is empty.")
        return

    info(f"Detected header row: {headers}")
    mapping = _detect_column_mapping(headers)
    if mapping is None:
        warn("Failed to detect required columns; aborting import.")
        return

    count = 0
    for row_idx, row in enumerate(it, start=2):  # 1-based row index; +1 for header
        if max_rows is not None and count >= max_rows:
            info(f"Stopping after max_rows={max_rows} rows.")
            break

        try:
            book_raw = row[mapping["book"]]
            chapter_raw = row[mapping["chapter"]]
            verse_raw = row[mapping["verse"]]
            text_raw = row[mapping["text"]]
        except IndexError:
            warn(f"Row {row_idx}: not enough columns; skipping.")
            continue

        if book_raw in (None, "") or chapter_raw in (None, "") or verse_raw in (None, ""):
            warn(f"Row {row_idx}: missing book/chapter/verse; skipping.")
            continue

        text_str = "" if text_raw is None else str(text_raw).strip()
        if not text_str:
            warn(f"Row {row_idx}: empty verse text; skipping.")
            continue

        try:
            chapter_int = int(chapter_raw)
            verse_int = int(verse_raw)
        except (TypeError, ValueError):
            warn(f"Row {row_idx}: non-integer chapter/verse; skipping. "
                 f"chapter={chapter_raw!r}, verse={verse_raw!r}")
            continue

        book_str = str(book_raw).strip()
        if not book_str:
            warn(f"Row {row_idx}: empty book value; skipping.")
            continue

        yield TableVerseRow(
            book=book_str,
            chapter=chapter_int,
            verse=verse_int,
            text=text_str,
            raw_row_index=row_idx,
        )
        count += 1
