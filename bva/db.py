"""
Database connection management for the Bible Verses App.
"""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from .paths import DB_PATH


@contextmanager
def get_conn(db_path: Path = DB_PATH, readonly: bool = False) -> Generator[sqlite3.Connection, None, None]:
    """
    Context manager for database connections.

    Args:
        db_path: SQLite file to open (created on first write)
        readonly: If True, open in read-only mode

    Yields:
        sqlite3.Connection with row_factory set to Row
    """
    if readonly:
        conn = sqlite3.connect(f"file:{db_path}?mode=ro", uri=True)
    else:
        db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()


def ping(db_path: Path = DB_PATH) -> bool:
    """
    Check if the database is reachable.

    Returns:
        True if database exists and can be connected to
    """
    if not db_path.exists():
        return False

    try:
        with get_conn(db_path, readonly=True) as conn:
            conn.execute("SELECT 1")
        return True
    except sqlite3.Error:
        return False
