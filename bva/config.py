"""
Project configuration and versioning for the Bible Verses App.

Constants here are the knobs of the scheduling engine; runtime paths and
choices that vary per install are resolved by Settings.from_env().
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .paths import CORPUS_PATH, DB_PATH, WIDGET_STATE_PATH

APP_NAME = "Bible Verses App"
__version__ = "0.4.0"

# ---------- History / feed ----------
HISTORY_CAP = 100
FEED_CAP = 30
RECENT_EXCLUSION_WINDOW = 20

# ---------- Scheduling ----------
DEFAULT_POPULATE_COUNT = 7
POPULATE_ATTEMPTS_PER_VERSE = 10
PICK_ATTEMPTS = 10
DISTINCT_PICK_ATTEMPTS = 5
DEFAULT_CUSTOM_HOURS = 24
DEFAULT_SCHEDULE_HOUR = 9
TICK_SECONDS = 60

# First book of the default random-selection scope (New Testament onward).
DEFAULT_SCOPE_START = "Matthew"

# ---------- Storage keys ----------
KEY_DISPLAYED_VERSES = "@bible:displayed_verses"
KEY_SCHEDULED_VERSES = "@bible:scheduled_verses"
KEY_COLLECTIONS = "@bible:collections"
KEY_WIDGET_SETTINGS = "@bible:widget_settings"
KEY_CURRENT_VERSE = "@bible:current_verse"
KEY_CUSTOM_COLORS = "@bible:custom_colors"
KEY_THEME_NAME = "@bible:theme_name"


@dataclass
class Settings:
    """
    Runtime settings for one process.

    Values come from environment variables, falling back to the defaults
    in bva.paths. CLI flags override individual fields after construction.
    """
    db_path: Path = DB_PATH
    corpus_path: Path = CORPUS_PATH
    widget_state_path: Path = WIDGET_STATE_PATH
    widget_url: Optional[str] = None
    scope_start: str = DEFAULT_SCOPE_START

    @classmethod
    def from_env(cls) -> "Settings":
        env = os.environ
        return cls(
            db_path=Path(env.get("BVA_DB_PATH", str(DB_PATH))),
            corpus_path=Path(env.get("BVA_CORPUS_PATH", str(CORPUS_PATH))),
            widget_state_path=Path(env.get("BVA_WIDGET_STATE", str(WIDGET_STATE_PATH))),
            widget_url=env.get("BVA_WIDGET_URL") or None,
            scope_start=env.get("BVA_SCOPE_START", DEFAULT_SCOPE_START),
        )
