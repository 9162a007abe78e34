"""
bva - Bible Verses App core package

This package contains the verse scheduling core:
- config: Project configuration and versioning
- paths: Path management and directory setup
- util: Console output and timestamp helpers
- model: Corpus and device-state data types
- loader: Corpus JSON loading and Excel/CSV import
- index: Scripture lookups, navigation and search
- context: Sentence-complete verse expansion
- picker: Random verse selection
- store: Persistence of history, schedule and settings
- widget: Home-screen widget bridges
- scheduling: The scheduling engine
"""

from . import config
from .paths import PROJECT_ROOT, DATA_DIR, ensure_basic_dirs
from .util import info, warn, ok
from .model import (
    Verse,
    Corpus,
    DisplayedVerseRecord,
    ScheduledReveal,
    RefreshFrequency,
    WidgetSettings,
    Collection,
)
from .loader import load_corpus
from .index import ScriptureIndex
from .context import ContextExpander
from .picker import VersePicker
from .store import StorageService, SqliteKeyValueStore, MemoryKeyValueStore
from .scheduling import SchedulingEngine

__version__ = config.__version__
__all__ = [
    "config",
    "PROJECT_ROOT",
    "DATA_DIR",
    "ensure_basic_dirs",
    "info",
    "warn",
    "ok",
    "Verse",
    "Corpus",
    "DisplayedVerseRecord",
    "ScheduledReveal",
    "RefreshFrequency",
    "WidgetSettings",
    "Collection",
    "load_corpus",
    "ScriptureIndex",
    "ContextExpander",
    "VersePicker",
    "StorageService",
    "SqliteKeyValueStore",
    "MemoryKeyValueStore",
    "SchedulingEngine",
]
