"""
Path configuration for the Bible Verses App project.
"""

from pathlib import Path

# Project root is one level up from bva/
PROJECT_ROOT = Path(__file__).parent.parent
DATA_DIR = PROJECT_ROOT / "data"
STATE_DIR = PROJECT_ROOT / "state"
DB_PATH = STATE_DIR / "verses.sqlite"
CORPUS_PATH = DATA_DIR / "bible-sample.json"
CANON_PATH = DATA_DIR / "canon.json"
WIDGET_STATE_PATH = STATE_DIR / "widget.json"


def ensure_basic_dirs() -> None:
    """
    Ensure essential directories exist:
    - data/
    - state/ (sqlite store + widget shared state)
    """
    DATA_DIR.mkdir(exist_ok=True)
    STATE_DIR.mkdir(exist_ok=True)
