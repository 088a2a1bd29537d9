"""Static configuration for codescope.

All user-editable settings (storage, link domains, backfill mode, logging)
live in a single JSON file for quick edits without touching Python. Telegram
credentials stay in .env and are read by client.py.
"""

import json
import os

from core.config import PAGE_SIZE

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

CONFIG_PATH = os.environ.get("CODESCOPE_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _resolve_path(path: str) -> str:
    if os.path.isabs(path):
        return path
    return os.path.join(PROJECT_ROOT, path)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Where to store the SQLite archive.
DB_PATH = _resolve_path(_CONFIG.get("db_filename", "codescope.db"))

# Links are only relevant when their host ends with one of these domains.
# Order is kept: extracted links are grouped by domain in this order.
DOMAINS = tuple(dict.fromkeys(_CONFIG.get("domains", [])))

# Backfill controls:
# - PARSE: crawl every channel's history on startup
# - ONESHOT: exit once the crawl is complete (live events are ignored)
PARSE = bool(_CONFIG.get("parse", False))
ONESHOT = bool(_CONFIG.get("oneshot", False))
PAGE_SIZE = int(_CONFIG.get("page_size", PAGE_SIZE))

# Whether one-to-one chats are labelled with the counterpart's tag.
LABEL_PRIVATE_CHATS = bool(_CONFIG.get("label_private_chats", True))

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
