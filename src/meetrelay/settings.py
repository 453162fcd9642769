"""Static configuration for meetrelay.

All operator-editable settings (server, storage, meetings, logging) live in a
single JSON file for quick edits without touching Python. A handful of
deployment values can be overridden from the environment (or a .env file).
"""

import json
import os

from dotenv import load_dotenv

from meetrelay.core.config import MeetingConfig, StoreConfig

load_dotenv()

# config.json is looked up in the working directory unless overridden.
CONFIG_PATH = os.path.abspath(os.getenv("MEETRELAY_CONFIG", "config.json"))
PROJECT_ROOT = os.path.dirname(CONFIG_PATH)


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

# HTTP/WebSocket listener. PORT follows the usual hosting convention.
_server = _CONFIG.get("server", {})
HOST = os.getenv("HOST", _server.get("host", "0.0.0.0"))
PORT = int(os.getenv("PORT", _server.get("port", 3000)))
CORS_ORIGINS = list(_server.get("cors_origins", ["*"]))

# Meeting store backend:
# - STORAGE_BACKEND: "sqlite" (durable) or "memory" (lost on restart)
# - STORAGE_TIMEOUT_SECONDS: bound on every store call before it counts as failed
_storage = _CONFIG.get("storage", {})
STORAGE = StoreConfig(
    backend=_storage.get("backend", "sqlite"),
    db_path=_resolve_path(os.getenv("MEETRELAY_DB_PATH", _storage.get("db_path", "meetrelay.db"))),
    timeout_seconds=float(_storage.get("timeout_seconds", 5)),
)

# Meeting codes and the inactivity sweep.
_meetings = _CONFIG.get("meetings", {})
MEETINGS = MeetingConfig(
    code_length=int(_meetings.get("code_length", 6)),
    code_alphabet=_meetings.get("code_alphabet", "digits"),
    max_code_attempts=int(_meetings.get("max_code_attempts", 10)),
    inactivity_hours=int(_meetings.get("inactivity_hours", 24)),
    sweep_interval_minutes=int(_meetings.get("sweep_interval_minutes", 60)),
)

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
