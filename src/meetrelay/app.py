"""Application entry point for the meetrelay server."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint
import uvicorn

from meetrelay import settings
from meetrelay.adapters.http_api import create_app
from meetrelay.adapters.memory_store import InMemoryMeetingStore
from meetrelay.adapters.sqlite_store import SQLiteMeetingStore
from meetrelay.core.meetings import MeetingService
from meetrelay.core.ports import MeetingStorePort

NAME = "MEETRELAY"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _log_file_path(file_cfg: dict) -> str:
    path = file_cfg.get("path", "logs/meetrelay.log")
    if not os.path.isabs(path):
        path = os.path.join(settings.PROJECT_ROOT, path)
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    return path


def _log_handlers(config: dict) -> list[logging.Handler]:
    """Console and rotating-file handlers from the `logging` config section."""

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)
    handlers: list[logging.Handler] = []

    if config.get("console", True):
        handlers.append(logging.StreamHandler())

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        handlers.append(
            RotatingFileHandler(
                _log_file_path(file_cfg),
                maxBytes=int(file_cfg.get("max_bytes", 5 * 1024 * 1024)),
                backupCount=int(file_cfg.get("backup_count", 5)),
                encoding="utf-8",
            )
        )

    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def _configure_logging(config: Optional[dict] = None) -> None:
    config = settings.LOGGING if config is None else config
    if not config or not config.get("enabled", False):
        return

    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)
    handlers = _log_handlers(config)
    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers, force=True)
    # uvicorn runs with log_config=None, so its loggers inherit these handlers.
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).setLevel(level)


def _build_store() -> MeetingStorePort:
    backend = settings.STORAGE.backend
    if backend == "memory":
        logging.getLogger(__name__).warning("Using in-memory meeting store; meetings are lost on restart")
        return InMemoryMeetingStore()
    if backend != "sqlite":
        raise ValueError(f"Unsupported storage backend: {backend}")

    storage = SQLiteMeetingStore(settings.STORAGE.db_path, settings.STORAGE.timeout_seconds)
    storage.init_db()
    return storage


def _run() -> None:
    _print_banner()
    _configure_logging()
    logger = logging.getLogger(__name__)

    store = _build_store()
    app = create_app(store, settings.MEETINGS, settings.CORS_ORIGINS)

    logger.info("Starting meetrelay on %s:%s", settings.HOST, settings.PORT)
    # Logging is configured above; keep uvicorn from replacing it.
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_config=None)


def _sweep() -> None:
    _configure_logging()
    service = MeetingService(_build_store(), settings.MEETINGS)
    removed = asyncio.run(service.sweep_inactive())
    print(f"Removed {removed} meetings inactive for more than {settings.MEETINGS.inactivity_hours}h")


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="meetrelay")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the signaling and meeting server")
    subparsers.add_parser("sweep", help="Delete inactive meetings once and exit")

    args = parser.parse_args(argv)
    if args.command == "sweep":
        _sweep()
        return
    _run()


if __name__ == "__main__":
    main()
