"""Logging setup for the proofline command line and embedding hosts."""

from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path

__all__ = ["LOG_FILE_NAME", "get_log_path", "resolve_level", "setup_logging"]

LOG_FILE_NAME = "proofline.log"
_DEFAULT_LOG_DIR = Path.home() / ".proofline" / "logs"
# Transport chatter that would drown out per-document analysis records.
_QUIET_LOGGERS: tuple[str, ...] = ("asyncio", "httpx", "httpcore")
_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_LOG_PATH: Path | None = None


def resolve_level(value: str | int | None, *, debug: bool = False) -> int:
    """Translate a configured level name into a ``logging`` level.

    ``debug`` always wins; unknown names fall back to ``INFO``.
    """

    if debug:
        return logging.DEBUG
    if isinstance(value, int):
        return value
    name = (value or "").strip().upper()
    if name.isdigit():
        return int(name)
    level = logging.getLevelName(name) if name else logging.INFO
    return level if isinstance(level, int) else logging.INFO


def setup_logging(
    level: int = logging.INFO,
    *,
    log_dir: Path | str | None = None,
    console: bool = False,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
    force: bool = False,
) -> Path:
    """Route root logging to a rotating ``proofline.log`` and optionally stderr.

    Repeated calls are no-ops unless ``force`` is set, so hosts that embed the
    engine can configure logging once and let the CLI reuse it.
    """

    global _LOG_PATH
    if _LOG_PATH is not None and not force:
        return _LOG_PATH

    directory = _resolve_log_dir(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    log_path = directory / LOG_FILE_NAME
    formatter = logging.Formatter(fmt=_FORMAT, datefmt=_DATE_FORMAT)

    handlers: list[logging.Handler] = [
        logging.handlers.RotatingFileHandler(
            log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
    ]
    if console:
        handlers.append(logging.StreamHandler())
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=handlers, force=True)
    logging.captureWarnings(True)
    quiet_level = max(level, logging.WARNING)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)

    _LOG_PATH = log_path
    return log_path


def get_log_path() -> Path | None:
    """Return the active log file, or ``None`` before :func:`setup_logging`."""

    return _LOG_PATH


def _resolve_log_dir(log_dir: Path | str | None) -> Path:
    return Path(log_dir or os.environ.get("PROOFLINE_LOG_DIR") or _DEFAULT_LOG_DIR).expanduser()
