"""Process logging setup for the book_gen entrypoints."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path

DEFAULT_LOG_PATH = "work/logs/book_gen.log"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured_settings: LoggingSettings | None = None


@dataclass(frozen=True)
class LoggingSettings:
    level: int
    log_path: Path
    max_bytes: int
    backup_count: int
    access_level: int


def _bounded_int(
    environ: Mapping[str, str], name: str, default: int, *, minimum: int, maximum: int
) -> int:
    raw = environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return max(minimum, min(maximum, value))


def _level(environ: Mapping[str, str], name: str, default: str) -> int:
    level_name = environ.get(name, default).strip().upper() or default
    level = logging.getLevelName(level_name)
    return level if isinstance(level, int) else logging.getLevelName(default)


def load_logging_settings(environ: Mapping[str, str] | None = None) -> LoggingSettings:
    """Resolve logging settings from ``BOOK_GEN_LOG_*`` variables, clamping sizes."""
    env = os.environ if environ is None else environ
    return LoggingSettings(
        level=_level(env, "BOOK_GEN_LOG_LEVEL", "INFO"),
        log_path=Path(env.get("BOOK_GEN_LOG_PATH", "").strip() or DEFAULT_LOG_PATH),
        max_bytes=_bounded_int(
            env,
            "BOOK_GEN_LOG_MAX_BYTES",
            5 * 1024 * 1024,
            minimum=64 * 1024,
            maximum=100 * 1024 * 1024,
        ),
        backup_count=_bounded_int(env, "BOOK_GEN_LOG_BACKUP_COUNT", 5, minimum=1, maximum=50),
        access_level=_level(env, "BOOK_GEN_ACCESS_LOG_LEVEL", "WARNING"),
    )


def configure_runtime_logging(
    settings: LoggingSettings | None = None, *, force: bool = False
) -> LoggingSettings:
    """Install console and rotating-file handlers on the root logger once per process."""
    global _configured_settings
    if _configured_settings is not None and not force:
        return _configured_settings

    resolved = settings or load_logging_settings()
    resolved.log_path.parent.mkdir(parents=True, exist_ok=True)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z")

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    file_handler = RotatingFileHandler(
        filename=resolved.log_path,
        maxBytes=resolved.max_bytes,
        backupCount=resolved.backup_count,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(resolved.level)
    root.addHandler(stream_handler)
    root.addHandler(file_handler)
    logging.getLogger("uvicorn.access").setLevel(resolved.access_level)

    _configured_settings = resolved
    return resolved
