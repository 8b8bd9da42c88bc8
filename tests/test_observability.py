from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from book_gen.adapters.observability import configure_runtime_logging, load_logging_settings


def test_settings_are_read_and_clamped(tmp_path: Path) -> None:
    settings = load_logging_settings(
        {
            "BOOK_GEN_LOG_LEVEL": "debug",
            "BOOK_GEN_LOG_PATH": str(tmp_path / "app.log"),
            "BOOK_GEN_LOG_MAX_BYTES": "10",
            "BOOK_GEN_LOG_BACKUP_COUNT": "not-a-number",
        }
    )
    assert settings.level == logging.DEBUG
    assert settings.log_path == tmp_path / "app.log"
    assert settings.max_bytes == 64 * 1024
    assert settings.backup_count == 5


def test_unknown_level_falls_back_to_info() -> None:
    settings = load_logging_settings({"BOOK_GEN_LOG_LEVEL": "chatty"})
    assert settings.level == logging.INFO
    assert str(settings.log_path) == "work/logs/book_gen.log"


def test_configure_installs_rotating_file_handler(tmp_path: Path) -> None:
    root = logging.getLogger()
    previous_handlers = list(root.handlers)
    previous_level = root.level
    settings = load_logging_settings({"BOOK_GEN_LOG_PATH": str(tmp_path / "logs" / "app.log")})
    try:
        configured = configure_runtime_logging(settings, force=True)
        assert configured is settings
        assert any(isinstance(handler, RotatingFileHandler) for handler in root.handlers)
        logging.getLogger("book_gen.test").info("observability.check value=%s", 1)
        for handler in root.handlers:
            handler.flush()
        assert "observability.check value=1" in (tmp_path / "logs" / "app.log").read_text(
            encoding="utf-8"
        )
        assert configure_runtime_logging() is settings
    finally:
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()
        for handler in previous_handlers:
            root.addHandler(handler)
        root.setLevel(previous_level)
