# util/logger.py
import logging
import os
import sys
from logging.handlers import RotatingFileHandler

from keyspace_store.config.settings import settings
from keyspace_store.util.enums import Color

_INITED_FLAG = "_keyspace_store_inited"


class ColoredFormatter(logging.Formatter):
    COLORS = {
        "DEBUG": Color.WHITE,
        "INFO": Color.GREEN,
        "WARNING": Color.YELLOW,
        "ERROR": Color.RED,
        "CRITICAL": Color.BG_RED,
    }

    def format(self, record: logging.LogRecord) -> str:
        # Colorize a copy so file handlers sharing the record stay plain
        if getattr(record, "_colorize", False):
            record = logging.makeLogRecord(record.__dict__)
            lvl = record.levelname
            record.levelname = f"{self.COLORS.get(lvl, Color.RESET)}{lvl}{Color.RESET}"
        return super().format(record)


class _ColorStreamHandler(logging.StreamHandler):
    def emit(self, record: logging.LogRecord) -> None:
        record._colorize = True  # type: ignore[attr-defined]
        super().emit(record)


def init_logger(level: str | None = None) -> logging.Logger:
    """
    For host applications; the library itself only ships a NullHandler.

    Idempotent:
    - Always logs to stdout, colored.
    - Writes to LOG_DIR/LOG_FILE_NAME only when settings.LOG_TO_FILE is True,
      rotating by size (LOG_MAX_BYTES/LOG_BACKUP_COUNT).
    - `level` overrides settings.LOG_LEVEL.
    """
    root = logging.getLogger()
    if getattr(root, _INITED_FLAG, False):
        return logging.getLogger(settings.LOGGER_NAME)

    lvl_name = (level or settings.LOG_LEVEL or "INFO").upper()
    lvl = getattr(logging, lvl_name, logging.INFO)
    root.setLevel(lvl)

    # Clear any default handlers to avoid duplicates
    for h in list(root.handlers):
        root.removeHandler(h)

    text_fmt = "%(asctime)s %(levelname)s %(name)s - %(message)s"
    date_fmt = "%Y-%m-%dT%H:%M:%S%z"

    ch = _ColorStreamHandler(sys.stdout)
    ch.setLevel(lvl)
    ch.setFormatter(ColoredFormatter(text_fmt, datefmt=date_fmt))
    root.addHandler(ch)

    if settings.LOG_TO_FILE:
        os.makedirs(settings.LOG_DIR, exist_ok=True)
        fh = RotatingFileHandler(
            os.path.join(settings.LOG_DIR, settings.LOG_FILE_NAME),
            maxBytes=settings.LOG_MAX_BYTES,
            backupCount=settings.LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        fh.setLevel(lvl)
        fh.setFormatter(logging.Formatter(text_fmt, datefmt=date_fmt))
        root.addHandler(fh)

    # redis-py logs every reconnect attempt at DEBUG
    logging.getLogger("redis").setLevel(logging.WARNING)

    setattr(root, _INITED_FLAG, True)
    logger = logging.getLogger(settings.LOGGER_NAME)
    logger.debug("logger.initialized level=%s", lvl_name)
    return logger


def reset_logger() -> None:
    """Undo init_logger(); mostly for tests."""
    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()
    if hasattr(root, _INITED_FLAG):
        delattr(root, _INITED_FLAG)
