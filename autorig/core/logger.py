"""
Centralized Logging Configuration

Every AutoRig module logs through a child of the `autorig` logger. Console
output uses the [OK], [WARNING], [ERROR] prefix style; a timestamped file
log is added when LOG_FILE is set.

Usage:
    from autorig.core.logger import get_logger
    logger = get_logger(__name__)

    logger.info("Rig generated")            # [OK] Rig generated
    logger.warning("Detector timed out")    # [WARNING] Detector timed out
    logger.error("Segmentation failed")     # [ERROR] Segmentation failed
"""

import sys
import logging
from typing import Optional
from pathlib import Path

from autorig.core.config import settings


# =============================================================================
# FORMATTERS
# =============================================================================

class _AutoRigFormatter(logging.Formatter):
    """Base formatter that appends tracebacks after the rendered line."""

    def render(self, record: logging.LogRecord, message: str) -> str:
        raise NotImplementedError

    def format(self, record: logging.LogRecord) -> str:
        line = self.render(record, record.getMessage())
        if record.exc_info:
            if not record.exc_text:
                record.exc_text = self.formatException(record.exc_info)
            line = f"{line}\n{record.exc_text}"
        return line


class PrefixFormatter(_AutoRigFormatter):
    """Console formatter: `[OK] message`."""

    LEVEL_PREFIXES = {
        logging.DEBUG: "[DEBUG]",
        logging.INFO: "[OK]",
        logging.WARNING: "[WARNING]",
        logging.ERROR: "[ERROR]",
        logging.CRITICAL: "[CRITICAL]",
    }

    def render(self, record: logging.LogRecord, message: str) -> str:
        return f"{self.LEVEL_PREFIXES.get(record.levelno, '[INFO]')} {message}"


class TimestampFormatter(_AutoRigFormatter):
    """File formatter: `[LEVEL] time - logger - message`."""

    def render(self, record: logging.LogRecord, message: str) -> str:
        timestamp = self.formatTime(record, "%Y-%m-%d %H:%M:%S")
        return f"[{record.levelname}] {timestamp} - {record.name} - {message}"


# =============================================================================
# CONFIGURATION
# =============================================================================

ROOT_LOGGER_NAME = "autorig"


def resolve_level(name: Optional[str]) -> int:
    """Map a level name such as "debug" to its logging constant (INFO if unknown)."""
    level = logging.getLevelName(str(name or "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


def _file_handler(log_file: str, level: int) -> logging.FileHandler:
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    handler = logging.FileHandler(log_path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(TimestampFormatter())
    return handler


def _root_logger() -> logging.Logger:
    """
    Return the `autorig` logger, attaching handlers on first use.

    Level and file come from LoggingSettings (LOG_LEVEL, LOG_FILE).
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if root.handlers:
        return root

    level = resolve_level(settings.logging.log_level)
    root.setLevel(level)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(PrefixFormatter())
    root.addHandler(console)

    if settings.logging.log_file:
        root.addHandler(_file_handler(settings.logging.log_file, level))

    # uvicorn configures the stdlib root logger; keep our lines out of it
    root.propagate = False
    return root


# =============================================================================
# PUBLIC API
# =============================================================================

def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger for a module.

    Args:
        name: Module name (e.g., __name__, "main"). The `autorig.` prefix
              is optional. If None, returns the root autorig logger.
    """
    root = _root_logger()
    if name is None:
        return root

    prefix = f"{ROOT_LOGGER_NAME}."
    if name.startswith(prefix):
        name = name[len(prefix):]
    return logging.getLogger(f"{prefix}{name}")


def setup_logger(
    log_file: Optional[str] = None,
    level: Optional[int] = None,
) -> logging.Logger:
    """
    Apply CLI overrides to the root logger.

    Adds a file handler for `log_file` unless one is already attached and
    moves every handler to `level` when given.
    """
    root = _root_logger()

    if log_file and not any(isinstance(h, logging.FileHandler) for h in root.handlers):
        root.addHandler(_file_handler(log_file, level or root.level))

    if level is not None:
        root.setLevel(level)
        for handler in root.handlers:
            handler.setLevel(level)
    return root


logger = _root_logger()


__all__ = [
    "logger",
    "get_logger",
    "setup_logger",
    "resolve_level",
    "PrefixFormatter",
    "TimestampFormatter",
]
