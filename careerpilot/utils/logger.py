import logging
import json
import os
import sys
from pathlib import Path
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler

from careerpilot.utils.errors import sanitize_error_message

# Attributes every LogRecord has; anything else arrived through extra={...}
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}
_CONTEXT_ATTRS = ("correlation_id", "user_id")


def record_extras(record: logging.LogRecord) -> dict:
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _RECORD_ATTRS and key not in _CONTEXT_ATTRS and not key.startswith("_")
    }


class StructuredFormatter(logging.Formatter):
    """One JSON object per line, with request context and redacted messages"""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": sanitize_error_message(record.getMessage()),
        }
        for key in _CONTEXT_ATTRS:
            value = getattr(record, key, None)
            if value:
                entry[key] = value
        entry.update(record_extras(record))

        if record.levelno >= logging.WARNING:
            entry["source"] = f"{record.filename}:{record.lineno}"
        if record.exc_info and record.exc_info[1]:
            exc = record.exc_info[1]
            entry["exception"] = {
                "type": type(exc).__name__,
                "message": sanitize_error_message(str(exc)),
            }
        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Readable lines for local development; extras are appended as key=value"""

    def __init__(self):
        super().__init__('%(asctime)s %(levelname)-7s %(message)s', datefmt='%H:%M:%S')

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = record_extras(record)
        if getattr(record, "correlation_id", None):
            extras = {"cid": record.correlation_id, **extras}
        if extras:
            line += "  " + " ".join(f"{k}={v}" for k, v in extras.items())
        return line


def setup_logger(name: str = "careerpilot", level: str = None) -> logging.Logger:
    """
    JSON to stdout on Railway (or with LOG_FORMAT=json), console lines
    otherwise. LOG_TO_FILE adds a rotating JSON file under logs/.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    level = level or os.getenv("LOG_LEVEL", "INFO")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    as_json = bool(os.getenv("RAILWAY_ENVIRONMENT")) or os.getenv("LOG_FORMAT") == "json"

    stdout = logging.StreamHandler(sys.stdout)
    stdout.setFormatter(StructuredFormatter() if as_json else ConsoleFormatter())
    logger.addHandler(stdout)

    if not as_json and os.getenv("LOG_TO_FILE"):
        try:
            Path("logs").mkdir(exist_ok=True)
            to_file = RotatingFileHandler(
                Path("logs") / "careerpilot.log",
                maxBytes=10 * 1024 * 1024,
                backupCount=5,
                encoding='utf-8'
            )
            to_file.setFormatter(StructuredFormatter())
            logger.addHandler(to_file)
        except OSError as e:
            logger.warning(f"Could not setup file logging: {e}")

    return logger


logger = setup_logger()


def get_logger(name: str = None) -> logging.Logger:
    if name:
        return setup_logger(name)
    return logger
