"""
Logging Setup
──────────────
Console output for operators plus an error-level file of JSON records.
Context fields are passed with ``extra={"context": {...}}``.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

CONSOLE_FORMAT = "%(asctime)s | %(name)-24s | %(levelname)-7s | %(message)s"
ERROR_LOG_NAME = "error.log"


class ConsoleFormatter(logging.Formatter):
    """Pipe-separated line with any context fields appended as key=value."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = getattr(record, "context", None)
        if context:
            line += " | " + " ".join(f"{k}={v}" for k, v in context.items())
        return line


class JsonFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(getattr(record, "context", None) or {})
        if record.exc_info:
            entry["traceback"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(level: str = "INFO", log_dir: str = "logs") -> None:
    """Configure root logger with console and error file handlers."""
    log_level = getattr(logging, level.upper(), logging.INFO)
    Path(log_dir).mkdir(parents=True, exist_ok=True)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(ConsoleFormatter(CONSOLE_FORMAT))

    error_file = logging.FileHandler(Path(log_dir) / ERROR_LOG_NAME)
    error_file.setLevel(logging.ERROR)
    error_file.setFormatter(JsonFormatter())

    logging.basicConfig(
        level=log_level,
        handlers=[console, error_file],
        force=True,
    )
