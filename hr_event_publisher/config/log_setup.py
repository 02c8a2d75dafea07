"""Process-wide logging setup with optional JSON output."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any


class JsonLogFormatter(logging.Formatter):
    """Render each record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, default=str)


def config_configure_logging(level: str = "INFO", json_enabled: bool = False) -> None:
    """Configure the root logger once at process startup.

    Args:
        level: Log level name.
        json_enabled: Emit JSON lines instead of plain text.

    Returns:
        None: Root logger handlers are replaced as side effect.

    Raises:
        ValueError: Raised when the level name is unknown.
    """

    normalized_level = level.strip().upper()
    numeric_level = logging.getLevelName(normalized_level)
    if not isinstance(numeric_level, int):
        raise ValueError(f"unknown log level={level}")

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    if json_enabled:
        console_handler.setFormatter(JsonLogFormatter())
    else:
        console_handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
    root_logger.addHandler(console_handler)

    logging.getLogger("uvicorn.access").setLevel(max(numeric_level, logging.INFO))
