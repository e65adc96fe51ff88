"""Logging configuration for botroles."""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

log = logging.getLogger("botroles")

CONSOLE_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"

_PREFIX_RE = re.compile(r"^\[(?P<bot>[^\]]+)\]\s*(?P<body>.*)$", re.DOTALL)


class JsonLogFormatter(logging.Formatter):
    """Structured one-line JSON formatter."""

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        bot: str | None = None
        body = message

        matched = _PREFIX_RE.match(message or "")
        if matched:
            bot = matched.group("bot")
            body = matched.group("body")

        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "bot": bot,
            "message": body,
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False)


def configure_logging(level: str = "INFO", json_path: str | Path | None = None) -> Path | None:
    """
    Configure console logging, plus an optional JSON-lines file.

    Args:
        level: Log level name for the botroles logger
        json_path: If given, also append structured records to this file

    Returns:
        Resolved JSON log path, or None when JSON logging is off
    """
    logging.basicConfig(format=CONSOLE_FORMAT, datefmt="%H:%M:%S")
    log.setLevel(level.upper())

    if not json_path:
        return None

    path = Path(json_path).expanduser().resolve()
    for handler in log.handlers:
        if isinstance(handler, logging.FileHandler) and Path(handler.baseFilename).resolve() == path:
            return path

    path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    file_handler.setFormatter(JsonLogFormatter())
    log.addHandler(file_handler)
    log.info(f"Structured JSON logging enabled: {path.as_posix()}")
    return path
