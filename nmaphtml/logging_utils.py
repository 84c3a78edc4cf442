"""Structured logging helpers for nmaphtml."""

from __future__ import annotations

import json
import logging
import os
import re
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

DEFAULT_MAX_BYTES = int(os.environ.get("LOG_MAX_BYTES", str(10 * 1024 * 1024)))
DEFAULT_BACKUP_COUNT = int(os.environ.get("LOG_BACKUP_COUNT", "5"))


class JsonFormatter(logging.Formatter):
    """Emit logs as structured JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "timestamp": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S%z"),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, sort_keys=True)


class HostnameRedactionFilter(logging.Filter):
    """Redact IP addresses of scanned hosts when anonymisation is enabled."""

    IP_PATTERN = re.compile(r"\b(?:\d{1,3}\.){3}\d{1,3}\b")

    def __init__(self, anonymize: bool) -> None:
        super().__init__(name="hostname-redactor")
        self.anonymize = anonymize

    def filter(self, record: logging.LogRecord) -> bool:
        if not self.anonymize:
            return True
        if isinstance(record.msg, str):
            record.msg = self.IP_PATTERN.sub("[redacted-ip]", record.msg)
        if isinstance(record.args, tuple):
            record.args = tuple(self.IP_PATTERN.sub("[redacted-ip]", str(arg)) for arg in record.args)
        elif isinstance(record.args, dict):
            record.args = {
                key: self.IP_PATTERN.sub("[redacted-ip]", str(value)) for key, value in record.args.items()
            }
        return True


def _rich_handler(level: int) -> logging.Handler:
    # Standard output may carry the report itself.
    return RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        markup=False,
        show_path=False,
        level=level,
    )


def configure_logging(
    level: int = logging.INFO,
    *,
    json_logs: bool = False,
    logfile: Optional[Path | str] = None,
) -> None:
    """Configure root logging with rotation and optional JSON output."""

    handlers: list[logging.Handler] = []
    anonymize = os.environ.get("ANONYMIZE_LOGS", "false").lower() == "true"

    console_handler = _rich_handler(level)
    console_handler.addFilter(HostnameRedactionFilter(anonymize))
    handlers.append(console_handler)

    if logfile:
        path = Path(logfile)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            path,
            maxBytes=DEFAULT_MAX_BYTES,
            backupCount=DEFAULT_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.addFilter(HostnameRedactionFilter(anonymize))
        if json_logs:
            file_handler.setFormatter(JsonFormatter())
        else:
            file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers, force=True)


__all__ = [
    "configure_logging",
    "JsonFormatter",
    "HostnameRedactionFilter",
]
