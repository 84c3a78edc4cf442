from __future__ import annotations

import json
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest
from rich.logging import RichHandler

from nmaphtml.logging_utils import HostnameRedactionFilter, JsonFormatter, configure_logging


@pytest.fixture()
def root_logger() -> logging.Logger:
    return logging.getLogger()


def _record(message: str, *args) -> logging.LogRecord:
    return logging.LogRecord("nmaphtml.core", logging.INFO, __file__, 1, message, args, None)


def test_json_formatter_emits_structured_payload() -> None:
    payload = json.loads(JsonFormatter().format(_record("Rendered %d host(s)", 3)))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "nmaphtml.core"
    assert payload["message"] == "Rendered 3 host(s)"
    assert "timestamp" in payload


def test_redaction_filter_masks_addresses_when_enabled() -> None:
    record = _record("Parsed host %s behind 10.1.2.3", "192.0.2.10")

    assert HostnameRedactionFilter(anonymize=True).filter(record) is True
    assert record.getMessage() == "Parsed host [redacted-ip] behind [redacted-ip]"


def test_redaction_filter_is_inert_when_disabled() -> None:
    record = _record("Parsed host %s", "192.0.2.10")

    HostnameRedactionFilter(anonymize=False).filter(record)

    assert record.getMessage() == "Parsed host 192.0.2.10"


def test_configure_logging_installs_console_handler(root_logger) -> None:
    configure_logging(logging.DEBUG)

    assert root_logger.level == logging.DEBUG
    assert [type(handler) for handler in root_logger.handlers] == [RichHandler]
    assert root_logger.handlers[0].console.stderr is True


def test_configure_logging_writes_json_file(root_logger, tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "run.log"

    configure_logging(logging.INFO, json_logs=True, logfile=log_file)
    logging.getLogger("nmaphtml.test").info("Converting %s", "scan.xml")

    file_handlers = [h for h in root_logger.handlers if isinstance(h, RotatingFileHandler)]
    assert len(file_handlers) == 1
    line = log_file.read_text(encoding="utf-8").strip().splitlines()[-1]
    assert json.loads(line)["message"] == "Converting scan.xml"


def test_anonymize_logs_redacts_file_output(root_logger, tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("ANONYMIZE_LOGS", "true")
    log_file = tmp_path / "run.log"

    configure_logging(logging.INFO, logfile=log_file)
    logging.getLogger("nmaphtml.test").warning("Host %s could not be rendered", "203.0.113.9")

    content = log_file.read_text(encoding="utf-8")
    assert "203.0.113.9" not in content
    assert "[redacted-ip]" in content

