from __future__ import annotations

import os
from pathlib import Path

from nmaphtml.config import Settings, load_environment
from nmaphtml.resources import DEFAULT_OUTPUT


def test_settings_defaults_without_environment() -> None:
    settings = Settings.from_environment({})

    assert settings.output == DEFAULT_OUTPUT
    assert settings.stylesheet is None
    assert settings.templates is None
    assert settings.risk_table is None
    assert settings.log_file is None


def test_settings_read_nmaphtml_variables() -> None:
    settings = Settings.from_environment(
        {
            "NMAPHTML_OUT": "reports/scan.html",
            "NMAPHTML_CSS": "theme.css",
            "NMAPHTML_TPL": "templates/",
            "NMAPHTML_RISK_TABLE": "risk.json",
            "NMAPHTML_LOG_FILE": "logs/nmaphtml.log",
        }
    )

    assert settings.output == "reports/scan.html"
    assert settings.stylesheet == Path("theme.css")
    assert settings.templates == Path("templates")
    assert settings.risk_table == Path("risk.json")
    assert settings.log_file == Path("logs/nmaphtml.log")


def test_blank_values_fall_back_to_defaults() -> None:
    settings = Settings.from_environment({"NMAPHTML_OUT": "  ", "NMAPHTML_CSS": ""})

    assert settings.output == DEFAULT_OUTPUT
    assert settings.stylesheet is None


def test_settings_use_process_environment(monkeypatch) -> None:
    monkeypatch.setenv("NMAPHTML_OUT", "from-env.html")

    assert Settings.from_environment().output == "from-env.html"


def test_load_environment_reads_dotenv_without_overriding(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(os, "environ", dict(os.environ))
    monkeypatch.setenv("NMAPHTML_CSS", "already-set.css")
    (tmp_path / ".env").write_text(
        "NMAPHTML_OUT=dotenv.html\nNMAPHTML_CSS=ignored.css\n", encoding="utf-8"
    )

    environment = load_environment()

    assert environment["NMAPHTML_OUT"] == "dotenv.html"
    assert environment["NMAPHTML_CSS"] == "already-set.css"
