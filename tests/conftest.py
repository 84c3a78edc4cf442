from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from nmaphtml.config import load_environment  # noqa: E402

DATA_DIR = Path(__file__).resolve().parent / "data"

ENV_VARS = (
    "NMAPHTML_OUT",
    "NMAPHTML_CSS",
    "NMAPHTML_TPL",
    "NMAPHTML_RISK_TABLE",
    "NMAPHTML_LOG_FILE",
    "ANONYMIZE_LOGS",
)

EXAMPLE_HOST = """
<host starttime="1700000000" endtime="1700000001">
  <status state="up" reason="syn-ack" reason_ttl="0"/>
  <address addr="10.0.0.5" addrtype="ipv4"/>
  <hostnames/>
  <ports>
    <extraports state="filtered" count="998"/>
    <port protocol="tcp" portid="22">
      <state state="open" reason="syn-ack" reason_ttl="64"/>
      <service name="ssh" method="table" conf="3"/>
    </port>
    <port protocol="tcp" portid="80">
      <state state="closed" reason="reset" reason_ttl="64"/>
      <service name="http" method="table" conf="3"/>
    </port>
  </ports>
  <times srtt="100" rttvar="50" to="100000"/>
</host>
"""


def scan_document(
    hosts: str = "",
    *,
    scanner: str = "scan-tool",
    args: str = "-p 22,80",
    extra_root_attrs: str = 'start="1700000000" startstr="Tue Nov 14 22:13:20 2023" version="7.94"',
) -> bytes:
    """Build an Nmap-style XML document around ``hosts``."""

    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        "<!DOCTYPE nmaprun>\n"
        f'<nmaprun scanner="{scanner}" args="{args}" {extra_root_attrs} xmloutputversion="1.05">\n'
        '<scaninfo type="syn" protocol="tcp" numservices="2" services="22,80"/>\n'
        '<verbose level="0"/>\n'
        f"{hosts}\n"
        '<runstats><finished time="1700000002" elapsed="2.00" exit="success"/>'
        '<hosts up="1" down="0" total="1"/></runstats>\n'
        "</nmaprun>\n"
    ).encode("utf-8")


def simple_host(address: str, *, state: str = "up", ports: str = "") -> str:
    return (
        f'<host><status state="{state}" reason="echo-reply"/>'
        f'<address addr="{address}" addrtype="ipv4"/>'
        f"<ports>{ports}</ports></host>"
    )


def fixed_clock() -> datetime:
    return datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch, tmp_path):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    load_environment.cache_clear()
    yield
    load_environment.cache_clear()


@pytest.fixture()
def example_scan() -> bytes:
    return scan_document(EXAMPLE_HOST)


@pytest.fixture()
def sample_scan_path() -> Path:
    return DATA_DIR / "sample_scan.xml"


@pytest.fixture(autouse=True)
def _restore_root_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
