"""Typed records describing one Nmap scan run and its hosts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

__all__ = [
    "Address",
    "Host",
    "HostStatus",
    "Hostname",
    "Port",
    "PortState",
    "ScanMetadata",
    "Script",
    "Service",
]


@dataclass(frozen=True)
class ScanMetadata:
    """Attributes of the ``<nmaprun>`` root element, kept as presented."""

    scanner: str = ""
    args: str = ""
    start: str = ""
    startstr: str = ""
    version: str = ""


@dataclass(frozen=True)
class Address:
    addr: str = ""
    addrtype: str = ""


@dataclass(frozen=True)
class Hostname:
    name: str = ""
    type: str = ""


@dataclass(frozen=True)
class HostStatus:
    state: str = ""
    reason: str = ""


@dataclass(frozen=True)
class PortState:
    state: str = ""
    reason: str = ""


@dataclass(frozen=True)
class Service:
    """Service fingerprint reported for a port; every field may be empty."""

    name: str = ""
    product: str = ""
    version: str = ""
    extrainfo: str = ""


@dataclass(frozen=True)
class Script:
    """NSE script result. ``output`` is opaque text and is never rewritten."""

    id: str = ""
    output: str = ""


@dataclass(frozen=True)
class Port:
    protocol: str = ""
    portid: Optional[int] = None
    state: PortState = field(default_factory=PortState)
    service: Service = field(default_factory=Service)
    scripts: tuple[Script, ...] = ()


@dataclass(frozen=True)
class Host:
    """One scanned endpoint. Sequences keep the order found in the input."""

    addresses: tuple[Address, ...] = ()
    hostnames: tuple[Hostname, ...] = ()
    status: HostStatus = field(default_factory=HostStatus)
    ports: tuple[Port, ...] = ()

    @property
    def canonical_address(self) -> Optional[str]:
        if not self.addresses:
            return None
        return self.addresses[0].addr or None
