"""Derive render-ready view fields from parsed hosts."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Optional

from .models import Host, Port

PLACEHOLDER = "-"

STATUS_UP = "up"
STATUS_DOWN = "down"
STATUS_INDICATORS: Mapping[str, str] = MappingProxyType({STATUS_UP: "🟢", STATUS_DOWN: "🔴"})

STATE_SUCCESS = "success"
STATE_FAILURE = "failure"
STATE_CAUTION = "caution"
STATE_INDICATORS: Mapping[str, str] = MappingProxyType(
    {STATE_SUCCESS: "🟢", STATE_FAILURE: "🔴", STATE_CAUTION: "🟡"}
)

DEFAULT_SERVICE_ICON = "⚙️"
SERVICE_ICONS: Mapping[str, str] = MappingProxyType(
    {
        "http": "🌐",
        "https": "🔒",
        "ssh": "🔑",
        "ftp": "📁",
        "mysql": "🗄️",
        "postgresql": "🗄️",
        "smtp": "📧",
        "dns": "🌐",
        "domain": "🌐",
        "telnet": "⚠️",
        "rdp": "🖥️",
        "ms-wbt-server": "🖥️",
    }
)


class RiskLevel(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _RISK_RANKS[self]

    @property
    def label(self) -> str:
        return self.value.upper()


_RISK_RANKS = {
    RiskLevel.LOW: 1,
    RiskLevel.MEDIUM: 2,
    RiskLevel.HIGH: 3,
    RiskLevel.CRITICAL: 4,
}

DEFAULT_RISK_TABLE: Mapping[str, RiskLevel] = MappingProxyType(
    {
        "telnet": RiskLevel.CRITICAL,
        "rlogin": RiskLevel.CRITICAL,
        "rsh": RiskLevel.CRITICAL,
        "ftp": RiskLevel.HIGH,
        "http": RiskLevel.MEDIUM,
    }
)


def load_risk_table(entries: Mapping[str, object]) -> dict[str, RiskLevel]:
    """Validate ``{service_name: level}`` entries into a risk table.

    Service names are matched case-insensitively; levels must name a
    :class:`RiskLevel` value.
    """

    table: dict[str, RiskLevel] = {}
    for name, level in entries.items():
        key = str(name).strip().lower()
        if not key:
            raise ValueError("Risk table entries need a non-empty service name")
        try:
            table[key] = RiskLevel(str(level).strip().lower())
        except ValueError as exc:
            allowed = ", ".join(item.value for item in RiskLevel)
            raise ValueError(
                f"Unknown risk level {level!r} for service {name!r}; expected one of {allowed}"
            ) from exc
    return table


@dataclass(frozen=True)
class PortView:
    port_label: str
    protocol_label: str
    state_label: str
    state_class: str
    state_indicator: str
    service_label: str
    service_icon: str
    product_label: str
    risk: Optional[RiskLevel]
    has_scripts: bool


@dataclass(frozen=True)
class ViewFields:
    display_address: str
    display_hostname: str
    status_class: str
    status_indicator: str
    status_label: str
    ports: tuple[PortView, ...]
    port_count: int
    open_port_count: int
    script_port_count: int
    highest_risk: Optional[RiskLevel]


def classify_status(state: str) -> str:
    return STATUS_UP if state == "up" else STATUS_DOWN


def classify_port_state(state: str) -> str:
    if state == "open":
        return STATE_SUCCESS
    if state == "closed":
        return STATE_FAILURE
    return STATE_CAUTION


def _product_label(port: Port) -> str:
    service = port.service
    if not service.product:
        return PLACEHOLDER
    label = service.product
    if service.version:
        label = f"{label} {service.version}"
    if service.extrainfo:
        label = f"{label} ({service.extrainfo})"
    return label


class ViewProjector:
    """Map hosts to :class:`ViewFields` using an injected risk table."""

    def __init__(self, risk_table: Mapping[str, RiskLevel] = DEFAULT_RISK_TABLE) -> None:
        self.risk_table: Mapping[str, RiskLevel] = MappingProxyType(
            {str(name).lower(): RiskLevel(level) for name, level in risk_table.items()}
        )

    def risk_for(self, service_name: str) -> Optional[RiskLevel]:
        if not service_name:
            return None
        return self.risk_table.get(service_name.lower())

    def project_port(self, port: Port) -> PortView:
        state_class = classify_port_state(port.state.state)
        name = port.service.name
        return PortView(
            port_label=str(port.portid) if port.portid is not None else PLACEHOLDER,
            protocol_label=port.protocol or PLACEHOLDER,
            state_label=port.state.state or PLACEHOLDER,
            state_class=state_class,
            state_indicator=STATE_INDICATORS[state_class],
            service_label=name or PLACEHOLDER,
            service_icon=SERVICE_ICONS.get(name.lower(), DEFAULT_SERVICE_ICON) if name else "",
            product_label=_product_label(port),
            risk=self.risk_for(name),
            has_scripts=bool(port.scripts),
        )

    def project(self, host: Host) -> ViewFields:
        status_class = classify_status(host.status.state)
        ports = tuple(self.project_port(port) for port in host.ports)
        risks = [view.risk for view in ports if view.risk is not None]
        hostname = host.hostnames[0].name if host.hostnames else ""
        return ViewFields(
            display_address=host.canonical_address or PLACEHOLDER,
            display_hostname=hostname or PLACEHOLDER,
            status_class=status_class,
            status_indicator=STATUS_INDICATORS[status_class],
            status_label=host.status.state or PLACEHOLDER,
            ports=ports,
            port_count=len(ports),
            open_port_count=sum(1 for view in ports if view.state_class == STATE_SUCCESS),
            script_port_count=sum(1 for view in ports if view.has_scripts),
            highest_risk=max(risks, key=lambda level: level.rank) if risks else None,
        )


__all__ = [
    "DEFAULT_RISK_TABLE",
    "DEFAULT_SERVICE_ICON",
    "PLACEHOLDER",
    "PortView",
    "RiskLevel",
    "SERVICE_ICONS",
    "STATE_INDICATORS",
    "STATUS_INDICATORS",
    "ViewFields",
    "ViewProjector",
    "classify_port_state",
    "classify_status",
    "load_risk_table",
]
