"""Streaming reader for Nmap XML output.

The reader walks the document once with ``iterparse``. Scan metadata comes
from the attributes of the ``<nmaprun>`` start tag, then the same event stream
continues into the ``<host>`` elements. Each host element is converted into an
immutable :class:`~nmaphtml.models.Host`, cleared and detached from the tree,
so memory stays bounded by the largest single host rather than the document.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from typing import BinaryIO, Optional
from xml.etree.ElementTree import Element
from xml.etree.ElementTree import ParseError as XMLSyntaxError

from defusedxml import ElementTree as DefusedET
from defusedxml.common import DefusedXmlException

from .models import (
    Address,
    Host,
    HostStatus,
    Hostname,
    Port,
    PortState,
    ScanMetadata,
    Script,
    Service,
)

LOGGER = logging.getLogger(__name__)

ROOT_TAG = "nmaprun"
HOST_TAG = "host"

__all__ = ["ParseError", "iter_hosts", "open_scan"]


class ParseError(ValueError):
    """Raised when the input is not a well-formed Nmap XML document."""

    def __init__(
        self,
        message: str,
        *,
        position: Optional[tuple[int, int]] = None,
        host_index: Optional[int] = None,
    ) -> None:
        self.cause = message
        self.position = position
        self.host_index = host_index
        super().__init__(self._describe())

    def _describe(self) -> str:
        parts: list[str] = []
        if self.position is not None:
            line, column = self.position
            parts.append(f"line {line}, column {column}")
        if self.host_index is not None:
            parts.append(f"host #{self.host_index}")
        if not parts:
            return self.cause
        return f"{self.cause} ({'; '.join(parts)})"


def _from_syntax_error(exc: XMLSyntaxError, host_index: Optional[int]) -> ParseError:
    position = getattr(exc, "position", None)
    message = str(exc)
    # expat appends ": line X, column Y" to the message; position carries it already.
    if position is not None and ": line " in message:
        message = message.split(": line ", 1)[0]
    return ParseError(f"Malformed XML: {message}", position=position, host_index=host_index)


def _metadata(attributes: Mapping[str, str]) -> ScanMetadata:
    return ScanMetadata(
        scanner=attributes.get("scanner", ""),
        args=attributes.get("args", ""),
        start=attributes.get("start", ""),
        startstr=attributes.get("startstr", ""),
        version=attributes.get("version", ""),
    )


def _portid(raw: Optional[str], host_index: int) -> Optional[int]:
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise ParseError(
            f"Port element has a non-numeric portid {raw!r}", host_index=host_index
        ) from exc


def _port(element: Element, host_index: int) -> Port:
    state_node = element.find("state")
    service_node = element.find("service")
    state = PortState()
    if state_node is not None:
        state = PortState(
            state=state_node.get("state", ""),
            reason=state_node.get("reason", ""),
        )
    service = Service()
    if service_node is not None:
        service = Service(
            name=service_node.get("name", ""),
            product=service_node.get("product", ""),
            version=service_node.get("version", ""),
            extrainfo=service_node.get("extrainfo", ""),
        )
    scripts = tuple(
        Script(id=node.get("id", ""), output=node.get("output", ""))
        for node in element.findall("script")
    )
    return Port(
        protocol=element.get("protocol", ""),
        portid=_portid(element.get("portid"), host_index),
        state=state,
        service=service,
        scripts=scripts,
    )


def _host(element: Element, host_index: int) -> Host:
    status_node = element.find("status")
    status = HostStatus()
    if status_node is not None:
        status = HostStatus(
            state=status_node.get("state", ""),
            reason=status_node.get("reason", ""),
        )
    return Host(
        addresses=tuple(
            Address(addr=node.get("addr", ""), addrtype=node.get("addrtype", ""))
            for node in element.findall("address")
        ),
        hostnames=tuple(
            Hostname(name=node.get("name", ""), type=node.get("type", ""))
            for node in element.findall("hostnames/hostname")
        ),
        status=status,
        ports=tuple(_port(node, host_index) for node in element.findall("ports/port")),
    )


def _hosts(events: Iterator[tuple[str, Element]], root: Element) -> Iterator[Host]:
    depth = 1
    index = 0
    try:
        for event, element in events:
            if event == "start":
                depth += 1
                continue
            depth -= 1
            if element.tag == HOST_TAG:
                host = _host(element, index)
                LOGGER.debug("Parsed host #%d (%s)", index, host.canonical_address)
                index += 1
                yield host
                element.clear()
            if depth == 1:
                root.remove(element)
    except XMLSyntaxError as exc:
        raise _from_syntax_error(exc, index) from exc
    except DefusedXmlException as exc:
        raise ParseError(f"Forbidden XML construct: {exc}", host_index=index) from exc
    LOGGER.debug("Reached end of scan after %d host(s)", index)


def open_scan(source: BinaryIO) -> tuple[ScanMetadata, Iterator[Host]]:
    """Read the root start tag of ``source`` and return its metadata and host stream.

    The host iterator continues the same single pass over ``source``; it must be
    consumed before the stream is closed.
    """

    events = DefusedET.iterparse(source, events=("start", "end"))
    try:
        _, root = next(events)
    except StopIteration as exc:  # pragma: no cover - expat reports empty input itself
        raise ParseError("Input contains no XML elements") from exc
    except XMLSyntaxError as exc:
        raise _from_syntax_error(exc, None) from exc
    except DefusedXmlException as exc:
        raise ParseError(f"Forbidden XML construct: {exc}") from exc

    if root.tag != ROOT_TAG:
        raise ParseError(f"Expected <{ROOT_TAG}> root element, found <{root.tag}>")

    metadata = _metadata(root.attrib)
    LOGGER.debug("Scan metadata: scanner=%s args=%s", metadata.scanner, metadata.args)
    return metadata, _hosts(events, root)


def iter_hosts(source: BinaryIO) -> Iterator[Host]:
    """Yield the hosts of ``source`` in document order, ignoring metadata."""

    _, hosts = open_scan(source)
    yield from hosts
