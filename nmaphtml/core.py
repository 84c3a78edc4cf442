"""High-level orchestration of one scan-to-report conversion."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import BinaryIO, Optional, TextIO

from . import __version__
from .models import Host, ScanMetadata
from .parser import open_scan
from .projector import DEFAULT_RISK_TABLE, STATUS_UP, ViewFields, ViewProjector
from .renderer import REQUIRED_FRAGMENTS, RenderError, Renderer, TemplateSet, styling_markup
from .resources import (
    DEFAULT_OUTPUT,
    ResourceError,
    load_stylesheet,
    open_input,
    open_output,
    read_risk_table,
)

LOGGER = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _local_now() -> datetime:
    return datetime.now().astimezone()


@dataclass(frozen=True)
class ScanTotals:
    hosts: int = 0
    up: int = 0
    down: int = 0
    ports: int = 0
    open_ports: int = 0
    script_ports: int = 0

    def add(self, view: ViewFields) -> "ScanTotals":
        is_up = view.status_class == STATUS_UP
        return ScanTotals(
            hosts=self.hosts + 1,
            up=self.up + (1 if is_up else 0),
            down=self.down + (0 if is_up else 1),
            ports=self.ports + view.port_count,
            open_ports=self.open_ports + view.open_port_count,
            script_ports=self.script_ports + view.script_port_count,
        )


@dataclass(frozen=True)
class AssemblyResult:
    metadata: ScanMetadata
    totals: ScanTotals
    footer_written: bool


def _document_context(
    metadata: ScanMetadata, styling_payload: str, generated: datetime
) -> dict[str, object]:
    return {
        "scan": metadata,
        "styling": styling_markup(styling_payload),
        "generated": generated,
        "version": __version__,
    }


def _stream_name(stream: object, default: str) -> str:
    name = getattr(stream, "name", None)
    return name if isinstance(name, str) else default


def _write(sink: TextIO, markup: str) -> None:
    try:
        sink.write(markup)
    except OSError as exc:
        name = _stream_name(sink, "output")
        raise ResourceError(f"Unable to write report to {name}: {exc}", path=name) from exc


def _read_error(source: BinaryIO, exc: OSError) -> ResourceError:
    name = _stream_name(source, "input")
    return ResourceError(f"Unable to read scan from {name}: {exc}", path=name)


def _checked_hosts(hosts: Iterator[Host], source: BinaryIO) -> Iterator[Host]:
    try:
        yield from hosts
    except OSError as exc:
        raise _read_error(source, exc) from exc


def _render_host(renderer: Renderer, index: int, host: Host, view: ViewFields) -> str:
    try:
        return renderer.render("host", {"host": host, "view": view, "index": index})
    except RenderError as exc:
        address = host.canonical_address or "unknown address"
        raise RenderError(
            f"Host #{index} ({address}) could not be rendered: {exc}",
            fragment="host",
            host_index=index,
            address=host.canonical_address,
        ) from exc


def assemble(
    input_stream: BinaryIO,
    output_sink: TextIO,
    styling_payload: str,
    template_set: TemplateSet,
    *,
    projector: Optional[ViewProjector] = None,
    clock: Clock = _local_now,
) -> AssemblyResult:
    """Stream ``input_stream`` into a report written to ``output_sink``.

    Exactly one header precedes the host fragments and at most one footer
    follows them. Host fragments are written as soon as they are rendered,
    in input order. Output already written stays in place when a later step
    fails.
    """

    missing = [kind for kind in REQUIRED_FRAGMENTS if not template_set.has(kind)]
    if missing:
        raise RenderError(
            f"Template set '{template_set.source}' is missing required fragment(s): "
            + ", ".join(missing),
            fragment=missing[0],
        )
    has_footer = template_set.has("footer")
    if not has_footer:
        LOGGER.warning(
            "Template set '%s' has no footer fragment; the report will end after the last host.",
            template_set.source,
        )

    projector = projector or ViewProjector(DEFAULT_RISK_TABLE)
    renderer = Renderer(template_set)

    try:
        metadata, hosts = open_scan(input_stream)
    except OSError as exc:
        raise _read_error(input_stream, exc) from exc
    context = _document_context(metadata, styling_payload, clock())
    _write(output_sink, renderer.render("header", context))

    totals = ScanTotals()
    for index, host in enumerate(_checked_hosts(hosts, input_stream)):
        view = projector.project(host)
        _write(output_sink, _render_host(renderer, index, host, view))
        totals = totals.add(view)

    LOGGER.info(
        "Rendered %d host(s) with %d port(s), %d open",
        totals.hosts,
        totals.ports,
        totals.open_ports,
    )

    if has_footer:
        _write(output_sink, renderer.render("footer", {**context, "totals": totals}))
    return AssemblyResult(metadata=metadata, totals=totals, footer_written=has_footer)


def convert(
    input_path: Optional[Path | str] = None,
    output_path: Optional[Path | str] = DEFAULT_OUTPUT,
    *,
    stylesheet_path: Optional[Path | str] = None,
    template_path: Optional[Path | str] = None,
    risk_table_path: Optional[Path | str] = None,
    clock: Clock = _local_now,
) -> AssemblyResult:
    """Convert the scan at ``input_path`` into the report at ``output_path``.

    Override resources are loaded before any input is read. ``None`` or ``-``
    selects standard input for ``input_path`` and ``-`` standard output for
    ``output_path``.
    """

    styling = load_stylesheet(stylesheet_path)
    template_set = (
        TemplateSet.from_path(template_path) if template_path else TemplateSet.default()
    )
    risk_table = read_risk_table(risk_table_path) if risk_table_path else DEFAULT_RISK_TABLE
    projector = ViewProjector(risk_table)

    LOGGER.info(
        "Converting %s into %s", input_path or "standard input", output_path or "standard output"
    )
    with open_input(input_path) as source, open_output(output_path) as sink:
        return assemble(
            source,
            sink,
            styling,
            template_set,
            projector=projector,
            clock=clock,
        )


__all__ = ["AssemblyResult", "ScanTotals", "assemble", "convert"]
