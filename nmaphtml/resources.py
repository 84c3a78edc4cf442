"""Loading of input, output and override resources."""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Optional, TextIO

from .projector import RiskLevel, load_risk_table

LOGGER = logging.getLogger(__name__)

PACKAGE_DIR = Path(__file__).resolve().parent
STATIC_DIR = PACKAGE_DIR / "static"
DEFAULT_STYLESHEET = STATIC_DIR / "report.css"
DEFAULT_OUTPUT = "nmap.html"
STDIO_MARKER = "-"


class ResourceError(RuntimeError):
    """Raised when an input, output or override file cannot be used."""

    def __init__(self, message: str, *, path: Optional[Path | str] = None) -> None:
        super().__init__(message)
        self.path = path


def _is_stdio(path: Optional[Path | str]) -> bool:
    return path is None or str(path) == STDIO_MARKER


def load_stylesheet(path: Optional[Path | str] = None) -> str:
    """Return the styling payload from ``path`` or the built-in stylesheet."""

    source = Path(path) if path is not None else DEFAULT_STYLESHEET
    try:
        css = source.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ResourceError(f"Unable to read stylesheet {source}: {exc}", path=source) from exc
    LOGGER.debug("Loaded stylesheet %s (%d characters)", source, len(css))
    return css


def read_risk_table(path: Path | str) -> dict[str, RiskLevel]:
    """Read a JSON object mapping service names to risk levels."""

    source = Path(path)
    try:
        raw = json.loads(source.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as exc:
        raise ResourceError(f"Unable to read risk table {source}: {exc}", path=source) from exc
    except json.JSONDecodeError as exc:
        raise ResourceError(f"Risk table {source} is not valid JSON: {exc}", path=source) from exc
    if not isinstance(raw, dict):
        raise ResourceError(
            f"Risk table {source} must be a JSON object of service names to levels",
            path=source,
        )
    try:
        table = load_risk_table(raw)
    except ValueError as exc:
        raise ResourceError(f"Risk table {source} is invalid: {exc}", path=source) from exc
    LOGGER.debug("Loaded %d risk table entries from %s", len(table), source)
    return table


@contextmanager
def open_input(path: Optional[Path | str]) -> Iterator[BinaryIO]:
    """Yield a binary stream for ``path``; standard input for ``None`` or ``-``."""

    if _is_stdio(path):
        LOGGER.debug("Reading scan from standard input")
        yield sys.stdin.buffer
        return
    source = Path(path)
    try:
        handle = source.open("rb")
    except OSError as exc:
        raise ResourceError(f"Unable to open input {source}: {exc}", path=source) from exc
    with handle:
        yield handle


def _flush(stream: TextIO, path: Path | str) -> None:
    try:
        stream.flush()
    except OSError as exc:
        raise ResourceError(f"Unable to write output {path}: {exc}", path=path) from exc


@contextmanager
def open_output(path: Optional[Path | str]) -> Iterator[TextIO]:
    """Yield a text sink for ``path``; standard output for ``None`` or ``-``."""

    if _is_stdio(path):
        yield sys.stdout
        _flush(sys.stdout, "standard output")
        return
    target = Path(path)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        handle = target.open("w", encoding="utf-8")
    except OSError as exc:
        raise ResourceError(f"Unable to create output {target}: {exc}", path=target) from exc
    finished = False
    try:
        yield handle
        _flush(handle, target)
        finished = True
    finally:
        try:
            handle.close()
        except OSError as exc:
            if finished:
                raise ResourceError(f"Unable to finish output {target}: {exc}", path=target) from exc
            # The original failure is already propagating.
            LOGGER.debug("Closing %s after a failed write also failed: %s", target, exc)


__all__ = [
    "DEFAULT_OUTPUT",
    "DEFAULT_STYLESHEET",
    "ResourceError",
    "load_stylesheet",
    "open_input",
    "open_output",
    "read_risk_table",
]
