"""Command-line interface for nmaphtml."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Iterable, Optional

from rich.console import Console

from . import __version__
from .config import Settings, load_environment
from .core import convert
from .logging_utils import configure_logging
from .parser import ParseError
from .renderer import RenderError
from .resources import ResourceError

EPILOG = """examples:
  nmaphtml --xml scan-results.xml
  nmaphtml --xml scan.xml --out report.html
  cat scan.xml | nmaphtml --out report.html
"""


def build_parser(settings: Optional[Settings] = None) -> argparse.ArgumentParser:
    settings = settings or Settings()
    parser = argparse.ArgumentParser(
        prog="nmaphtml",
        description="Convert Nmap XML scan results into a self-contained interactive HTML report.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--xml", type=Path, help="Input Nmap XML file (default: standard input)")
    parser.add_argument(
        "--out",
        default=settings.output,
        help=f"Output HTML file, '-' for standard output (default: {settings.output})",
    )
    parser.add_argument(
        "--css", type=Path, default=settings.stylesheet, help="Custom stylesheet replacing the built-in one"
    )
    parser.add_argument(
        "--tpl",
        type=Path,
        default=settings.templates,
        help="Custom template set: a directory of header/host/footer templates or a single file with those blocks",
    )
    parser.add_argument(
        "--risk-table",
        type=Path,
        default=settings.risk_table,
        help="JSON object mapping service names to risk levels (critical, high, medium, low)",
    )
    parser.add_argument("--log-file", type=Path, default=settings.log_file, help="Write logs to the specified path")
    parser.add_argument("--log-json", action="store_true", help="Emit structured JSON logs to the log file")

    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("--verbose", action="store_true", help="Enable debug logging")
    verbosity.add_argument("--quiet", action="store_true", help="Reduce logging output")
    return parser


def parse_args(argv: Optional[Iterable[str]] = None) -> argparse.Namespace:
    parser = build_parser(Settings.from_environment())
    return parser.parse_args(None if argv is None else list(argv))


def configure_cli_logging(args: argparse.Namespace) -> None:
    level = logging.INFO
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.WARNING
    configure_logging(level=level, json_logs=args.log_json, logfile=args.log_file)


def _stdin_is_interactive() -> bool:
    return sys.stdin is not None and sys.stdin.isatty()


def main(argv: Optional[Iterable[str]] = None) -> int:
    load_environment()
    arguments = list(sys.argv[1:] if argv is None else argv)
    parser = build_parser(Settings.from_environment())

    if not arguments and _stdin_is_interactive():
        parser.print_help()
        return 0

    args = parser.parse_args(arguments)
    configure_cli_logging(args)
    logger = logging.getLogger("nmaphtml.cli")

    try:
        result = convert(
            args.xml,
            args.out,
            stylesheet_path=args.css,
            template_path=args.tpl,
            risk_table_path=args.risk_table,
        )
    except ResourceError as exc:
        logger.error("Resource unavailable: %s", exc)
        return 1
    except ParseError as exc:
        logger.error("Failed to parse scan input: %s", exc)
        return 1
    except RenderError as exc:
        logger.error("Failed to render report: %s", exc)
        return 1

    if args.quiet:
        return 0
    totals = result.totals
    destination = "standard output" if args.out == "-" else args.out
    Console(stderr=True, highlight=False).print(
        f"Report written to {destination}: {totals.hosts} host(s), "
        f"{totals.ports} port(s), {totals.open_ports} open",
        markup=False,
    )
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
