"""Configuration helpers and .env loading for nmaphtml."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Iterable, Mapping, Optional

from dotenv import load_dotenv

from .resources import DEFAULT_OUTPUT

DEFAULT_ENV_FILES: tuple[Path, ...] = (
    Path(".env"),
    Path("config/.env"),
)


@lru_cache(maxsize=1)
def load_environment(*, extra_files: Iterable[Path] | None = None) -> dict[str, str]:
    """Load environment variables from .env files once per process."""

    candidates = list(DEFAULT_ENV_FILES)
    if extra_files:
        candidates = [*candidates, *extra_files]

    for path in candidates:
        try:
            if path.exists():
                load_dotenv(path, override=False)
        except OSError:
            continue

    load_dotenv(override=False)
    return dict(os.environ)


def _optional_path(value: Optional[str]) -> Optional[Path]:
    if value is None or not value.strip():
        return None
    return Path(value.strip()).expanduser()


@dataclass(frozen=True)
class Settings:
    """Defaults for the command line, taken from ``NMAPHTML_*`` variables."""

    output: str = DEFAULT_OUTPUT
    stylesheet: Optional[Path] = None
    templates: Optional[Path] = None
    risk_table: Optional[Path] = None
    log_file: Optional[Path] = None

    @classmethod
    def from_environment(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            output=(env.get("NMAPHTML_OUT") or "").strip() or DEFAULT_OUTPUT,
            stylesheet=_optional_path(env.get("NMAPHTML_CSS")),
            templates=_optional_path(env.get("NMAPHTML_TPL")),
            risk_table=_optional_path(env.get("NMAPHTML_RISK_TABLE")),
            log_file=_optional_path(env.get("NMAPHTML_LOG_FILE")),
        )


__all__ = ["DEFAULT_ENV_FILES", "Settings", "load_environment"]
