"""Fragment rendering for nmaphtml reports.

A report is three kinds of fragment: one ``header``, one ``host`` fragment per
scanned host and one ``footer``. Fragments come from a :class:`TemplateSet`,
either the built-in templates shipped with the package or an override given as
a directory of ``<kind>.html.j2`` files or as a single template declaring one
``{% block %}`` per fragment kind. All interpolated values are HTML-escaped.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

from jinja2 import (
    Environment,
    FileSystemLoader,
    StrictUndefined,
    Template,
    TemplateNotFound,
    TemplateSyntaxError,
)
from markupsafe import Markup

from .resources import ResourceError

PACKAGE_DIR = Path(__file__).resolve().parent
PACKAGE_TEMPLATES = PACKAGE_DIR / "templates"
TEMPLATE_SUFFIX = ".html.j2"

FRAGMENT_KINDS: tuple[str, ...] = ("header", "host", "footer")
REQUIRED_FRAGMENTS: tuple[str, ...] = ("header", "host")

LOGGER = logging.getLogger(__name__)

_STYLE_CLOSE = re.compile(r"</(style)", re.IGNORECASE)


class RenderError(RuntimeError):
    """Raised when a fragment cannot be produced from its template."""

    def __init__(
        self,
        message: str,
        *,
        fragment: Optional[str] = None,
        host_index: Optional[int] = None,
        address: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.fragment = fragment
        self.host_index = host_index
        self.address = address


class Fragment(Protocol):
    def render(self, context: Mapping[str, object]) -> str: ...


@dataclass(frozen=True)
class _FileFragment:
    template: Template

    def render(self, context: Mapping[str, object]) -> str:
        return self.template.render(dict(context))


@dataclass(frozen=True)
class _BlockFragment:
    template: Template
    block: str

    def render(self, context: Mapping[str, object]) -> str:
        render_block = self.template.blocks[self.block]
        return "".join(render_block(self.template.new_context(dict(context))))


def _environment(search_path: Path) -> Environment:
    return Environment(
        loader=FileSystemLoader(str(search_path)),
        autoescape=True,
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )


def _syntax_error(source: Path, exc: TemplateSyntaxError) -> ResourceError:
    location = exc.filename or str(source)
    return ResourceError(
        f"Template {location} line {exc.lineno} is invalid: {exc.message}", path=source
    )


@dataclass(frozen=True)
class TemplateSet:
    """The ``header``, ``host`` and ``footer`` fragment templates of a report."""

    source: str
    fragments: Mapping[str, Fragment]

    @classmethod
    def default(cls) -> "TemplateSet":
        return cls._from_directory(PACKAGE_TEMPLATES, source="built-in templates")

    @classmethod
    def from_path(cls, path: Path | str) -> "TemplateSet":
        """Load an override template set from a directory or a single file."""

        location = Path(path)
        if location.is_dir():
            return cls._from_directory(location, source=str(location))
        if location.is_file():
            return cls._from_file(location)
        raise ResourceError(f"Template set {location} does not exist", path=location)

    @classmethod
    def _from_directory(cls, directory: Path, *, source: str) -> "TemplateSet":
        env = _environment(directory)
        fragments: dict[str, Fragment] = {}
        for kind in FRAGMENT_KINDS:
            try:
                template = env.get_template(f"{kind}{TEMPLATE_SUFFIX}")
            except TemplateNotFound:
                continue
            except TemplateSyntaxError as exc:
                raise _syntax_error(directory, exc) from exc
            fragments[kind] = _FileFragment(template)
        LOGGER.debug("Loaded fragments %s from %s", sorted(fragments), source)
        return cls(source=source, fragments=fragments)

    @classmethod
    def _from_file(cls, path: Path) -> "TemplateSet":
        env = _environment(path.parent)
        try:
            template = env.get_template(path.name)
        except TemplateSyntaxError as exc:
            raise _syntax_error(path, exc) from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise ResourceError(f"Unable to read template {path}: {exc}", path=path) from exc
        fragments: dict[str, Fragment] = {
            kind: _BlockFragment(template, kind)
            for kind in FRAGMENT_KINDS
            if kind in template.blocks
        }
        LOGGER.debug("Loaded blocks %s from %s", sorted(fragments), path)
        return cls(source=str(path), fragments=fragments)

    def has(self, kind: str) -> bool:
        return kind in self.fragments

    def missing(self) -> list[str]:
        return [kind for kind in FRAGMENT_KINDS if kind not in self.fragments]


class Renderer:
    """Render fragments of a :class:`TemplateSet` into markup strings."""

    def __init__(self, template_set: TemplateSet) -> None:
        self.template_set = template_set

    def render(self, kind: str, data: Mapping[str, object]) -> str:
        fragment = self.template_set.fragments.get(kind)
        if fragment is None:
            raise RenderError(
                f"Template set '{self.template_set.source}' has no '{kind}' fragment",
                fragment=kind,
            )
        try:
            return fragment.render(data)
        except Exception as exc:
            raise RenderError(
                f"Rendering the '{kind}' fragment failed: {exc}", fragment=kind
            ) from exc


def styling_markup(css: str) -> Markup:
    """Mark ``css`` safe for a ``<style>`` element without letting it close the element."""

    return Markup(_STYLE_CLOSE.sub(lambda match: "<\\/" + match.group(1), css))


__all__ = [
    "FRAGMENT_KINDS",
    "REQUIRED_FRAGMENTS",
    "RenderError",
    "Renderer",
    "TemplateSet",
    "styling_markup",
]
