"""Page content variants handed to the renderer.

A page is either raw markup or a structured record rendered through a
template. Untyped mappings are rejected so that bad content fails at the
boundary instead of inside the browser.
"""

from __future__ import annotations

import html
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Union

from .exceptions import ContentSourceError
from .templating import render_template

LOCAL_CONTENT_PLACEHOLDER = "{{LOCAL_CONTENT}}"


@dataclass(frozen=True, slots=True)
class RawMarkup:
    """Pre-rendered HTML for one page."""

    markup: str

    def to_markup(self) -> str:
        return self.markup


@dataclass(frozen=True, slots=True)
class StructuredRecord:
    """A titled set of fields rendered into a page via a template."""

    title: str
    fields: Mapping[str, Any] = field(default_factory=dict)
    template: str = "record.html.jinja"

    def to_markup(self) -> str:
        return render_template(self.template, title=self.title, fields=dict(self.fields))


PageContent = Union[RawMarkup, StructuredRecord]


def coerce_page_content(value: object) -> PageContent:
    """Return *value* as a :data:`PageContent` variant."""

    if isinstance(value, (RawMarkup, StructuredRecord)):
        return value
    if isinstance(value, str):
        return RawMarkup(value)
    raise ContentSourceError(
        f"Unsupported page content of type {type(value).__name__}; "
        "expected str, RawMarkup or StructuredRecord"
    )


def coerce_pages(values: Iterable[object]) -> list[PageContent]:
    return [coerce_page_content(value) for value in values]


def escape_html(text: str) -> str:
    return html.escape(text, quote=False)


def inject_content(
    template: str,
    content: str,
    placeholder: str = LOCAL_CONTENT_PLACEHOLDER,
) -> str:
    """Replace the first *placeholder* in *template* with escaped *content*."""

    return template.replace(placeholder, escape_html(content), 1)


__all__ = [
    "LOCAL_CONTENT_PLACEHOLDER",
    "RawMarkup",
    "StructuredRecord",
    "PageContent",
    "coerce_page_content",
    "coerce_pages",
    "escape_html",
    "inject_content",
]
