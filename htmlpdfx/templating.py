"""Jinja2 environment for the HTML templates shipped with htmlpdfx."""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from jinja2 import Environment, PackageLoader, StrictUndefined, select_autoescape


@lru_cache(maxsize=1)
def get_environment() -> Environment:
    return Environment(
        loader=PackageLoader("htmlpdfx", "templates"),
        autoescape=select_autoescape(["html", "jinja"]),
        # Catches silent failures
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def render_template(name: str, **context: Any) -> str:
    return get_environment().get_template(name).render(**context)


__all__ = ["get_environment", "render_template"]
