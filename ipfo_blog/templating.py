"""Jinja2 environment for ipfo_blog templates."""

from __future__ import annotations

from pathlib import Path

import bleach
from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

from .sheets import parse_date

_ENV: Environment | None = None

ALLOWED_TAGS = {
    "a", "b", "blockquote", "br", "code", "em", "figcaption", "figure", "h2",
    "h3", "h4", "hr", "i", "img", "li", "ol", "p", "pre", "strong", "ul",
}
ALLOWED_ATTRS = {
    "a": ["href", "title", "target", "rel"],
    "img": ["src", "alt", "title"],
}


def _format_date(value: str | None, style: str = "short") -> str:
    """Render an ISO date as ``Jan 5, 2024`` (short) or ``January 5, 2024`` (long)."""
    parsed = parse_date(value or "")
    if parsed is None:
        return value or ""
    month = "%b" if style == "short" else "%B"
    return f"{parsed.strftime(month)} {parsed.day}, {parsed.year}"


def _sanitize(value: str | None) -> Markup:
    """Allow a small set of article tags and drop everything else."""
    if not value:
        return Markup("")
    return Markup(
        bleach.clean(value, tags=ALLOWED_TAGS, attributes=ALLOWED_ATTRS, strip=True)
    )


def get_environment() -> Environment:
    """Return a cached Jinja environment configured for package templates."""
    global _ENV
    if _ENV is None:
        template_dir = Path(__file__).parent / "templates"
        loader = FileSystemLoader(str(template_dir))
        _ENV = Environment(
            loader=loader,
            autoescape=select_autoescape(["html", "xml", "html.j2"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        _ENV.filters["format_date"] = _format_date
        _ENV.filters["sanitize"] = _sanitize
    return _ENV
