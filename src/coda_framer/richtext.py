from __future__ import annotations
from typing import Dict, Set

import markdown
import nh3


ALLOWED_TAGS: Set[str] = {
    "h1", "h2", "h3", "h4", "h5", "h6",
    "p", "a", "ul", "ol", "li", "strong", "em", "img",
    "table", "thead", "tbody", "tr", "th", "td",
    "blockquote", "code", "pre", "br", "hr", "span",
}

ALLOWED_ATTRIBUTES: Dict[str, Set[str]] = {
    "a": {"href", "name", "target", "rel"},
    "img": {"src", "alt", "title", "width", "height"},
    "th": {"colspan", "rowspan", "style"},
    "td": {"colspan", "rowspan", "style"},
    "span": {"style"},
    "p": {"style"},
    "table": {"style"},
    "tr": {"style"},
    "thead": {"style"},
    "tbody": {"style"},
}

ALLOWED_SCHEMES: Set[str] = {"http", "https", "mailto"}

MARKDOWN_EXTENSIONS = ["tables", "fenced_code", "sane_lists"]


def markdown_to_html(text: str) -> str:
    return markdown.markdown(text or "", extensions=MARKDOWN_EXTENSIONS)


def sanitize_html(html: str) -> str:
    # link_rel must be None while "rel" is an allowed attribute on <a>
    return nh3.clean(
        html,
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        url_schemes=ALLOWED_SCHEMES,
        link_rel=None,
    )


def markdown_to_sanitized_html(text: str) -> str:
    """Render canvas/rich-text Markdown to HTML limited to what Framer formatted text accepts."""
    return sanitize_html(markdown_to_html(text))
