"""Snippet sanitization: strips non-visual nodes from a detached DOM clone."""

from __future__ import annotations

import copy
import logging
import re

from bs4 import BeautifulSoup, Comment, Tag

logger = logging.getLogger(__name__)

STRIPPED_TAGS = ("script", "style", "noscript", "iframe", "link", "meta", "template", "head")
DATA_URI_PLACEHOLDER = "#asset-data"
DEFAULT_SVG_MAX = 2000


def sanitize(element: Tag, svg_max: int = DEFAULT_SVG_MAX) -> Tag:
    """Return a sanitized, detached copy of *element*.

    The input element and the document it belongs to are left untouched.
    """
    clone = copy.copy(element)
    _sanitize_in_place(clone, svg_max)
    return clone


def sanitize_markup(markup: str, svg_max: int = DEFAULT_SVG_MAX) -> str:
    """Sanitize a serialized HTML fragment and return it re-serialized."""
    if not markup:
        return markup
    fragment = BeautifulSoup(markup, "html.parser")
    _sanitize_in_place(fragment, svg_max)
    return str(fragment)


def serialize(element: Tag, svg_max: int = DEFAULT_SVG_MAX) -> str:
    """Sanitize a copy of *element* and serialize it."""
    return str(sanitize(element, svg_max))


# Single-URL attributes that may carry an inline image payload
_URL_ATTRS = {"img": ("src",), "source": ("src",), "image": ("href", "xlink:href")}
_SRCSET_DATA = re.compile(r"data:[^,\s]*,[^\s,]*", re.IGNORECASE)
_STYLE_DATA = re.compile(r"url\(\s*['\"]?\s*data:[^)]*\)", re.IGNORECASE)
_PRESERVE_WHITESPACE = ("pre", "textarea")


def _sanitize_in_place(root: Tag, svg_max: int) -> None:
    for comment in root.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()

    for tag in root.find_all(STRIPPED_TAGS):
        tag.extract()

    for svg in root.find_all("svg"):
        if len(str(svg)) > svg_max:
            svg.extract()

    _scrub_data_uris(root)
    _collapse_whitespace(root)


def _scrub_data_uris(root: Tag) -> None:
    for node in root.find_all(list(_URL_ATTRS)):
        for attr in _URL_ATTRS[node.name]:
            value = node.get(attr) or ""
            if value.strip().lower().startswith("data:"):
                node[attr] = DATA_URI_PLACEHOLDER

    # Every srcset candidate, not just the first
    for node in root.find_all(srcset=_SRCSET_DATA):
        node["srcset"] = _SRCSET_DATA.sub(DATA_URI_PLACEHOLDER, node["srcset"])

    for node in root.find_all(style=_STYLE_DATA):
        node["style"] = _STYLE_DATA.sub(f"url({DATA_URI_PLACEHOLDER})", node["style"])


def _collapse_whitespace(root: Tag) -> None:
    """Merge the text left around removed nodes so a second pass is a no-op."""
    root.smooth()
    for text in root.find_all(string=True):
        if text.strip() or text.find_parent(_PRESERVE_WHITESPACE) is not None:
            continue
        collapsed = "\n" if "\n" in text else " "
        if text != collapsed:
            text.replace_with(collapsed)
