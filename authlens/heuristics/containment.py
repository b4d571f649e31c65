"""Container resolution: finds the element that bounds an auth widget.

Two strategies:

* ``find_container`` walks up from one high-scoring element to the nearest
  form, auth-named block or landmark.
* ``resolve_common_container`` computes the lowest common ancestor of many
  hit elements, so a credential form and sibling OAuth buttons under one
  panel come out as a single snippet.

Both refuse containers whose text is larger than a ceiling; an oversized
container means "not found", never "the whole page".
"""

from __future__ import annotations

import logging
import re
from typing import Optional, Sequence

from bs4 import BeautifulSoup, Tag

logger = logging.getLogger(__name__)

SINGLE_CONTAINER_MAX_TEXT = 10000
PAGE_CONTAINER_MAX_TEXT = 15000

_CONTAINER_KEYWORDS = re.compile(r"login|log-in|signin|sign-in|auth|form", re.IGNORECASE)
_LANDMARK_TAGS = ("section", "main")
_LANDMARK_ROLES = ("dialog", "main")
_GROSS_CONTAINERS = ("[document]", "html", "body", "main")
_BLIND_ASCENT_LEVELS = 3


def text_length(element: Tag) -> int:
    return len(element.get_text())


def _is_keyword_container(element: Tag) -> bool:
    classes = element.get("class") or []
    if isinstance(classes, str):
        classes = [classes]
    haystack = " ".join(classes) + " " + (element.get("id") or "")
    return bool(_CONTAINER_KEYWORDS.search(haystack))


def _is_landmark(element: Tag) -> bool:
    return element.name in _LANDMARK_TAGS or element.get("role") in _LANDMARK_ROLES


def _real_parents(element: Tag):
    for parent in element.parents:
        if isinstance(parent, BeautifulSoup):
            return
        yield parent


def find_container(
    element: Tag,
    max_text: int = SINGLE_CONTAINER_MAX_TEXT,
) -> Optional[Tag]:
    """Resolve the widget container for a single best element."""
    container = element.find_parent("form")

    if container is None:
        for parent in _real_parents(element):
            if _is_keyword_container(parent) or _is_landmark(parent):
                container = parent
                break

    if container is None:
        ancestors = list(_real_parents(element))
        if ancestors:
            container = ancestors[min(_BLIND_ASCENT_LEVELS, len(ancestors)) - 1]

    if container is None:
        return None

    if text_length(container) > max_text:
        logger.debug("Container <%s> rejected: %d chars of text exceeds %d",
                     container.name, text_length(container), max_text)
        return None
    return container


def ancestor_chain(element: Tag) -> list[Tag]:
    """Ancestors of *element* ordered root first, excluding the element."""
    chain = list(element.parents)
    chain.reverse()
    return chain


def lowest_common_ancestor(elements: Sequence[Tag]) -> Optional[Tag]:
    """Deepest node that is an ancestor of every element.

    A single element resolves to its parent. When one element contains all
    the others, that element is the result.
    """
    if not elements:
        return None
    if len(elements) == 1:
        return elements[0].parent

    chains = [ancestor_chain(el) + [el] for el in elements]
    common: Optional[Tag] = None
    for depth in range(min(len(c) for c in chains)):
        candidate = chains[0][depth]
        if all(c[depth] is candidate for c in chains[1:]):
            common = candidate
        else:
            break
    return common


def is_gross_container(element: Tag) -> bool:
    return isinstance(element, BeautifulSoup) or element.name in _GROSS_CONTAINERS


def resolve_common_container(
    elements: Sequence[Tag],
    max_text: int = PAGE_CONTAINER_MAX_TEXT,
) -> Optional[Tag]:
    """LCA of the hits, or None when it is the page itself or too large."""
    lca = lowest_common_ancestor(elements)
    if lca is None:
        return None
    if is_gross_container(lca):
        logger.debug("LCA rejected: <%s> is a top-level container", lca.name)
        return None
    length = text_length(lca)
    if length > max_text:
        logger.debug("LCA rejected: <%s> has %d chars of text (max %d)", lca.name, length, max_text)
        return None
    return lca
