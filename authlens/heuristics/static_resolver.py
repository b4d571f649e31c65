"""Static snippet resolution: locates components in parsed markup when no live page exists."""

from __future__ import annotations

import logging
import re
from typing import Optional

from bs4 import BeautifulSoup, Tag

from authlens.heuristics.containment import (
    find_container,
    is_gross_container,
    lowest_common_ancestor,
    text_length,
)
from authlens.heuristics.sanitizer import serialize
from authlens.heuristics.scorer import ScoredElement, attribute_values, collect_hits, rank
from authlens.models.auth_component import AuthComponent
from authlens.models.config import LimitConfig
from authlens.resolver.snippet_resolver import failed_placeholder, truncate

logger = logging.getLogger(__name__)

_PASSWORDLESS_HINTS = {
    "passkey": ("passkey", "webauthn"),
    "magic-link": ("magic link", "magic-link", "magiclink"),
    "otp": ("one-time", "one time", "otp"),
}


def _password_form(soup: Tag) -> Optional[Tag]:
    field = soup.select_one('form input[type="password" i]')
    return field.find_parent("form") if field else None


def _clickable(element: Tag) -> Tag:
    if element.name in ("button", "a"):
        return element
    return element.find_parent(["button", "a"]) or element


class StaticResolver:
    """Resolves components against a BeautifulSoup tree.

    Scoring happens once per document; every component reuses the hits.
    """

    def __init__(self, soup: BeautifulSoup, limits: Optional[LimitConfig] = None):
        self.soup = soup
        self.limits = limits or LimitConfig()
        self._hits: Optional[list[ScoredElement]] = None

    @classmethod
    def from_markup(cls, markup: str, limits: Optional[LimitConfig] = None) -> StaticResolver:
        return cls(BeautifulSoup(markup, "html.parser"), limits)

    @property
    def hits(self) -> list[ScoredElement]:
        if self._hits is None:
            self._hits = collect_hits(self.soup, self.limits.min_score)
        return self._hits

    def _snippet(self, element: Tag) -> str:
        return truncate(serialize(element, self.limits.svg_max), self.limits.max_snippet)

    def locate_traditional(self) -> Optional[Tag]:
        form = _password_form(self.soup)
        if form is not None:
            return form
        candidates = [h for h in self.hits if h.type == "traditional"] or [
            h for h in self.hits if h.type == "action"
        ]
        if not candidates:
            return None
        best = rank(candidates)[0]
        return find_container(best.element, self.limits.single_container_text) or best.element

    def locate_oauth(self, providers: list[str]) -> Optional[Tag]:
        hits = [h for h in self.hits if h.type == "oauth" and (not providers or h.brand in providers)]
        if not hits:
            return None
        if len(hits) > 1:
            block = lowest_common_ancestor([h.element for h in hits])
            if (
                block is not None
                and not is_gross_container(block)
                and text_length(block) < self.limits.oauth_block_text
            ):
                return block
        return _clickable(rank(hits)[0].element)

    def locate_passwordless(self, method: str) -> Optional[Tag]:
        hints = _PASSWORDLESS_HINTS.get(method, (method,) if method else ())
        pattern = re.compile("|".join(re.escape(h) for h in hints), re.IGNORECASE) if hints else None

        if pattern is not None:
            for element in self.soup.find_all(["button", "a", "input", "label"]):
                haystack = " ".join(attribute_values(element).values()) + " " + element.get_text(" ", strip=True)
                if pattern.search(haystack):
                    return element

        return self.soup.select_one('input[inputmode="numeric"]') or self.soup.find("webauthn-subtle")

    def locate(self, component: AuthComponent) -> Optional[Tag]:
        if component.type == "traditional":
            return self.locate_traditional()
        if component.type == "oauth":
            return self.locate_oauth(component.details.providers)
        if component.type == "passwordless":
            return self.locate_passwordless(component.details.method)
        return None

    def resolve(self, component: AuthComponent) -> AuthComponent:
        element = self.locate(component)
        if element is None:
            logger.debug("No static match for %s component", component.type)
            return component.with_snippet(failed_placeholder(component))
        return component.with_snippet(self._snippet(element))

    def resolve_all(self, components: list[AuthComponent]) -> list[AuthComponent]:
        return [self.resolve(c) for c in components]
