"""Offline heuristic detection: scores the parsed DOM without a browser or AI.

Pipeline:
1. Score every candidate element and keep the hits above the threshold.
2. Build components from the hits (traditional, then oauth).
3. Attach a per-component snippet through :class:`StaticResolver`.
4. Compute one combined widget snippet: the common container of the top
   hits, or labeled traditional and OAuth blocks when that container is
   the page itself.
5. Report the best control per OAuth provider and summary metadata.
"""

from __future__ import annotations

import logging
from typing import Optional

from bs4 import BeautifulSoup, Tag

from authlens.heuristics.containment import (
    find_container,
    is_gross_container,
    lowest_common_ancestor,
    resolve_common_container,
    text_length,
)
from authlens.heuristics.sanitizer import sanitize, serialize
from authlens.heuristics.scorer import ScoredElement, rank
from authlens.heuristics.static_resolver import StaticResolver
from authlens.models.auth_component import (
    AuthComponent,
    ComponentDetails,
    DetectionMetadata,
    DetectionResult,
    OAuthButton,
)
from authlens.models.config import LimitConfig

logger = logging.getLogger(__name__)

NO_COMPONENTS_MESSAGE = "No authentication components detected."

TRADITIONAL_LABEL = "<!-- Traditional Auth -->"
OAUTH_LABEL = "<!-- OAuth / SSO Components -->"


def _unique_brands(hits: list[ScoredElement]) -> list[str]:
    brands: list[str] = []
    for hit in hits:
        if hit.brand and hit.brand not in brands:
            brands.append(hit.brand)
    return brands


def _traditional_fields(hits: list[ScoredElement]) -> list[str]:
    fields: list[str] = []
    for hit in hits:
        if hit.element.name != "input":
            continue
        input_type = (hit.element.get("type") or "").lower()
        name = "password" if input_type == "password" else "email" if input_type == "email" else "username"
        if name not in fields:
            fields.append(name)
    return fields or ["email", "password"]


def build_components(hits: list[ScoredElement]) -> list[AuthComponent]:
    components = []

    traditional = [h for h in hits if h.type == "traditional"] or [h for h in hits if h.type == "action"]
    if traditional:
        components.append(AuthComponent(
            type="traditional",
            details=ComponentDetails(fields=_traditional_fields(traditional)),
        ))

    brands = _unique_brands([h for h in hits if h.type == "oauth"])
    if brands:
        components.append(AuthComponent(type="oauth", details=ComponentDetails(providers=brands)))

    return components


def _clickable(element: Tag) -> Optional[Tag]:
    if element.name in ("button", "a") or element.get("role") == "button":
        return element
    return element.find_parent(["button", "a"])


def oauth_buttons(hits: list[ScoredElement], svg_max: int) -> list[OAuthButton]:
    """The best-scoring clickable control per provider, in first-seen brand order.

    Container hits (a card or a social row naming a provider) have no
    clickable control and are skipped.
    """
    best: dict[str, tuple[int, Tag]] = {}
    for hit in hits:
        if hit.type != "oauth" or not hit.brand:
            continue
        control = _clickable(hit.element)
        if control is None:
            continue
        if hit.brand not in best or hit.score > best[hit.brand][0]:
            best[hit.brand] = (hit.score, control)

    return [
        OAuthButton(
            brand=brand,
            score=score,
            html=serialize(control, svg_max),
            text=" ".join(control.get_text(" ").split()),
        )
        for brand, (score, control) in best.items()
    ]


def detection_metadata(hits: list[ScoredElement]) -> DetectionMetadata:
    return DetectionMetadata(
        has_traditional=any(h.type == "traditional" for h in hits),
        has_oauth=any(h.type == "oauth" for h in hits),
        brands=_unique_brands([h for h in hits if h.type == "oauth"]),
        count=len(hits),
    )


def _pretty(element: Tag, svg_max: int) -> str:
    return sanitize(element, svg_max).prettify().strip()


def combine_widget_html(hits: list[ScoredElement], limits: LimitConfig) -> str:
    """Serialize the auth widget as one snippet, or two labeled blocks.

    Blocks are pretty-printed, one tag per line.
    """
    top = rank(hits, limits.top_hits)
    container = resolve_common_container([h.element for h in top], limits.page_container_text)
    if container is not None:
        return _pretty(container, limits.svg_max)

    logger.debug("Common container unusable, concatenating traditional and OAuth blocks")
    blocks = []

    traditional = [h for h in hits if h.type == "traditional"]
    if traditional:
        best = rank(traditional)[0]
        block = find_container(best.element, limits.single_container_text)
        if block is None and best.element.parent is not None:
            block = best.element.parent.parent or best.element.parent
        if block is not None and not is_gross_container(block):
            blocks.append(f"{TRADITIONAL_LABEL}\n{_pretty(block, limits.svg_max)}")

    oauth = [h for h in hits if h.type == "oauth"]
    if oauth:
        block = lowest_common_ancestor([h.element for h in oauth])
        if block is None or is_gross_container(block) or text_length(block) >= limits.oauth_block_text:
            block = oauth[0].element.parent
        if block is not None and not is_gross_container(block):
            blocks.append(f"{OAUTH_LABEL}\n{_pretty(block, limits.svg_max)}")

    return "\n\n".join(blocks)


def detect_offline(
    markup: str,
    url: str = "",
    limits: Optional[LimitConfig] = None,
    request_id: str = "-",
) -> DetectionResult:
    """Detect auth components in *markup* with DOM heuristics only."""
    limits = limits or LimitConfig()
    soup = BeautifulSoup(markup or "", "html.parser")
    resolver = StaticResolver(soup, limits)
    hits = resolver.hits

    if not hits:
        logger.info("[%s] Heuristic scan found no candidate elements", request_id)
        return DetectionResult(url=url, detection_method="heuristic", message=NO_COMPONENTS_MESSAGE,
                               metadata=DetectionMetadata())

    logger.info("[%s] Heuristic scan kept %d element(s) scoring >= %d",
                request_id, len(hits), limits.min_score)

    metadata = detection_metadata(hits)
    components = resolver.resolve_all(build_components(hits))
    if not components:
        return DetectionResult(url=url, detection_method="heuristic", message=NO_COMPONENTS_MESSAGE,
                               metadata=metadata)

    return DetectionResult(
        url=url,
        components=components,
        detection_method="heuristic",
        html=combine_widget_html(hits, limits) or None,
        oauth_buttons=oauth_buttons(hits, limits.svg_max),
        metadata=metadata,
    )
