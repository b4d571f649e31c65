"""Element scoring: rates how authentication-like a single DOM element is."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from bs4 import Tag

OAUTH_PROVIDERS = (
    "google", "apple", "facebook", "microsoft", "github", "gitlab",
    "okta", "auth0", "linkedin", "twitter", "bitbucket", "sso",
)

ACTION_KEYWORDS = ("sign", "log", "continue", "auth", "connect", "login", "account", "identity")

# Attributes inspected for keyword hits
ATTRS_TO_CHECK = (
    "type", "name", "id", "class", "placeholder", "aria-label", "data-testid", "autocomplete",
)

# (keywords, weight) applied once per attribute that contains any keyword
_ATTRIBUTE_WEIGHTS = (
    (("password", "pwd"), 10),
    (("email", "mail"), 5),
    (("user", "username"), 5),
    (("login", "signin", "sign-in"), 3),
)

_INTERACTIVE_TAGS = ("button", "a")
_MAX_ACTION_TEXT = 30

PASSWORD_INPUT_SCORE = 30
IDENTIFIER_INPUT_SCORE = 20
OAUTH_ACTION_SCORE = 25
OAUTH_PLAIN_SCORE = 15
ACTION_SCORE = 12


def _word_start(keyword: str) -> re.Pattern:
    # Left boundary only: "googleLogin" matches google, "lesson" does not match sso
    return re.compile(rf"(?<![a-z0-9]){re.escape(keyword)}")


_PROVIDER_PATTERNS = [(p, _word_start(p)) for p in OAUTH_PROVIDERS]
_ACTION_PATTERNS = [_word_start(k) for k in ACTION_KEYWORDS]


@dataclass
class ElementScore:
    score: int = 0
    type: str = "unknown"  # traditional, oauth, action, unknown
    brand: Optional[str] = None


@dataclass
class ScoredElement:
    """A DOM element paired with its score for one ranking pass."""

    element: Tag
    score: int
    type: str
    brand: Optional[str] = None


def has_action_verb(text: str) -> bool:
    return any(p.search(text) for p in _ACTION_PATTERNS)


def find_provider(text: str) -> Optional[str]:
    """Return the first OAuth provider named in *text* (lower-cased input)."""
    for provider, pattern in _PROVIDER_PATTERNS:
        if pattern.search(text):
            return provider
    return None


def attribute_values(element: Tag) -> dict[str, str]:
    """Flatten an element's attributes to lower-cased strings."""
    values = {}
    for name, value in (element.attrs or {}).items():
        if isinstance(value, (list, tuple)):
            value = " ".join(value)
        values[name.lower()] = str(value).lower()
    return values


def attribute_keyword_score(attrs: dict[str, str]) -> int:
    """Additive score from auth keywords in the allowlisted attributes."""
    score = 0
    for attr in ATTRS_TO_CHECK:
        value = attrs.get(attr, "")
        if not value:
            continue
        for keywords, weight in _ATTRIBUTE_WEIGHTS:
            if any(kw in value for kw in keywords):
                score += weight
    return score


def score_element(element: Tag) -> ElementScore:
    """Score one element from its tag, attributes and visible text.

    OAuth providers short-circuit classification. Inputs carrying password
    or identifier signals are traditional. Short interactive elements with
    an action verb are a generic action. Attribute keyword weights add on
    top for every element.
    """
    attrs = attribute_values(element)
    text = element.get_text(" ", strip=True).lower()
    combined = " ".join(list(attrs.values()) + [text])
    tag = (element.name or "").lower()

    result = ElementScore()

    brand = find_provider(combined)
    if brand:
        result.brand = brand
        result.type = "oauth"
        result.score += OAUTH_ACTION_SCORE if has_action_verb(combined) else OAUTH_PLAIN_SCORE

    if result.type == "unknown" and tag == "input":
        input_type = attrs.get("type", "")
        if input_type == "password" or "password" in combined:
            result.score += PASSWORD_INPUT_SCORE
            result.type = "traditional"
        elif input_type == "email" or "email" in combined or "username" in combined:
            result.score += IDENTIFIER_INPUT_SCORE
            result.type = "traditional"

    if result.type == "unknown" and (tag in _INTERACTIVE_TAGS or attrs.get("role") == "button"):
        if text and len(text) < _MAX_ACTION_TEXT and has_action_verb(text):
            result.score += ACTION_SCORE
            result.type = "action"

    result.score += attribute_keyword_score(attrs)
    return result


CANDIDATE_SELECTOR = (
    'input, button, a, [role="button"], [class*="auth"], [class*="login"], '
    '[class*="oauth"], [class*="social"], [id*="login"], [id*="auth"]'
)


def collect_hits(root: Tag, min_score: int = ACTION_SCORE) -> list[ScoredElement]:
    """Score every candidate element under *root*; keep those at or above *min_score*.

    Hits come back in document order.
    """
    hits = []
    for element in root.select(CANDIDATE_SELECTOR):
        result = score_element(element)
        if result.score >= min_score:
            hits.append(ScoredElement(element, result.score, result.type, result.brand))
    return hits


def rank(hits: list[ScoredElement], limit: int | None = None) -> list[ScoredElement]:
    """Highest score first; ties keep document order."""
    ranked = sorted(hits, key=lambda h: h.score, reverse=True)
    return ranked[:limit] if limit is not None else ranked
