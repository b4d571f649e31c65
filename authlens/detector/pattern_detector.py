"""Pattern-based detection: regex fallback that needs no browser and no AI."""

from __future__ import annotations

import logging
import re
from typing import Optional

from authlens.heuristics.scorer import OAUTH_PROVIDERS
from authlens.models.auth_component import AuthComponent, ComponentDetails

logger = logging.getLogger(__name__)

_PASSWORD_FORM = re.compile(
    r"<form\b[^>]*>(?:(?!</form>)[\s\S])*?<input\b[^>]*type=[\"']?password\b[^>]*>"
    r"[\s\S]*?(?:</form>|$)",
    re.IGNORECASE,
)
_SIGN_IN_WORDS = re.compile(r"sign\s*in|log\s*in|login", re.IGNORECASE)
_INPUT_TAG = re.compile(r"<input\b[^>]*>", re.IGNORECASE)
_ATTR = re.compile(r"([a-zA-Z_:][-a-zA-Z0-9_:.]*)\s*=\s*(?:\"([^\"]*)\"|'([^']*)'|([^\s>]+))")

_OAUTH_VERBS = r"(?:sign|log|continue)"
_OAUTH_WINDOW = 80

# Priority order: first match wins the method
_PASSWORDLESS_METHODS = (
    ("passkey", re.compile(r"passkey|webauthn", re.IGNORECASE)),
    ("magic-link", re.compile(r"magic[\s_-]*link", re.IGNORECASE)),
    ("otp", re.compile(r"(?<![a-z])otp(?![a-z])|one[\s_-]*time", re.IGNORECASE)),
)

DEFAULT_FIELDS = ["email", "password"]

_SKIPPED_INPUT_TYPES = ("hidden", "submit", "button", "reset", "image", "checkbox", "radio")


def _provider_pattern(provider: str) -> re.Pattern:
    name = rf"(?<![a-z0-9]){re.escape(provider)}"
    window = rf"[\s\S]{{0,{_OAUTH_WINDOW}}}?"
    return re.compile(rf"{_OAUTH_VERBS}{window}{name}|{name}{window}{_OAUTH_VERBS}", re.IGNORECASE)


_PROVIDER_PATTERNS = [(p, _provider_pattern(p)) for p in OAUTH_PROVIDERS]


def _parse_attrs(tag: str) -> dict[str, str]:
    attrs = {}
    for m in _ATTR.finditer(tag):
        value = next((g for g in m.groups()[1:] if g is not None), "")
        attrs[m.group(1).lower()] = value.lower()
    return attrs


def _field_name(attrs: dict[str, str]) -> Optional[str]:
    """Map an input's attributes to a semantic field name."""
    input_type = attrs.get("type", "text")
    if input_type in _SKIPPED_INPUT_TYPES:
        return None
    hints = " ".join(attrs.get(a, "") for a in ("name", "id", "autocomplete", "placeholder"))
    if input_type == "password" or "password" in hints:
        return "password"
    if input_type == "email" or "email" in hints:
        return "email"
    if "otp" in hints or "one-time-code" in hints or attrs.get("inputmode") == "numeric":
        return "otp"
    if input_type == "tel" or "phone" in hints:
        return "phone"
    if "user" in hints or "login" in hints:
        return "username"
    if input_type == "text":
        return "username"
    return None


def extract_form_fields(form_html: str) -> list[str]:
    """Semantic names of a form's inputs, in document order, without repeats."""
    fields: list[str] = []
    for tag in _INPUT_TAG.findall(form_html):
        name = _field_name(_parse_attrs(tag))
        if name and name not in fields:
            fields.append(name)
    return fields


def detect_traditional(html: str) -> Optional[AuthComponent]:
    form = _PASSWORD_FORM.search(html)
    if form:
        fields = extract_form_fields(form.group(0)) or list(DEFAULT_FIELDS)
        return AuthComponent(
            type="traditional",
            details=ComponentDetails(fields=fields, selector='form:has(input[type="password"])'),
        )
    if _SIGN_IN_WORDS.search(html):
        return AuthComponent(
            type="traditional",
            details=ComponentDetails(fields=list(DEFAULT_FIELDS), selector='form:has(input[type="password"])'),
        )
    return None


def detect_oauth(html: str) -> Optional[AuthComponent]:
    providers = [p for p, pattern in _PROVIDER_PATTERNS if pattern.search(html)]
    if not providers:
        return None
    return AuthComponent(
        type="oauth",
        details=ComponentDetails(
            providers=providers,
            selector=f'button:has-text("{providers[0]}")',
        ),
    )


def detect_passwordless(html: str) -> Optional[AuthComponent]:
    for method, pattern in _PASSWORDLESS_METHODS:
        if pattern.search(html):
            return AuthComponent(
                type="passwordless",
                details=ComponentDetails(method=method, selector=f'button:has-text("{method}")'),
            )
    return None


def detect_patterns(html: str, request_id: str = "-") -> list[AuthComponent]:
    """Run the regex detectors over raw markup; at most one component per type."""
    components = [
        c for c in (detect_traditional(html), detect_oauth(html), detect_passwordless(html))
        if c is not None
    ]
    logger.info("[%s] Pattern detection found %d candidate(s): %s",
                request_id, len(components), ", ".join(c.type for c in components) or "none")
    return components
