"""Component deduplication."""

from __future__ import annotations

from authlens.models.auth_component import AuthComponent

DEDUP_PREFIX = 100
NO_SNIPPET = "no-snippet"


def dedup_key(component: AuthComponent, prefix: int = DEDUP_PREFIX) -> tuple[str, str]:
    snippet = component.snippet[:prefix] if component.snippet else NO_SNIPPET
    return component.type, snippet


def deduplicate(components: list[AuthComponent], prefix: int = DEDUP_PREFIX) -> list[AuthComponent]:
    """Keep the first component per ``(type, snippet prefix)``, preserving order."""
    seen: set[tuple[str, str]] = set()
    unique = []
    for component in components:
        key = dedup_key(component, prefix)
        if key in seen:
            continue
        seen.add(key)
        unique.append(component)
    return unique
