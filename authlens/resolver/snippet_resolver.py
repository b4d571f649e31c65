"""Live snippet resolution: turns location descriptions into sanitized markup.

Each candidate is resolved against the rendered page through its location
description first, then through a type-specific fallback chain. All
candidates run concurrently under one extraction ceiling.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from playwright.async_api import Page

from authlens.heuristics.sanitizer import sanitize_markup
from authlens.models.auth_component import AuthComponent
from authlens.models.config import LimitConfig, TimeoutConfig
from authlens.utils.timeouts import abandon, try_with_timeout

logger = logging.getLogger(__name__)


class PageClosedError(RuntimeError):
    """The live page was closed before its snippets could be resolved."""


def truncate(markup: str, max_len: int = 1500) -> str:
    if len(markup) <= max_len:
        return markup
    return markup[:max_len] + "..."


def _oauth_chain(component: AuthComponent) -> list[str]:
    selectors = []
    for provider in component.details.providers:
        name = provider.capitalize()
        selectors += [
            f'button:has-text("{name}")',
            f'a:has-text("{name}")',
            f'button:has-text("Sign in with {name}")',
            f'a:has-text("Sign in with {name}")',
            f'button:has-text("Continue with {name}")',
            f'[data-provider="{provider.lower()}"]',
        ]
    return selectors


def _traditional_chain(component: AuthComponent) -> list[str]:
    return [
        'form:has(input[type="password"])',
        'a:has-text("Sign in")',
        'a:has-text("Log in")',
        'a:has-text("Login")',
        'button:has-text("Sign in")',
        'button:has-text("Log in")',
        'a[href*="login"]',
        'a[href*="signin"]',
    ]


def _passwordless_chain(component: AuthComponent) -> list[str]:
    selectors = []
    if component.details.method:
        selectors.append(f'button:has-text("{component.details.method}")')
    selectors += [
        'button:has-text("passkey")',
        'button:has-text("magic link")',
        'input[inputmode="numeric"]',
        "webauthn-subtle",
    ]
    return selectors


# Ordered selector lists per component type, built lazily from the component
FALLBACK_CHAINS: dict[str, Callable[[AuthComponent], list[str]]] = {
    "oauth": _oauth_chain,
    "traditional": _traditional_chain,
    "passwordless": _passwordless_chain,
}


def failed_placeholder(component: AuthComponent) -> str:
    if component.type == "oauth":
        return f"<!-- OAuth: {', '.join(component.details.providers)} (extraction failed) -->"
    if component.type == "passwordless":
        return f"<!-- Passwordless ({component.details.method}) (extraction failed) -->"
    return "<!-- Traditional login (extraction failed) -->"


def error_placeholder(component: AuthComponent) -> str:
    return f"<!-- {component.type} detected (error) -->"


def timeout_placeholder(component: AuthComponent) -> str:
    return f"<!-- {component.type} detected (timeout) -->"


class SnippetResolver:
    """Resolves candidate components against a live Playwright page."""

    def __init__(
        self,
        page: Page,
        timeouts: Optional[TimeoutConfig] = None,
        limits: Optional[LimitConfig] = None,
        request_id: str = "-",
    ):
        self.page = page
        self.timeouts = timeouts or TimeoutConfig()
        self.limits = limits or LimitConfig()
        self.request_id = request_id

    async def try_selector(self, selector: str, timeout: Optional[float] = None) -> Optional[str]:
        """Outer markup of the first match of *selector*, or None.

        Never raises: a closed page, a bad selector or a missing element all
        come back as None.
        """
        timeout = self.timeouts.selector if timeout is None else timeout
        try:
            if self.page.is_closed():
                logger.warning("[%s] Page closed, skipping selector %s", self.request_id, selector)
                return None

            locator = self.page.locator(selector).first
            try:
                await locator.wait_for(state="visible", timeout=timeout * 1000)
            except Exception:
                pass  # hidden elements still count

            if await locator.count() == 0:
                return None
            return await locator.evaluate("el => el.outerHTML")
        except Exception as e:
            if "closed" not in str(e):
                logger.warning("[%s] Selector %s failed: %s", self.request_id, selector, e)
            return None

    def _finish(self, markup: str) -> str:
        return truncate(sanitize_markup(markup, self.limits.svg_max), self.limits.max_snippet)

    async def run_fallback(self, component: AuthComponent) -> str:
        """Walk the component's fallback chain; first hit wins."""
        chain = FALLBACK_CHAINS.get(component.type)
        if chain is None:
            return failed_placeholder(component)

        loop = asyncio.get_running_loop()
        started = loop.time()
        per_attempt = self.timeouts.fallback_per_attempt
        logger.info("[%s] Fallback extraction for %s (max %gs)",
                    self.request_id, component.type, self.timeouts.fallback_total)

        for selector in chain(component):
            remaining = self.timeouts.fallback_total - (loop.time() - started)
            if remaining <= 0:
                logger.warning("[%s] Fallback chain for %s exhausted its time budget",
                               self.request_id, component.type)
                break
            # The last attempt may not run past the chain budget
            budget = min(per_attempt, remaining)
            markup = await try_with_timeout(
                self.try_selector(selector, budget), budget, label=f"fallback {selector}"
            )
            if markup:
                logger.info("[%s] Fallback %s matched %s in %.1fs",
                            self.request_id, component.type, selector, loop.time() - started)
                return self._finish(markup)

        logger.warning("[%s] Fallback for %s found nothing", self.request_id, component.type)
        return failed_placeholder(component)

    async def resolve_one(self, component: AuthComponent) -> AuthComponent:
        selector = component.details.selector
        try:
            if selector:
                logger.debug("[%s] Trying %s selector %s", self.request_id, component.type, selector)
                markup = await self.try_selector(selector)
                if markup:
                    return component.with_snippet(self._finish(markup))
                logger.warning("[%s] Selector miss for %s, trying fallback", self.request_id, component.type)
            return component.with_snippet(await self.run_fallback(component))
        except Exception as e:
            logger.error("[%s] Snippet extraction for %s failed: %s", self.request_id, component.type, e)
            return component.with_snippet(error_placeholder(component))

    async def resolve_all(self, components: list[AuthComponent]) -> list[AuthComponent]:
        """Resolve every component concurrently under the extraction ceiling.

        Components still pending at the ceiling get a timeout placeholder;
        their tasks are abandoned, not cancelled.
        Raises PageClosedError when the page is already closed.
        """
        if not components:
            return []
        if self.page.is_closed():
            raise PageClosedError("Page is closed; cannot resolve snippets")

        logger.info("[%s] Extracting snippets for %d component(s)", self.request_id, len(components))
        tasks = [asyncio.ensure_future(self.resolve_one(c)) for c in components]
        done, pending = await asyncio.wait(tasks, timeout=self.timeouts.extraction)

        if pending:
            logger.warning("[%s] Snippet extraction hit the %gs ceiling with %d pending",
                           self.request_id, self.timeouts.extraction, len(pending))

        results = []
        for component, task in zip(components, tasks):
            if task in done:
                results.append(task.result())
            else:
                abandon(task)
                results.append(component.with_snippet(timeout_placeholder(component)))

        ok = sum(1 for c in results if c.snippet and not c.snippet.startswith("<!--"))
        logger.info("[%s] Snippet extraction done: %d/%d resolved", self.request_id, ok, len(results))
        return results
