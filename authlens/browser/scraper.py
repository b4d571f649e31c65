"""Page scraping: navigates one URL in an isolated context and captures its content."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Optional

from playwright.async_api import BrowserContext, Page

from authlens.browser.page_signals import accessibility_auth_signals, trigger_auth_modal
from authlens.browser.pool import BrowserPool
from authlens.models.config import DetectorConfig
from authlens.utils.timeouts import with_timeout

logger = logging.getLogger(__name__)

SHADOW_DOM_MARKER = "<!-- SHADOW DOM CONTENT -->"

_SHADOW_DOM_JS = """
() => {
    const parts = [];
    const walk = (root) => {
        for (const el of root.querySelectorAll('*')) {
            if (el.shadowRoot) {
                parts.push(el.shadowRoot.innerHTML);
                walk(el.shadowRoot);
            }
        }
    };
    walk(document);
    return parts.join('\\n');
}
"""


@dataclass
class ScrapeResult:
    success: bool
    url: str
    html: str = ""
    title: str = ""
    screenshot: Optional[bytes] = None
    error: Optional[str] = None
    has_shadow_dom: bool = False
    modal_triggered: bool = False
    has_auth_in_a11y: bool = False
    a11y_signals: list[str] = field(default_factory=list)
    # Kept open for live snippet resolution; released through cleanup_resources()
    page: Optional[Page] = field(default=None, repr=False)
    context: Optional[BrowserContext] = field(default=None, repr=False)


def combine_html(regular: str, shadow: str) -> str:
    if not shadow:
        return regular
    return f"{regular}\n\n{SHADOW_DOM_MARKER}\n{shadow}"


async def extract_shadow_dom(page: Page, request_id: str = "-") -> str:
    try:
        return await page.evaluate(_SHADOW_DOM_JS) or ""
    except Exception as e:
        logger.debug("[%s] Shadow DOM extraction failed: %s", request_id, e)
        return ""


async def capture_screenshot(page: Page, config: DetectorConfig, request_id: str = "-") -> Optional[bytes]:
    """JPEG viewport screenshot, or None; failure is not fatal."""
    try:
        data = await page.screenshot(
            type="jpeg",
            quality=config.browser.screenshot_quality,
            full_page=False,
            timeout=config.timeouts.screenshot * 1000,
        )
        logger.debug("[%s] Screenshot captured (%dKB)", request_id, len(data) // 1024)
        return data
    except Exception as e:
        logger.warning("[%s] Screenshot failed, continuing without it: %s", request_id, e)
        return None


async def cleanup_resources(
    pool: BrowserPool,
    page: Optional[Page],
    context: Optional[BrowserContext],
    request_id: str = "-",
) -> None:
    """Close the page and its context; errors are logged only."""
    if page is not None:
        try:
            await page.close()
        except Exception as e:
            logger.warning("[%s] Failed to close page: %s", request_id, e)
    if context is not None:
        await pool.close_context(context, request_id)


async def scrape_page(
    pool: BrowserPool,
    url: str,
    config: Optional[DetectorConfig] = None,
    request_id: str = "-",
) -> ScrapeResult:
    """Load *url* and capture markup, title, shadow DOM and a screenshot.

    Before capture a sign-in button may be clicked to open its dialog, and
    the accessibility tree is read for auth signals. The whole scrape is
    bounded by ``timeouts.scrape_total``.

    On success the page and context stay open in the result; the caller
    releases them with :func:`cleanup_resources`. On failure they are
    already released.
    """
    config = config or DetectorConfig()
    timeouts = config.timeouts
    started = time.monotonic()
    context: Optional[BrowserContext] = None
    page: Optional[Page] = None
    timed_out = False

    async def _perform() -> ScrapeResult:
        nonlocal context, page
        context = await pool.create_context(request_id)
        if timed_out:
            await cleanup_resources(pool, None, context, request_id)
            raise TimeoutError("Scrape abandoned before the page opened")
        page = await context.new_page()

        await page.goto(url, wait_until="domcontentloaded", timeout=timeouts.navigation * 1000)
        try:
            await page.wait_for_load_state("networkidle", timeout=timeouts.network_idle * 1000)
        except Exception:
            logger.debug("[%s] Network never went idle, continuing", request_id)
        await page.wait_for_timeout(timeouts.settle * 1000)

        modal_triggered = False
        if config.trigger_auth_modals:
            modal_triggered = await trigger_auth_modal(page, timeouts.modal, request_id)

        screenshot_job = (
            capture_screenshot(page, config, request_id)
            if config.capture_screenshot
            else asyncio.sleep(0, result=None)
        )
        regular, title, shadow, screenshot, a11y_signals = await asyncio.gather(
            page.content(),
            page.title(),
            extract_shadow_dom(page, request_id),
            screenshot_job,
            accessibility_auth_signals(page, timeouts.accessibility, request_id),
        )
        return ScrapeResult(
            success=True,
            url=url,
            html=combine_html(regular, shadow),
            title=title,
            screenshot=screenshot,
            has_shadow_dom=bool(shadow),
            modal_triggered=modal_triggered,
            has_auth_in_a11y=bool(a11y_signals),
            a11y_signals=a11y_signals,
            page=page,
            context=context,
        )

    logger.info("[%s] Scraping %s", request_id, url)
    try:
        result = await with_timeout(_perform(), timeouts.scrape_total, label="Scrape")
    except Exception as e:
        timed_out = True
        logger.error("[%s] Scrape of %s failed after %.1fs: %s",
                     request_id, url, time.monotonic() - started, e)
        await cleanup_resources(pool, page, context, request_id)
        return ScrapeResult(success=False, url=url, error=str(e))

    logger.info("[%s] Scraped %s in %.1fs (%dKB html, screenshot=%s, shadow DOM=%s, "
                "modal=%s, a11y signals=%d)",
                request_id, url, time.monotonic() - started, len(result.html) // 1024,
                result.screenshot is not None, result.has_shadow_dom,
                result.modal_triggered, len(result.a11y_signals))
    return result
