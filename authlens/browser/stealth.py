"""Browser stealth utilities: reduces bot detection signals in Playwright."""

from __future__ import annotations

import logging

from playwright.async_api import Browser, BrowserContext, Playwright, Route

from authlens.models.config import BrowserConfig

logger = logging.getLogger(__name__)

STEALTH_INIT_SCRIPT = """
// Hide navigator.webdriver
Object.defineProperty(navigator, 'webdriver', { get: () => false });

// Headless Chrome reports zero plugins
Object.defineProperty(navigator, 'plugins', {
    get: () => {
        const plugins = [
            { name: 'Chrome PDF Plugin', filename: 'internal-pdf-viewer' },
            { name: 'Chrome PDF Viewer', filename: 'mhjfbmdgcfjbbpaeojofohoefgiehjai' },
        ];
        plugins.length = 2;
        return plugins;
    },
});

Object.defineProperty(navigator, 'languages', { get: () => ['en-US', 'en'] });

if (!window.chrome) { window.chrome = {}; }
if (!window.chrome.runtime) { window.chrome.runtime = {}; }
"""


async def launch_stealth_browser(playwright: Playwright, config: BrowserConfig) -> Browser:
    """Launch Chromium with sandbox and automation flags from *config*."""
    return await playwright.chromium.launch(headless=config.headless, args=list(config.launch_args))


def resource_blocker(blocked_types: list[str]):
    """Route handler aborting requests whose resource type is in *blocked_types*."""
    blocked = frozenset(blocked_types)

    async def handle(route: Route) -> None:
        if route.request.resource_type in blocked:
            await route.abort()
        else:
            await route.continue_()

    return handle


async def create_stealth_context(browser: Browser, config: BrowserConfig) -> BrowserContext:
    """Create an isolated context with stealth patches and heavy resources blocked.

    Each context has its own cookies and storage.
    """
    context = await browser.new_context(
        viewport={"width": config.viewport.width, "height": config.viewport.height},
        user_agent=config.user_agent,
        locale="en-US",
        timezone_id=config.timezone_id,
        java_script_enabled=True,
        extra_http_headers={"Accept-Language": "en-US,en;q=0.9"},
    )
    await context.add_init_script(STEALTH_INIT_SCRIPT)
    if config.blocked_resource_types:
        await context.route("**/*", resource_blocker(config.blocked_resource_types))
    return context
