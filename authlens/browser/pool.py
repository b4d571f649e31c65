"""BrowserPool: one shared Chromium, an isolated BrowserContext per request.

The browser is launched lazily by the first caller; concurrent first
callers await the same initialization task. An idle monitor closes the
browser after a period without requests, and the next request relaunches
it.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import time
from dataclasses import dataclass
from typing import Optional

from playwright.async_api import Browser, BrowserContext, Playwright, async_playwright

from authlens.browser.stealth import create_stealth_context, launch_stealth_browser
from authlens.models.config import BrowserConfig

logger = logging.getLogger(__name__)


class PoolState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    IDLE_CLOSING = "idle_closing"
    CLOSED = "closed"


@dataclass(frozen=True)
class PoolStatus:
    state: PoolState
    connected: bool
    active_contexts: int
    idle_seconds: float


class BrowserPool:
    def __init__(self, config: Optional[BrowserConfig] = None):
        self.config = config or BrowserConfig()
        self.state = PoolState.UNINITIALIZED

        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._init_task: Optional[asyncio.Task] = None
        self._idle_task: Optional[asyncio.Task] = None
        self._close_task: Optional[asyncio.Task] = None
        self._active = 0
        self._last_used = time.monotonic()

    async def __aenter__(self) -> BrowserPool:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # ── Browser lifecycle ────────────────────────────────────────────

    def _connected(self) -> bool:
        return self._browser is not None and self._browser.is_connected()

    async def get_browser(self, request_id: str = "-") -> Browser:
        if self._close_task is not None:
            # A relaunch must not overlap the idle shutdown of the previous engine
            logger.info("[%s] Waiting for idle shutdown to finish", request_id)
            await asyncio.shield(self._close_task)

        if self.state == PoolState.READY and self._connected():
            self._last_used = time.monotonic()
            return self._browser

        if self._init_task is None:
            logger.info("[%s] Launching browser", request_id)
            self.state = PoolState.INITIALIZING
            self._init_task = asyncio.ensure_future(self._launch())
        else:
            logger.info("[%s] Waiting for browser initialization", request_id)

        # Shielded so one cancelled waiter does not cancel the launch for everyone
        return await asyncio.shield(self._init_task)

    async def _launch(self) -> Browser:
        started = time.monotonic()
        playwright: Optional[Playwright] = None
        try:
            playwright = await async_playwright().start()
            browser = await launch_stealth_browser(playwright, self.config)
        except Exception as e:
            logger.error("Browser launch failed: %s", e)
            await self._shutdown(playwright, None)
            self.state = PoolState.UNINITIALIZED
            self._init_task = None
            raise

        self._playwright, self._browser = playwright, browser
        self.state = PoolState.READY
        self._init_task = None
        self._last_used = time.monotonic()
        logger.info("Browser launched in %.1fs", time.monotonic() - started)
        self._start_idle_monitor()
        return browser

    @staticmethod
    async def _shutdown(playwright: Optional[Playwright], browser: Optional[Browser]) -> None:
        """Close one engine instance; only the handles passed in are touched."""
        if browser is not None:
            try:
                await browser.close()
            except Exception as e:
                logger.warning("Browser close failed: %s", e)
        if playwright is not None:
            try:
                await playwright.stop()
            except Exception as e:
                logger.warning("Playwright stop failed: %s", e)

    def _detach(self) -> tuple[Optional[Playwright], Optional[Browser]]:
        handles = (self._playwright, self._browser)
        self._playwright = self._browser = None
        return handles

    # ── Contexts ─────────────────────────────────────────────────────

    async def create_context(self, request_id: str = "-") -> BrowserContext:
        browser = await self.get_browser(request_id)
        self._active += 1
        try:
            context = await create_stealth_context(browser, self.config)
        except Exception:
            self._active -= 1
            raise
        logger.debug("[%s] Browser context created (%d active)", request_id, self._active)
        return context

    async def close_context(self, context: BrowserContext, request_id: str = "-") -> None:
        """Close *context*; failures are logged, never raised."""
        self._active = max(0, self._active - 1)
        self._last_used = time.monotonic()
        try:
            await context.close()
            logger.debug("[%s] Browser context closed", request_id)
        except Exception as e:
            logger.error("[%s] Failed to close browser context: %s", request_id, e)

    # ── Idle monitor ─────────────────────────────────────────────────

    def _start_idle_monitor(self) -> None:
        if self._idle_task is None or self._idle_task.done():
            self._idle_task = asyncio.ensure_future(self._idle_monitor())

    async def _idle_monitor(self) -> None:
        # Runs for the life of the pool so a relaunched browser is watched too
        while self.state != PoolState.CLOSED:
            await asyncio.sleep(self.config.idle_check_interval_seconds)
            await self.close_if_idle()

    async def close_if_idle(self) -> bool:
        """Close the browser when idle past the timeout with no active request."""
        idle = time.monotonic() - self._last_used
        if self.state != PoolState.READY or self._active > 0 or idle < self.config.idle_timeout_seconds:
            return False

        logger.info("Closing browser after %.0fs idle", idle)
        self.state = PoolState.IDLE_CLOSING
        playwright, browser = self._detach()
        self._close_task = asyncio.ensure_future(self._shutdown(playwright, browser))
        try:
            await asyncio.shield(self._close_task)
        finally:
            self._close_task = None

        # A waiter may already have relaunched once the shutdown finished
        if self.state == PoolState.IDLE_CLOSING:
            self.state = PoolState.UNINITIALIZED
        return True

    # ── Status / shutdown ────────────────────────────────────────────

    def status(self) -> PoolStatus:
        return PoolStatus(
            state=self.state,
            connected=self._connected(),
            active_contexts=self._active,
            idle_seconds=time.monotonic() - self._last_used,
        )

    async def close(self) -> None:
        for task in (self._close_task, self._init_task):
            if task is not None:
                try:
                    await task
                except Exception:
                    pass  # launch failure already logged
        # Cancelled only once pending launches settle; a finished launch starts the monitor
        if self._idle_task is not None and not self._idle_task.done():
            self._idle_task.cancel()
        self._idle_task = None
        await self._shutdown(*self._detach())
        self.state = PoolState.CLOSED
        logger.info("Browser pool closed")
