"""Scan orchestrator: coordinates scrape, detect and cleanup for one or many URLs."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional

from authlens.ai.client import AIClient, set_debug_dir
from authlens.browser.pool import BrowserPool
from authlens.browser.scraper import cleanup_resources, scrape_page
from authlens.detector.detector import AuthDetector, new_request_id
from authlens.models.auth_component import DetectionResult
from authlens.models.config import DetectorConfig

logger = logging.getLogger(__name__)


class Scanner:
    """Runs the detection pipeline against live URLs or saved markup."""

    def __init__(self, config: Optional[DetectorConfig] = None, ai_client: Optional[AIClient] = None):
        self.config = config or DetectorConfig()

        if self.config.debug_dir:
            set_debug_dir(self.config.debug_dir)

        # AI is optional; without a key the detector runs patterns only
        self.ai_client = ai_client
        if self.ai_client is None and self.config.ai_enabled:
            try:
                self.ai_client = AIClient(
                    model=self.config.ai_model,
                    max_tokens=self.config.ai_max_tokens,
                    timeout=self.config.timeouts.ai_api,
                )
            except EnvironmentError as e:
                logger.warning("AI client unavailable: %s. Running in fallback mode.", e)

        self.detector = AuthDetector(self.ai_client, self.config)

    # ── Synchronous entry points ─────────────────────────────────────

    def scan(self, url: str) -> DetectionResult:
        return asyncio.run(self._scan_with_pool([url]))[0]

    def scan_many(self, urls: list[str]) -> list[DetectionResult]:
        return asyncio.run(self._scan_with_pool(urls))

    def scan_markup(self, markup: str, url: str = "") -> DetectionResult:
        """Detect against saved markup; snippets resolve against the parsed document."""
        return asyncio.run(self.detector.detect(markup, url))

    # ── Async pipeline ───────────────────────────────────────────────

    async def _scan_with_pool(self, urls: list[str]) -> list[DetectionResult]:
        async with BrowserPool(self.config.browser) as pool:
            return await self.scan_urls(pool, urls)

    async def scan_urls(self, pool: BrowserPool, urls: list[str]) -> list[DetectionResult]:
        """Scan *urls* concurrently, at most ``max_parallel_scans`` at a time.

        Results keep the order of *urls*.
        """
        semaphore = asyncio.Semaphore(max(1, self.config.max_parallel_scans))

        async def bounded(url: str) -> DetectionResult:
            async with semaphore:
                return await self.scan_url(pool, url)

        return list(await asyncio.gather(*(bounded(u) for u in urls)))

    async def scan_url(self, pool: BrowserPool, url: str) -> DetectionResult:
        request_id = new_request_id()
        start = time.time()
        logger.info("[%s] === Scanning %s ===", request_id, url)

        scrape = await scrape_page(pool, url, self.config, request_id)
        if not scrape.success:
            return DetectionResult.failure(url, scrape.error or "Scrape failed")

        try:
            result = await self.detector.detect(
                scrape.html, url, screenshot=scrape.screenshot, page=scrape.page, request_id=request_id
            )
        finally:
            await cleanup_resources(pool, scrape.page, scrape.context, request_id)

        logger.info("[%s] === Scan of %s complete in %.1fs: %d component(s) via %s ===",
                    request_id, url, time.time() - start, len(result.components), result.detection_method)
        return result
