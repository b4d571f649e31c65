"""Detector entry point: AI first, then patterns, then offline heuristics."""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from playwright.async_api import Page

from authlens.ai.client import AIClient
from authlens.detector.ai_detector import AIDetector, resolve_components
from authlens.detector.pattern_detector import detect_patterns
from authlens.heuristics.offline_detector import NO_COMPONENTS_MESSAGE, detect_offline
from authlens.models.auth_component import DetectionResult
from authlens.models.config import DetectorConfig
from authlens.resolver.dedup import deduplicate
from authlens.resolver.snippet_resolver import PageClosedError

logger = logging.getLogger(__name__)


def new_request_id() -> str:
    return uuid.uuid4().hex[:8]


class AuthDetector:
    """Detects authentication components in a rendered page.

    Strategies, in order:
    1. AI-assisted, when a client is configured and AI is enabled.
    2. Pattern matching over the raw markup.
    3. Offline DOM heuristics, only when patterns found nothing.

    Exactly one strategy produces the returned components.
    """

    def __init__(self, ai_client: Optional[AIClient] = None, config: Optional[DetectorConfig] = None):
        self.config = config or DetectorConfig()
        self.ai_client = ai_client if self.config.ai_enabled else None

    async def detect(
        self,
        markup: str,
        url: str,
        screenshot: Optional[bytes] = None,
        page: Optional[Page] = None,
        request_id: Optional[str] = None,
    ) -> DetectionResult:
        request_id = request_id or new_request_id()
        logger.info("[%s] Detecting auth components on %s (%dKB markup)",
                    request_id, url, len(markup or "") // 1024)
        try:
            return await self._detect(markup or "", url, screenshot, page, request_id)
        except Exception as e:
            logger.error("[%s] Detection failed: %s", request_id, e, exc_info=True)
            return DetectionResult.failure(url, str(e))

    async def _detect(
        self,
        markup: str,
        url: str,
        screenshot: Optional[bytes],
        page: Optional[Page],
        request_id: str,
    ) -> DetectionResult:
        if page is not None and page.is_closed():
            raise PageClosedError("Page is closed; cannot resolve snippets")

        if self.ai_client is not None:
            try:
                components = await AIDetector(self.ai_client, self.config).detect(
                    markup, url, screenshot, page, request_id
                )
                logger.info("[%s] AI detection complete: %d component(s)", request_id, len(components))
                return DetectionResult(url=url, components=components, detection_method="ai")
            except Exception as e:
                logger.warning("[%s] AI detection failed, falling back to patterns: %s", request_id, e)

        components = detect_patterns(markup, request_id)
        if components:
            components = await resolve_components(components, markup, page, self.config, request_id)
            return DetectionResult(
                url=url,
                components=deduplicate(components, self.config.limits.dedup_prefix),
                detection_method="pattern",
            )

        heuristic = detect_offline(markup, url, self.config.limits, request_id)
        if heuristic.found:
            logger.info("[%s] Heuristic scan recovered %d component(s)", request_id, len(heuristic.components))
            return heuristic

        return DetectionResult(url=url, detection_method="pattern", message=NO_COMPONENTS_MESSAGE)

