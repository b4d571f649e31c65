"""AI-assisted detection: asks the model for components, then resolves them."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from playwright.async_api import Page
from pydantic import ValidationError

from authlens.ai.client import AIClient, AIResponseError
from authlens.ai.prompts.detection import DETECTION_SYSTEM_PROMPT, build_detection_prompt
from authlens.detector.evidence import extract_relevant_sections
from authlens.heuristics.static_resolver import StaticResolver
from authlens.models.auth_component import AIDetectionResponse, AuthComponent
from authlens.models.config import DetectorConfig
from authlens.resolver.dedup import deduplicate
from authlens.resolver.snippet_resolver import SnippetResolver
from authlens.utils.timeouts import with_timeout

logger = logging.getLogger(__name__)


async def resolve_components(
    components: list[AuthComponent],
    html: str,
    page: Optional[Page],
    config: DetectorConfig,
    request_id: str = "-",
) -> list[AuthComponent]:
    """Attach snippets from the live page, or from the parsed markup when there is none."""
    if page is not None:
        resolver = SnippetResolver(page, config.timeouts, config.limits, request_id)
        return await resolver.resolve_all(components)
    return StaticResolver.from_markup(html, config.limits).resolve_all(components)


class AIDetector:
    """Runs the inference call and turns its answer into resolved components.

    Any failure (timeout, transport error, malformed answer) propagates so
    the caller can fall back to pattern matching.
    """

    def __init__(self, ai_client: AIClient, config: Optional[DetectorConfig] = None):
        self.ai_client = ai_client
        self.config = config or DetectorConfig()

    async def infer(
        self, html: str, url: str, screenshot: Optional[bytes] = None, request_id: str = "-"
    ) -> AIDetectionResponse:
        limits = self.config.limits
        excerpt = extract_relevant_sections(html, request_id, limits.max_excerpt, limits.min_excerpt)
        prompt = build_detection_prompt(url, excerpt, has_screenshot=screenshot is not None)

        logger.info("[%s] Calling AI (%d chars prompt, screenshot=%s)",
                    request_id, len(prompt), screenshot is not None)
        text = await with_timeout(
            asyncio.to_thread(self.ai_client.generate, prompt, screenshot, DETECTION_SYSTEM_PROMPT),
            self.config.timeouts.ai_api,
            label="AI request",
        )

        data = AIClient.parse_json_response(text)
        try:
            response = AIDetectionResponse.model_validate(data)
        except ValidationError as e:
            raise AIResponseError(f"AI response failed validation: {e.error_count()} error(s)") from e

        logger.info("[%s] AI reported %d component(s)", request_id, len(response.components))
        return response

    async def detect(
        self,
        html: str,
        url: str,
        screenshot: Optional[bytes] = None,
        page: Optional[Page] = None,
        request_id: str = "-",
    ) -> list[AuthComponent]:
        response = await self.infer(html, url, screenshot, request_id)
        resolved = await resolve_components(response.components, html, page, self.config, request_id)
        return deduplicate(resolved, self.config.limits.dedup_prefix)
