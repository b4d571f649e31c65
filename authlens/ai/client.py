"""Claude API client wrapper for auth component detection."""

from __future__ import annotations

import base64
import json
import logging
import os
import re
import time
from pathlib import Path
from typing import Any, Optional

import anthropic

logger = logging.getLogger(__name__)

# Debug directory for dumping AI exchanges; unset means no dumps
_debug_dir: Path | None = None


class AIResponseError(ValueError):
    """The inference service returned text that is not a usable JSON object."""


def set_debug_dir(path: Path | str | None) -> None:
    """Set (or clear, with None) the directory for dumping AI exchanges."""
    global _debug_dir
    if path is None:
        _debug_dir = None
        return
    _debug_dir = Path(path)
    _debug_dir.mkdir(parents=True, exist_ok=True)


def _get_debug_dir() -> Path | None:
    return _debug_dir


def _detect_media_type(image: bytes) -> str:
    if image.startswith(b"\x89PNG"):
        return "image/png"
    if image[:4] == b"RIFF" and image[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"


class AIClient:
    """Wrapper around the Anthropic Claude API."""

    def __init__(
        self,
        model: str = "claude-sonnet-4-20250514",
        max_tokens: int = 4096,
        timeout: float = 60.0,
    ):
        api_key = os.environ.get("ANTHROPIC_API_KEY")
        if not api_key:
            raise EnvironmentError(
                "ANTHROPIC_API_KEY environment variable is not set. "
                "Set it to enable AI-assisted detection."
            )
        self.client = anthropic.Anthropic(api_key=api_key, timeout=timeout, max_retries=0)
        self.model = model
        self.max_tokens = max_tokens
        self._call_count = 0

    @property
    def call_count(self) -> int:
        return self._call_count

    def complete(
        self,
        system_prompt: str,
        user_message: str,
        max_tokens: Optional[int] = None,
        temperature: float = 0.2,
    ) -> str:
        """Send a completion request to Claude and return the text response."""
        return self._create(
            system_prompt,
            [{"role": "user", "content": user_message}],
            log_message=user_message,
            max_tokens=max_tokens,
            temperature=temperature,
        )

    def complete_with_image(
        self,
        system_prompt: str,
        user_message: str,
        image_base64: str,
        media_type: str = "image/jpeg",
        max_tokens: Optional[int] = None,
        temperature: float = 0.2,
    ) -> str:
        """Send a completion request with a screenshot attached."""
        content = [
            {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": media_type,
                    "data": image_base64,
                },
            },
            {"type": "text", "text": user_message},
        ]
        return self._create(
            system_prompt,
            [{"role": "user", "content": content}],
            log_message=f"[IMAGE ATTACHED]\n{user_message}",
            max_tokens=max_tokens,
            temperature=temperature,
        )

    def generate(self, prompt: str, image: Optional[bytes] = None, system_prompt: str = "") -> str:
        """Single inference call: prompt text plus an optional screenshot."""
        if image:
            return self.complete_with_image(
                system_prompt=system_prompt,
                user_message=prompt,
                image_base64=base64.b64encode(image).decode(),
                media_type=_detect_media_type(image),
            )
        return self.complete(system_prompt=system_prompt, user_message=prompt)

    def _create(
        self,
        system_prompt: str,
        messages: list[dict],
        log_message: str,
        max_tokens: Optional[int],
        temperature: float,
    ) -> str:
        self._call_count += 1
        tokens = max_tokens or self.max_tokens
        logger.info(
            "Inference call #%d (model=%s, max_tokens=%d)",
            self._call_count, self.model, tokens,
        )
        logger.debug("Prompt sizes: system=%d, user=%d chars", len(system_prompt), len(log_message))

        kwargs: dict[str, Any] = {
            "model": self.model,
            "max_tokens": tokens,
            "temperature": temperature,
            "messages": messages,
        }
        if system_prompt:
            kwargs["system"] = system_prompt

        try:
            started = time.time()
            response = self.client.messages.create(**kwargs)
            elapsed = time.time() - started
            text = "".join(
                getattr(block, "text", "") for block in response.content
            )
            logger.info("Inference answered in %.1fs (%d chars)", elapsed, len(text))

            if response.stop_reason == "max_tokens":
                logger.warning(
                    "AI response was truncated at max_tokens=%d; JSON may be incomplete",
                    tokens,
                )

            self._save_exchange_log(
                call_number=self._call_count,
                system_prompt=system_prompt,
                user_message=log_message,
                response_text=text,
                error=None,
            )
            return text
        except anthropic.APIError as e:
            logger.error("Inference request failed: %s", e)
            self._save_exchange_log(
                call_number=self._call_count,
                system_prompt=system_prompt,
                user_message=log_message,
                response_text="",
                error=str(e),
            )
            raise

    # ------------------------------------------------------------------
    # JSON parsing with LLM quirk handling
    # ------------------------------------------------------------------

    @staticmethod
    def parse_json_response(text: str) -> dict[str, Any]:
        """Parse the first JSON object embedded in an AI response.

        Conversational wrapping and markdown fences are ignored. Trailing
        commas and // or /* */ comments are stripped before parsing. Raises
        AIResponseError when no object is present or it does not parse.
        """
        region = _first_balanced_object(text or "")
        if region is None:
            logger.error("No JSON object in AI response: %s", (text or "")[:200])
            raise AIResponseError("No JSON object in AI response")

        try:
            data = json.loads(region, strict=False)
        except json.JSONDecodeError:
            cleaned = _strip_json_noise(region)
            try:
                data = json.loads(cleaned, strict=False)
            except json.JSONDecodeError as e:
                logger.error("AI response is not parseable JSON: %s", e)
                AIClient._save_parse_failure(raw_response=text, error=str(e), cleaned_response=cleaned)
                raise AIResponseError(f"AI returned invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise AIResponseError("AI response JSON is not an object")
        return data

    # ------------------------------------------------------------------
    # Debug dumps
    # ------------------------------------------------------------------

    @staticmethod
    def _save_exchange_log(
        call_number: int,
        system_prompt: str,
        user_message: str,
        response_text: str,
        error: str | None,
    ) -> None:
        sections = [
            ("system", system_prompt),
            ("prompt", user_message),
            ("response", response_text or "(empty)"),
        ]
        if error:
            sections.append(("error", error))
        _dump(f"ai_call_{call_number:03d}", sections)

    @staticmethod
    def _save_parse_failure(
        raw_response: str,
        error: str,
        cleaned_response: str | None = None,
    ) -> None:
        if _get_debug_dir() is None:
            logger.debug("Unparseable AI response (first 500 chars):\n%s", raw_response[:500])
            return
        sections = [("error", error)]
        if cleaned_response is not None:
            sections.append(("cleaned", cleaned_response))
        sections.append(("raw", raw_response))
        _dump("parse_failure", sections)


def _dump(prefix: str, sections: list[tuple[str, str]]) -> Optional[Path]:
    """Write labelled sections to ``<debug_dir>/<prefix>_<timestamp>.log``."""
    debug_dir = _get_debug_dir()
    if debug_dir is None:
        return None
    target = debug_dir / f"{prefix}_{time.strftime('%Y%m%d_%H%M%S')}.log"
    body = "\n\n".join(f"--- {name} ({len(text)} chars) ---\n{text}" for name, text in sections)
    try:
        target.write_text(body, encoding="utf-8")
    except OSError as e:
        logger.warning("Could not write AI debug dump %s: %s", target, e)
        return None
    logger.debug("AI debug dump written to %s", target)
    return target


def _first_balanced_object(text: str) -> str | None:
    """Return the first balanced {...} region, skipping braces inside strings."""
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start:i + 1]
        # Unbalanced from this brace; try the next one
        start = text.find("{", start + 1)
    return None


def _strip_json_noise(text: str) -> str:
    cleaned = re.sub(r"/\*.*?\*/", "", text, flags=re.DOTALL)
    # // comments after structural characters or at line start (not inside URLs)
    cleaned = re.sub(r'(?<=[\s,\[\]{}])//[^\n]*', "", cleaned)
    cleaned = re.sub(r"^\s*//[^\n]*", "", cleaned, flags=re.MULTILINE)
    cleaned = re.sub(r",\s*([}\]])", r"\1", cleaned)
    return cleaned
