"""Evidence extraction: cuts auth-relevant sections out of a full page for the AI prompt."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Optional

logger = logging.getLogger(__name__)

MAX_EXCERPT = 15000
MIN_EXCERPT = 20

_AUTH_WORDS = re.compile(
    r"sign|login|auth|continue|google|facebook|github|twitter|apple|microsoft|"
    r"linkedin|amazon|passkey|magic|register|join|get started",
    re.IGNORECASE,
)
_NAV_INTERACTIVE = re.compile(r"(?:button|a|input)[^>]*(?:sign|login|register|auth)", re.IGNORECASE)
_NAV_PHRASE = re.compile(
    r"sign in|log in|login|register|sign up|join now|get started", re.IGNORECASE
)
_BODY = re.compile(r"<body[^>]*>([\s\S]*)</body>", re.IGNORECASE)


@dataclass(frozen=True)
class ExtractionPattern:
    id: str
    pattern: re.Pattern
    keep: Optional[Callable[[str], bool]] = None


def _nav_has_auth(match: str) -> bool:
    return bool(_NAV_INTERACTIVE.search(match) or _NAV_PHRASE.search(match))


def _mentions_auth(match: str) -> bool:
    return bool(_AUTH_WORDS.search(match))


# Applied in order; earlier patterns contribute earlier text to the excerpt
EXTRACTION_PATTERNS: tuple[ExtractionPattern, ...] = (
    ExtractionPattern(
        "pwd-forms",
        re.compile(
            r"<form[^>]*>[\s\S]{0,2000}?<input[^>]*type=[\"']?password[\"']?[^>]*>[\s\S]{0,2000}?</form>",
            re.IGNORECASE,
        ),
    ),
    ExtractionPattern(
        "auth-forms",
        re.compile(
            r"<form[^>]*(?:login|signin|sign-in|signup|sign-up|auth|register)[^>]*>[\s\S]{0,1500}?</form>",
            re.IGNORECASE,
        ),
    ),
    ExtractionPattern(
        "nav-auth",
        re.compile(
            r"<(?:nav|header|div)[^>]{0,300}>[\s\S]{0,3000}?"
            r"(?:sign|login|register|auth|log in|sign up|join|get started)"
            r"[\s\S]{0,3000}?</(?:nav|header|div)>",
            re.IGNORECASE,
        ),
        _nav_has_auth,
    ),
    ExtractionPattern(
        "auth-btns",
        re.compile(r"<(?:button|a)\b[^>]*>[\s\S]{0,500}?</(?:button|a)>", re.IGNORECASE),
        _mentions_auth,
    ),
    ExtractionPattern(
        "btn-context",
        re.compile(
            r"<(?:div|li|span|header|nav)[^>]{0,200}>[\s\S]{0,1500}?"
            r"<(?:button|a)\b[^>]*>[\s\S]{0,800}?</(?:button|a)>"
            r"[\s\S]{0,1500}?</(?:div|li|span|header|nav)>",
            re.IGNORECASE,
        ),
        _mentions_auth,
    ),
    ExtractionPattern(
        "auth-divs",
        re.compile(
            r"<div[^>]*(?:class|id)=[\"'][^\"']*"
            r"(?:login|signin|sign-in|auth|authentication|oauth|social)"
            r"[^\"']*[\"'][^>]*>[\s\S]{0,1500}?</div>",
            re.IGNORECASE,
        ),
    ),
    ExtractionPattern(
        "webauthn",
        re.compile(r"<webauthn-subtle[^>]*>[\s\S]{0,800}?</webauthn-subtle>", re.IGNORECASE),
    ),
)


def extract_relevant_sections(
    html: str,
    request_id: str = "-",
    max_size: int = MAX_EXCERPT,
    min_size: int = MIN_EXCERPT,
) -> str:
    """Build a bounded excerpt of the markup that is likely to hold auth UI.

    Falls back to the raw ``<body>`` content (or the whole document) when the
    pattern battery yields less than *min_size* characters.
    """
    logger.debug("[%s] Extracting relevant HTML from %dKB", request_id, len(html) // 1024)

    sections: list[str] = []
    for extractor in EXTRACTION_PATTERNS:
        matches = extractor.pattern.findall(html)
        if extractor.keep is not None:
            matches = [m for m in matches if extractor.keep(m)]
        if matches:
            logger.debug("[%s] Pattern %s matched %d sections", request_id, extractor.id, len(matches))
        sections.extend(matches)

    excerpt = "\n\n".join(dict.fromkeys(sections))

    if len(excerpt) < min_size:
        logger.warning("[%s] Relevant-section extraction too small (%d chars), using body content",
                       request_id, len(excerpt))
        body = _BODY.search(html)
        source = body.group(1) if body and body.group(1) else html
        return source[:max_size]

    excerpt = excerpt[:max_size]
    logger.info("[%s] Extracted %d chars of relevant HTML (%d sections, %d%% of page)",
                request_id, len(excerpt), len(sections),
                round(len(excerpt) * 100 / max(len(html), 1)))
    return excerpt
