"""Live-page auth signals gathered before the markup is captured.

Two checks run against the rendered page:

- ``trigger_auth_modal`` opens a sign-in dialog when the page only shows a
  button for it, so the dialog's form ends up in the captured markup.
- ``accessibility_auth_signals`` reads the Chromium accessibility tree and
  reports auth-looking controls, including ones whose markup hides their
  purpose behind icons or closed shadow roots.
"""

from __future__ import annotations

import logging
import re
from contextlib import suppress
from typing import Any

from playwright.async_api import Page

from authlens.utils.timeouts import with_timeout

logger = logging.getLogger(__name__)

# Buttons only: links could navigate away from the page being scanned
MODAL_TRIGGERS = (
    'button:has-text("Sign in")',
    'button:has-text("Log in")',
    'button:has-text("Login")',
    '[role="button"]:has-text("Sign in")',
    '[role="button"]:has-text("Log in")',
)
REVEALED_AUTH = '[role="dialog"] input, dialog input, input[type="password"]'

_SIGNAL_ROLES = frozenset({"button", "link", "textbox", "heading", "dialog", "alertdialog", "form"})
_AUTH_NAME = re.compile(
    r"sign[\s-]*in|log[\s-]*in|password|passkey|continue with|one[\s-]*time|"
    r"verification code|two[\s-]*factor|single sign[\s-]*on|\bsso\b",
    re.IGNORECASE,
)
MAX_SIGNALS = 20


async def trigger_auth_modal(page: Page, timeout: float, request_id: str = "-") -> bool:
    """Click a sign-in button outside any form and wait for auth inputs.

    Returns True when inputs appeared. Pages that already show a password
    field are left alone.
    """
    try:
        if await page.locator('input[type="password"]').count() > 0:
            return False

        for selector in MODAL_TRIGGERS:
            trigger = page.locator(selector).first
            if await trigger.count() == 0 or not await trigger.is_visible():
                continue
            # A button inside a form may submit it
            if await trigger.evaluate("el => !!el.closest('form')"):
                continue

            logger.debug("[%s] Clicking %s to reveal a sign-in dialog", request_id, selector)
            await trigger.click(timeout=timeout * 1000)
            try:
                await page.locator(REVEALED_AUTH).first.wait_for(state="visible", timeout=timeout * 1000)
            except Exception:
                logger.debug("[%s] No auth inputs appeared after %s", request_id, selector)
                return False
            logger.info("[%s] Sign-in dialog opened via %s", request_id, selector)
            return True
    except Exception as e:
        logger.debug("[%s] Modal trigger failed: %s", request_id, e)
    return False


def _ax_value(obj: Any) -> str:
    if isinstance(obj, dict):
        return str(obj.get("value", "") or "")
    return str(obj or "")


def auth_signals_from_ax_nodes(nodes: list[dict], limit: int = MAX_SIGNALS) -> list[str]:
    """``role "name"`` strings for auth-looking nodes of a CDP AX tree, in tree order."""
    signals: list[str] = []
    for node in nodes:
        if node.get("ignored"):
            continue
        role = _ax_value(node.get("role"))
        name = " ".join(_ax_value(node.get("name")).split())
        if role not in _SIGNAL_ROLES or not name or not _AUTH_NAME.search(name):
            continue
        signal = f'{role} "{name[:80]}"'
        if signal not in signals:
            signals.append(signal)
            if len(signals) >= limit:
                break
    return signals


async def accessibility_auth_signals(page: Page, timeout: float, request_id: str = "-") -> list[str]:
    """Auth signals from the accessibility tree; empty when the tree is unavailable."""
    try:
        cdp = await page.context.new_cdp_session(page)
        try:
            result = await with_timeout(
                cdp.send("Accessibility.getFullAXTree"), timeout, label="Accessibility tree"
            )
        finally:
            with suppress(Exception):
                await cdp.detach()
    except Exception as e:
        logger.debug("[%s] Accessibility tree unavailable: %s", request_id, e)
        return []

    signals = auth_signals_from_ax_nodes(result.get("nodes", []))
    if signals:
        logger.debug("[%s] Accessibility auth signals: %s", request_id, "; ".join(signals))
    return signals
