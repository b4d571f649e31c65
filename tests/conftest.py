"""Pytest configuration and shared fixtures."""

import asyncio
from typing import Optional
from unittest.mock import Mock

import pytest

from authlens.models.config import DetectorConfig, LimitConfig, TimeoutConfig


# ============================================================================
# Markup Fixtures
# ============================================================================


PASSWORD_FORM_PAGE = """
<html>
  <head><title>Sign in</title><script>var tracking = 1;</script></head>
  <body>
    <nav><a href="/">Home</a></nav>
    <div class="login-panel">
      <form id="login-form" action="/session" method="post">
        <label for="email">Email</label>
        <input type="email" name="email" id="email" placeholder="you@example.com">
        <label for="password">Password</label>
        <input type="password" name="password" id="password">
        <button type="submit">Sign in</button>
      </form>
    </div>
  </body>
</html>
"""

OAUTH_BUTTONS_PAGE = """
<html>
  <body>
    <div class="auth-card">
      <h2>Welcome back</h2>
      <button class="btn-social" data-provider="google">Continue with Google</button>
      <button class="btn-social" data-provider="apple">Sign in with Apple</button>
      <button class="btn-primary">Sign in with email</button>
    </div>
  </body>
</html>
"""

NO_AUTH_PAGE = """
<html>
  <body>
    <h1>Our Bakery</h1>
    <p>Fresh bread every morning. Visit our shop on Main Street.</p>
    <a href="/menu">Menu</a>
  </body>
</html>
"""


def oversized_main_page(filler_chars: int = 20000) -> str:
    """A password form and OAuth buttons far apart under one very large <main>."""
    filler = "<p>" + ("lorem ipsum dolor " * (filler_chars // 18)) + "</p>"
    return f"""
<html>
  <body>
    <main>
      <section class="intro">{filler}</section>
      <div class="signin-box">
        <form>
          <input type="email" name="email">
          <input type="password" name="password">
          <button type="submit">Log in</button>
        </form>
      </div>
      <article>{filler}</article>
      <div class="social-row">
        <button>Continue with Google</button>
        <button>Continue with GitHub</button>
      </div>
    </main>
  </body>
</html>
"""


@pytest.fixture
def password_form_page() -> str:
    return PASSWORD_FORM_PAGE


@pytest.fixture
def oauth_buttons_page() -> str:
    return OAUTH_BUTTONS_PAGE


@pytest.fixture
def no_auth_page() -> str:
    return NO_AUTH_PAGE


@pytest.fixture
def oversized_main_html() -> str:
    return oversized_main_page()


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def fast_config() -> DetectorConfig:
    """Config with sub-second timeouts so race tests finish quickly."""
    return DetectorConfig(
        capture_screenshot=False,
        timeouts=TimeoutConfig(
            ai_api=0.2,
            extraction=0.3,
            selector=0.05,
            fallback_total=0.2,
            fallback_per_attempt=0.05,
        ),
        limits=LimitConfig(),
    )


# ============================================================================
# Fake Playwright Page
# ============================================================================


class FakeLocator:
    def __init__(self, markup: Optional[str], delay: float = 0.0, error: Optional[Exception] = None):
        self._markup = markup
        self._delay = delay
        self._error = error

    @property
    def first(self) -> "FakeLocator":
        return self

    async def wait_for(self, state: str = "visible", timeout: float = 0) -> None:
        if self._markup is None:
            raise TimeoutError(f"waiting for locator ({timeout}ms)")

    async def count(self) -> int:
        if self._error is not None:
            raise self._error
        return 0 if self._markup is None else 1

    async def evaluate(self, expression: str) -> str:
        if self._delay:
            await asyncio.sleep(self._delay)
        return self._markup


class FakePage:
    """Minimal stand-in for a Playwright Page.

    *elements* maps selectors to the outer HTML they resolve to; unknown
    selectors match nothing. *delays* makes specific selectors slow.
    """

    def __init__(self, elements=None, delays=None, closed=False, errors=None):
        self.elements = dict(elements or {})
        self.delays = dict(delays or {})
        self.errors = dict(errors or {})
        self.closed = closed
        self.requested: list[str] = []

    def is_closed(self) -> bool:
        return self.closed

    def locator(self, selector: str) -> FakeLocator:
        self.requested.append(selector)
        return FakeLocator(
            self.elements.get(selector),
            self.delays.get(selector, 0.0),
            self.errors.get(selector),
        )


@pytest.fixture
def fake_page_factory():
    return FakePage


# ============================================================================
# AI Client Fixtures
# ============================================================================


@pytest.fixture
def mock_ai_client() -> Mock:
    """Mock AIClient whose generate() returns an empty detection.

    Override generate.return_value or generate.side_effect per test.
    """
    client = Mock()
    client.generate = Mock(return_value='{"found": false, "components": []}')
    return client
