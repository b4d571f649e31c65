"""Tests for the offline heuristic detector and static snippet resolution."""

from bs4 import BeautifulSoup

from authlens.heuristics.offline_detector import (
    NO_COMPONENTS_MESSAGE,
    OAUTH_LABEL,
    TRADITIONAL_LABEL,
    detect_offline,
)
from authlens.heuristics.static_resolver import StaticResolver
from authlens.models.auth_component import AuthComponent, ComponentDetails


class TestDetectOffline:
    def test_password_form(self, password_form_page):
        result = detect_offline(password_form_page, "https://example.com/login")

        assert result.success
        assert result.found
        assert result.detection_method == "heuristic"
        assert [c.type for c in result.components] == ["traditional"]
        assert result.components[0].details.fields == ["email", "password"]
        assert result.html.startswith("<form")
        assert "<script" not in result.html

    def test_oauth_buttons_share_one_container(self, oauth_buttons_page):
        result = detect_offline(oauth_buttons_page)

        types = [c.type for c in result.components]
        assert types == ["traditional", "oauth"]
        assert result.components[1].details.providers == ["google", "apple"]
        assert result.html.startswith('<div class="auth-card">')
        assert result.html.splitlines()[1].strip() == "<h2>"
        assert TRADITIONAL_LABEL not in result.html

    def test_oversized_main_concatenates_blocks(self, oversized_main_html):
        result = detect_offline(oversized_main_html)

        assert result.found
        assert result.html.startswith(TRADITIONAL_LABEL)
        assert OAUTH_LABEL in result.html
        traditional, oauth = result.html.split(OAUTH_LABEL)
        assert "<form>" in traditional
        assert 'class="social-row"' in oauth
        assert "lorem ipsum" not in result.html
        assert "<main>" not in result.html

    def test_no_hits(self, no_auth_page):
        result = detect_offline(no_auth_page, "https://bakery.example")

        assert result.success
        assert not result.found
        assert result.components == []
        assert result.message == NO_COMPONENTS_MESSAGE
        assert result.html is None

    def test_snippets_are_attached(self, oauth_buttons_page):
        result = detect_offline(oauth_buttons_page)
        assert all(c.snippet for c in result.components)

    def test_best_oauth_button_per_brand(self, oauth_buttons_page):
        result = detect_offline(oauth_buttons_page)

        assert [b.brand for b in result.oauth_buttons] == ["google", "apple"]
        google = result.oauth_buttons[0]
        assert google.text == "Continue with Google"
        button = BeautifulSoup(google.html, "html.parser").button
        assert button["data-provider"] == "google"
        assert google.score > 0

    def test_oauth_button_is_the_enclosing_control(self):
        html = """<div class="providers">
            <a href="/auth/github"><span>Continue with GitHub</span></a>
        </div>"""
        result = detect_offline(html)

        assert len(result.oauth_buttons) == 1
        assert result.oauth_buttons[0].html.startswith('<a href="/auth/github">')
        assert result.oauth_buttons[0].text == "Continue with GitHub"

    def test_metadata_summarizes_hits(self, oversized_main_html):
        result = detect_offline(oversized_main_html)

        metadata = result.metadata
        assert metadata.has_traditional
        assert metadata.has_oauth
        assert metadata.brands == ["google", "github"]
        assert metadata.count >= 4

    def test_metadata_without_hits(self, no_auth_page):
        result = detect_offline(no_auth_page)

        assert result.oauth_buttons == []
        assert not result.metadata.has_traditional
        assert not result.metadata.has_oauth
        assert result.metadata.count == 0


class TestStaticResolver:
    def test_traditional_prefers_password_form(self, password_form_page):
        resolver = StaticResolver.from_markup(password_form_page)
        component = resolver.resolve(AuthComponent(type="traditional"))
        form = BeautifulSoup(component.snippet, "html.parser").form
        assert form["id"] == "login-form"
        assert form["action"] == "/session"

    def test_oauth_filters_by_provider(self):
        html = """<div id="row">
            <button id="g">Sign in with Google</button>
            <button id="f">Sign in with Facebook</button>
        </div>"""
        resolver = StaticResolver.from_markup(html)
        component = resolver.resolve(
            AuthComponent(type="oauth", details=ComponentDetails(providers=["facebook"]))
        )
        assert component.snippet == '<button id="f">Sign in with Facebook</button>'

    def test_oauth_block_for_multiple_providers(self):
        html = """<div id="row">
            <button>Sign in with Google</button>
            <button>Sign in with Facebook</button>
        </div>"""
        resolver = StaticResolver.from_markup(html)
        component = resolver.resolve(
            AuthComponent(type="oauth", details=ComponentDetails(providers=["google", "facebook"]))
        )
        assert component.snippet.startswith('<div id="row">')

    def test_passwordless_by_method(self):
        html = '<div><button id="pk">Use a passkey</button><input inputmode="numeric"></div>'
        resolver = StaticResolver.from_markup(html)
        component = resolver.resolve(
            AuthComponent(type="passwordless", details=ComponentDetails(method="passkey"))
        )
        assert component.snippet == '<button id="pk">Use a passkey</button>'

    def test_passwordless_falls_back_to_numeric_input(self):
        resolver = StaticResolver.from_markup('<form><input inputmode="numeric" name="code"></form>')
        component = resolver.resolve(
            AuthComponent(type="passwordless", details=ComponentDetails(method="otp"))
        )
        assert 'inputmode="numeric"' in component.snippet

    def test_missing_component_gets_placeholder(self, no_auth_page):
        resolver = StaticResolver.from_markup(no_auth_page)
        component = resolver.resolve(
            AuthComponent(type="oauth", details=ComponentDetails(providers=["github"]))
        )
        assert component.snippet == "<!-- OAuth: github (extraction failed) -->"

    def test_snippet_is_truncated(self):
        options = "".join(f"<p>{'z' * 100}</p>" for _ in range(40))
        html = f'<form><input type="password">{options}</form>'
        resolver = StaticResolver(BeautifulSoup(html, "html.parser"))
        component = resolver.resolve(AuthComponent(type="traditional"))
        assert len(component.snippet) == 1503
        assert component.snippet.endswith("...")
