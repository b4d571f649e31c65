"""Tests for container resolution and lowest common ancestor."""

from bs4 import BeautifulSoup

from authlens.heuristics.containment import (
    ancestor_chain,
    find_container,
    is_gross_container,
    lowest_common_ancestor,
    resolve_common_container,
)


def _soup(markup: str) -> BeautifulSoup:
    return BeautifulSoup(markup, "html.parser")


class TestFindContainer:
    def test_prefers_enclosing_form(self):
        soup = _soup('<div class="auth"><form id="f"><p><input type="password"></p></form></div>')
        assert find_container(soup.input)["id"] == "f"

    def test_keyword_ancestor(self):
        soup = _soup('<div><div id="signin-box"><span><button>Log in</button></span></div></div>')
        assert find_container(soup.button)["id"] == "signin-box"

    def test_landmark_ancestor(self):
        soup = _soup('<div><section id="s"><div><button>Log in</button></div></section></div>')
        assert find_container(soup.button)["id"] == "s"

    def test_dialog_role(self):
        soup = _soup('<div role="dialog" id="d"><div><button>Log in</button></div></div>')
        assert find_container(soup.button)["id"] == "d"

    def test_climbs_three_levels_without_hints(self):
        soup = _soup('<div id="a"><div id="b"><div id="c"><div id="d"><button>Log in</button></div></div></div></div>')
        assert find_container(soup.button)["id"] == "b"

    def test_rejects_oversized_container(self):
        filler = "x" * 200
        soup = _soup(f'<form><input type="password"><p>{filler}</p></form>')
        assert find_container(soup.input, max_text=100) is None


class TestLowestCommonAncestor:
    MARKUP = """
    <body>
      <div id="panel">
        <form id="f"><input id="pw" type="password"></form>
        <div id="social"><button id="g">Google</button><button id="a">Apple</button></div>
      </div>
    </body>
    """

    def test_ancestor_chain_is_root_first(self):
        soup = _soup(self.MARKUP)
        chain = ancestor_chain(soup.find(id="g"))
        assert chain[0] is soup
        assert chain[-1]["id"] == "social"

    def test_single_element_resolves_to_parent(self):
        soup = _soup(self.MARKUP)
        assert lowest_common_ancestor([soup.find(id="g")])["id"] == "social"

    def test_siblings(self):
        soup = _soup(self.MARKUP)
        lca = lowest_common_ancestor([soup.find(id="g"), soup.find(id="a")])
        assert lca["id"] == "social"

    def test_across_form_and_buttons(self):
        soup = _soup(self.MARKUP)
        lca = lowest_common_ancestor([soup.find(id="pw"), soup.find(id="g"), soup.find(id="a")])
        assert lca["id"] == "panel"

    def test_element_containing_the_others(self):
        soup = _soup(self.MARKUP)
        lca = lowest_common_ancestor([soup.find(id="social"), soup.find(id="g")])
        assert lca["id"] == "social"

    def test_empty(self):
        assert lowest_common_ancestor([]) is None


class TestResolveCommonContainer:
    def test_returns_panel(self):
        soup = _soup(TestLowestCommonAncestor.MARKUP)
        found = resolve_common_container([soup.find(id="pw"), soup.find(id="g")])
        assert found["id"] == "panel"

    def test_rejects_body(self):
        soup = _soup("<html><body><button>Google</button><div><input type='password'></div></body></html>")
        assert resolve_common_container([soup.button, soup.input]) is None

    def test_rejects_main(self):
        soup = _soup("<main><button>Google</button><form><input type='password'></form></main>")
        assert resolve_common_container([soup.button, soup.input]) is None

    def test_rejects_oversized(self):
        soup = _soup(f"<div><p>{'y' * 500}</p><button>Google</button><input></div>")
        assert resolve_common_container([soup.button, soup.input], max_text=100) is None

    def test_gross_container_names(self):
        soup = _soup("<html><body><main></main></body></html>")
        assert is_gross_container(soup)
        assert is_gross_container(soup.html)
        assert is_gross_container(soup.body)
        assert is_gross_container(soup.main)
