"""Shared fixtures for the test suite."""

from urllib.parse import quote

import pytest


def ddg_link(url: str) -> str:
    """Wrap ``url`` the way DuckDuckGo's HTML results page does."""
    return f"//duckduckgo.com/l/?uddg={quote(url, safe='')}&rut=abc123"


def ddg_page(*urls: str) -> str:
    """Build a minimal DuckDuckGo HTML results page linking to ``urls``."""
    results = "\n".join(
        f"""
        <div class="result results_links results_links_deep web-result">
          <div class="links_main links_deep result__body">
            <h2 class="result__title">
              <a rel="nofollow" class="result__a" href="{ddg_link(url)}">Result {index}</a>
            </h2>
          </div>
        </div>"""
        for index, url in enumerate(urls, 1)
    )
    return f"<html><body><div id=\"links\" class=\"results\">{results}</div></body></html>"


@pytest.fixture
def make_page():
    """Factory fixture building results pages."""
    return ddg_page


@pytest.fixture
def make_link():
    """Factory fixture building redirect-wrapper links."""
    return ddg_link
