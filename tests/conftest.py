import os
import sys
from typing import Dict, List

import pytest

# Add the project root to the path so the top-level packages import
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from pipelines.errors import FetchError
from pipelines.loaders import PageLoader


FILLER = ("This paragraph explains the feature in enough detail to pass the "
          "minimum content length used by the extractor during tests. ")


def doc_page(title: str, sections: Dict[str, str] = None, links: List[str] = None, body: str = "") -> str:
    """Build a small documentation page with nav boilerplate."""
    nav = "".join(f'<a href="{href}">{href}</a>' for href in (links or []))
    parts = [f"<h1>{title}</h1>"]
    for heading, text in (sections or {}).items():
        parts.append(f"<h2>{heading}</h2><p>{text}</p>")
    if body:
        parts.append(f"<p>{body}</p>")
    return (
        f"<html><head><title>{title} | Docs</title></head><body>"
        f"<nav>{nav}</nav>"
        f"<main>{''.join(parts)}</main>"
        f"<footer>Copyright Example Inc.</footer>"
        f"</body></html>"
    )


class FakePageLoader(PageLoader):
    """Serves canned HTML; URLs mapped to an exception raise it."""

    def __init__(self, pages: Dict[str, object]):
        super().__init__(timeout=5.0)
        self.pages = pages
        self.requested: List[str] = []
        self.started = False
        self.closed = False

    async def start(self):
        self.started = True

    async def close(self):
        self.closed = True

    async def load(self, url: str) -> str:
        self.requested.append(url)
        page = self.pages.get(url)
        if page is None:
            raise FetchError(url, "HTTP 404", kind="navigation")
        if isinstance(page, Exception):
            raise page
        return page


@pytest.fixture
def fake_loader_factory():
    return FakePageLoader
