"""HTML extraction for documentation pages.

Strips boilerplate, picks the main content region, splits it into
heading-delimited sections and collects outbound links.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from .frontier import normalize_url

logger = logging.getLogger(__name__)

BOILERPLATE_SELECTORS = [
    'nav', 'footer', 'header', 'aside', 'script', 'style', 'noscript',
    '.navigation', '.sidebar', '.nav', '.header', '.footer',
    '[role="navigation"]', '[role="banner"]', '[role="contentinfo"]',
]

# Tried in order; first region with non-empty text wins
MAIN_CONTENT_SELECTORS = [
    'main', 'article', '[role="main"]', '.content', '.documentation',
    '#content', '.main-content',
]

SECTION_HEADINGS = ('h2', 'h3')

_WHITESPACE = re.compile(r'\s+')


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE.sub(' ', text or '').strip()


@dataclass
class Section:
    """Heading-delimited part of a page."""
    heading: str
    content: str


@dataclass
class ExtractedPage:
    """Structured text pulled out of one rendered page."""
    url: str
    title: str
    content: str
    sections: List[Section] = field(default_factory=list)
    links: List[str] = field(default_factory=list)
    accepted: bool = True


class PageExtractor:
    """Turns rendered markup into an ExtractedPage."""

    def __init__(self, min_content_length: int = 100):
        """Initialize extractor.

        Args:
            min_content_length: Pages whose main text is not longer than
                this are marked as not accepted (placeholder pages)
        """
        self.min_content_length = min_content_length

    def extract(self, html: str, url: str) -> ExtractedPage:
        soup = BeautifulSoup(html or '', 'html.parser')

        title = self._extract_title(soup)
        links = self._extract_links(soup, url)

        self._strip_boilerplate(soup)
        main = self._select_main_content(soup)
        content = collapse_whitespace(main.get_text(' ')) if main is not None else ''
        sections = self._extract_sections(main) if main is not None else []

        accepted = len(content) > self.min_content_length
        if not accepted:
            logger.debug(f"Rejecting {url}: {len(content)} chars of content "
                         f"(minimum {self.min_content_length})")

        return ExtractedPage(
            url=url,
            title=title,
            content=content,
            sections=sections,
            links=links,
            accepted=accepted
        )

    def _extract_title(self, soup: BeautifulSoup) -> str:
        h1 = soup.find('h1')
        if h1 is not None:
            text = collapse_whitespace(h1.get_text(' '))
            if text:
                return text
        if soup.title is not None:
            return collapse_whitespace(soup.title.get_text(' '))
        return ''

    def _extract_links(self, soup: BeautifulSoup, page_url: str) -> List[str]:
        seen = set()
        links = []
        for anchor in soup.find_all('a', href=True):
            link = normalize_url(anchor['href'], page_url)
            if link and link not in seen:
                seen.add(link)
                links.append(link)
        return links

    def _strip_boilerplate(self, soup: BeautifulSoup):
        for selector in BOILERPLATE_SELECTORS:
            for element in soup.select(selector):
                # Nested matches may already be gone with their parent
                if not element.decomposed:
                    element.decompose()

    def _select_main_content(self, soup: BeautifulSoup) -> Optional[Tag]:
        for selector in MAIN_CONTENT_SELECTORS:
            for element in soup.select(selector):
                if collapse_whitespace(element.get_text(' ')):
                    return element

        if soup.body is not None and collapse_whitespace(soup.body.get_text(' ')):
            return soup.body
        return soup

    def _extract_sections(self, main: Tag) -> List[Section]:
        sections = []
        for heading in main.find_all(SECTION_HEADINGS):
            heading_text = collapse_whitespace(heading.get_text(' '))
            parts = []
            for sibling in heading.next_siblings:
                if isinstance(sibling, Tag):
                    if sibling.name in SECTION_HEADINGS:
                        break
                    parts.append(sibling.get_text(' '))
                elif isinstance(sibling, NavigableString) and not isinstance(sibling, Comment):
                    parts.append(str(sibling))

            body = collapse_whitespace(' '.join(parts))
            if heading_text and body:
                sections.append(Section(heading=heading_text, content=body))
        return sections
