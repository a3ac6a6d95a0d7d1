"""URL frontier for the documentation crawler.

Owns the visited/discovered URL sets, the pending work queue and the
eligibility rules (base-domain prefixes, path filters, page budget).
"""

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from fnmatch import fnmatch
from typing import Dict, Iterable, List, Optional, Set
from urllib.parse import urljoin, urlparse, urlunparse

logger = logging.getLogger(__name__)

CRAWLABLE_SCHEMES = {'http', 'https'}


def normalize_url(href: str, base: Optional[str] = None) -> Optional[str]:
    """Normalize a link into the form used for dedup and storage.

    Resolves ``href`` against ``base`` (root-relative against its origin,
    relative against the page itself), strips the fragment and any trailing
    slash. Returns None for empty links and non-crawlable schemes such as
    ``javascript:`` or ``mailto:``.
    """
    if href is None:
        return None
    href = href.strip()
    if not href or href.startswith('#'):
        return None

    try:
        absolute = urljoin(base, href) if base else href
        parsed = urlparse(absolute)
    except ValueError:
        return None

    if parsed.scheme.lower() not in CRAWLABLE_SCHEMES or not parsed.netloc:
        return None

    path = parsed.path.rstrip('/')
    return urlunparse(parsed._replace(
        scheme=parsed.scheme.lower(),
        netloc=parsed.netloc.lower(),
        path=path,
        fragment=''
    ))


def _path_matches(path: str, patterns: Iterable[str]) -> bool:
    return any(fnmatch(path, pattern.replace('**', '*')) for pattern in patterns)


@dataclass
class CrawlScope:
    """One allowed base-domain prefix with its path filters."""
    base_url: str
    include: List[str] = field(default_factory=list)
    exclude: List[str] = field(default_factory=list)

    def __post_init__(self):
        normalized = normalize_url(self.base_url)
        if normalized is None:
            raise ValueError(f"Invalid base URL for crawl scope: {self.base_url}")
        self.base_url = normalized

    def contains(self, url: str) -> bool:
        """Check a normalized URL against the prefix and path rules."""
        if url != self.base_url:
            if not url.startswith(self.base_url):
                return False
            # Prefix must end on a path boundary
            if url[len(self.base_url)] not in '/?':
                return False

        path = urlparse(url).path or '/'
        if self.exclude and _path_matches(path, self.exclude):
            return False
        if not self.include:
            return True
        return _path_matches(path, self.include)


class Frontier:
    """Registry of visited/discovered/pending URLs for one crawl run.

    Every check-and-insert happens under a single lock so two concurrent
    fetches can never claim the same URL.
    """

    def __init__(self, scopes: List[CrawlScope], max_pages: int = 100):
        """Initialize frontier.

        Args:
            scopes: Allowed base-domain prefixes with their path filters
            max_pages: Global budget of URLs newly visited in this run
        """
        if max_pages < 0:
            raise ValueError("max_pages must not be negative")

        self.scopes = list(scopes)
        self.max_pages = max_pages
        self.visited: Set[str] = set()
        self.already_crawled: Set[str] = set()
        # Insertion-ordered set of every URL seen this run
        self.discovered: Dict[str, None] = {}
        self._pending = deque()
        self._lock = threading.RLock()

    @property
    def visited_count(self) -> int:
        return len(self.visited)

    @property
    def budget_exhausted(self) -> bool:
        return len(self.visited) >= self.max_pages

    @property
    def pending_count(self) -> int:
        with self._lock:
            return sum(1 for url in self._pending if self._is_open(url))

    def is_in_scope(self, url: str) -> bool:
        """Check scheme and scope rules for a normalized URL."""
        if urlparse(url).scheme not in CRAWLABLE_SCHEMES:
            return False
        return any(scope.contains(url) for scope in self.scopes)

    def _is_open(self, url: str) -> bool:
        return url not in self.visited and url not in self.already_crawled

    def should_visit(self, url: str) -> bool:
        """Return True if the URL is eligible and not yet crawled."""
        normalized = normalize_url(url)
        if normalized is None:
            return False
        with self._lock:
            return self.is_in_scope(normalized) and self._is_open(normalized)

    def mark_visited(self, url: str) -> bool:
        """Atomically claim a URL for fetching.

        Returns:
            False if the URL is ineligible, already claimed or crawled, or
            the page budget is spent; True if this caller now owns it.
        """
        normalized = normalize_url(url)
        if normalized is None:
            return False
        with self._lock:
            if self.budget_exhausted:
                return False
            if not self.is_in_scope(normalized) or not self._is_open(normalized):
                return False
            self.visited.add(normalized)
            self.discovered.setdefault(normalized, None)
            return True

    def enqueue_discovered(self, urls: Iterable[str]) -> int:
        """Add newly found URLs to the pending queue.

        Returns:
            Number of URLs that were new and eligible
        """
        added = 0
        with self._lock:
            for url in urls:
                normalized = normalize_url(url)
                if normalized is None or normalized in self.discovered:
                    continue
                if not self.is_in_scope(normalized):
                    continue
                self.discovered[normalized] = None
                if self._is_open(normalized):
                    self._pending.append(normalized)
                    added += 1
        return added

    def next_batch(self, size: int = 1) -> List[str]:
        """Claim up to ``size`` pending URLs for fetching.

        Claimed URLs are marked visited. Returns an empty list once the
        pending queue is drained or the budget is reached; unclaimed URLs
        stay queued for persistence.
        """
        batch = []
        with self._lock:
            while self._pending and len(batch) < size and not self.budget_exhausted:
                url = self._pending.popleft()
                if not self._is_open(url):
                    continue
                self.visited.add(url)
                batch.append(url)
        return batch

    def remaining_queue(self) -> List[str]:
        """URLs discovered but neither visited nor crawled in a prior run."""
        with self._lock:
            return [url for url in self.discovered if self._is_open(url)]

    def seed(self, already_crawled: Iterable[str] = (), pending: Iterable[str] = ()):
        """Seed the frontier for a resumed or fresh run.

        Args:
            already_crawled: URLs from prior runs; never fetched again
            pending: Start URLs, in crawl order
        """
        with self._lock:
            for url in already_crawled:
                normalized = normalize_url(url)
                if normalized:
                    self.already_crawled.add(normalized)

        added = self.enqueue_discovered(pending)
        logger.info(f"Frontier seeded: {len(self.already_crawled)} already crawled, "
                    f"{added} pending, budget {self.max_pages}")
