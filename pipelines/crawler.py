"""Web crawler pipeline for DocGround.

Runs an explicit worklist over the Frontier with a bounded pool of fetch
tasks. Only the coordinator loop mutates the Frontier.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Union
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from .errors import FetchError
from .extractor import ExtractedPage, PageExtractor
from .frontier import Frontier
from .loaders import PageLoader
from observability.logging import get_structured_logger
from observability.prometheus_metrics import record_page

logger = logging.getLogger(__name__)
failure_logger = get_structured_logger(__name__, component="crawler")

PageCallback = Callable[[ExtractedPage], Union[None, Awaitable[None]]]

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

@dataclass
class CrawlError:
    """A per-URL failure recorded for the run report."""
    url: str
    message: str
    kind: str = "navigation"
    occurred_at: datetime = field(default_factory=_utcnow)

@dataclass
class CrawlStats:
    """Statistics for a crawl session."""
    total_urls: int = 0
    successful: int = 0
    rejected: int = 0
    failed: int = 0
    links_enqueued: int = 0
    start_time: datetime = field(default_factory=_utcnow)
    end_time: Optional[datetime] = None

    @property
    def duration(self) -> Optional[timedelta]:
        if self.end_time and self.start_time:
            return self.end_time - self.start_time
        return None

    def finish(self):
        """Mark crawl as finished."""
        self.end_time = _utcnow()

@dataclass
class CrawlReport:
    """Outcome of one crawl: accepted pages, stats and per-URL errors."""
    pages: List[ExtractedPage] = field(default_factory=list)
    stats: CrawlStats = field(default_factory=CrawlStats)
    errors: List[CrawlError] = field(default_factory=list)

class WebCrawler:
    """Asynchronous documentation crawler."""

    def __init__(self,
                 loader: PageLoader,
                 frontier: Frontier,
                 extractor: Optional[PageExtractor] = None,
                 max_concurrent: int = 4,
                 fetch_timeout: Optional[float] = None):
        """Initialize crawler.

        Args:
            loader: Page loader; opened by the caller
            frontier: Seeded frontier that supplies and receives URLs
            extractor: Page extractor (defaults to PageExtractor())
            max_concurrent: Maximum fetches in flight
            fetch_timeout: Hard limit per URL in seconds, covering load and
                settle time. Defaults to loader timeout plus a margin.
        """
        self.loader = loader
        self.frontier = frontier
        self.extractor = extractor or PageExtractor()
        self.max_concurrent = max(1, max_concurrent)
        if fetch_timeout is None:
            fetch_timeout = getattr(loader, 'timeout', 30.0) + getattr(loader, 'settle_delay', 0.0) + 5.0
        self.fetch_timeout = fetch_timeout

    async def _fetch_page(self, url: str) -> ExtractedPage:
        """Load and extract one URL, raising FetchError on failure."""
        try:
            html = await asyncio.wait_for(self.loader.load(url), timeout=self.fetch_timeout)
        except asyncio.TimeoutError as e:
            raise FetchError(url, f"no response within {self.fetch_timeout}s", kind="timeout") from e

        return self.extractor.extract(html, url)

    def _record_failure(self, report: CrawlReport, url: str, error: Exception):
        if isinstance(error, FetchError):
            crawl_error = CrawlError(url=url, message=error.message, kind=error.kind)
        else:
            crawl_error = CrawlError(url=url, message=f"{type(error).__name__}: {error}", kind="extraction")

        report.errors.append(crawl_error)
        report.stats.failed += 1
        record_page("failed")
        failure_logger.warning(f"Failed to crawl {url}: {crawl_error.message}",
                               url=url, kind=crawl_error.kind)

    async def _handle_page(self, report: CrawlReport, page: ExtractedPage,
                           on_page: Optional[PageCallback]):
        added = self.frontier.enqueue_discovered(page.links)
        report.stats.links_enqueued += added

        if not page.accepted:
            report.stats.rejected += 1
            record_page("rejected")
            logger.info(f"Skipped {page.url}: not enough content")
            return

        report.stats.successful += 1
        record_page("success")
        report.pages.append(page)
        logger.info(f"Crawled {page.url} ({len(page.sections)} sections, {added} new links)")

        if on_page is not None:
            result = on_page(page)
            if asyncio.iscoroutine(result):
                await result

    async def crawl(self, on_page: Optional[PageCallback] = None) -> CrawlReport:
        """Crawl until the queue is drained or the page budget is spent.

        Args:
            on_page: Optional callback invoked for each accepted page

        Returns:
            CrawlReport with accepted pages, stats and per-URL errors
        """
        report = CrawlReport()
        in_flight: dict = {}

        logger.info(f"Starting crawl: {self.frontier.pending_count} pending URLs, "
                    f"budget {self.frontier.max_pages}, concurrency {self.max_concurrent}")

        try:
            while True:
                free_slots = self.max_concurrent - len(in_flight)
                for url in self.frontier.next_batch(free_slots) if free_slots > 0 else []:
                    report.stats.total_urls += 1
                    logger.debug(f"Fetching {url} ({self.frontier.visited_count}/{self.frontier.max_pages})")
                    task = asyncio.ensure_future(self._fetch_page(url))
                    in_flight[task] = url

                if not in_flight:
                    break

                done, _ = await asyncio.wait(in_flight.keys(), return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    url = in_flight.pop(task)
                    error = task.exception()
                    if error is not None:
                        self._record_failure(report, url, error)
                        continue
                    await self._handle_page(report, task.result(), on_page)
        finally:
            for task in in_flight:
                task.cancel()

        report.stats.finish()

        if self.frontier.budget_exhausted:
            logger.info(f"Page budget of {self.frontier.max_pages} reached; "
                        f"{self.frontier.pending_count} URLs left pending")

        logger.info(f"Crawl completed: {report.stats.successful} successful, "
                    f"{report.stats.rejected} rejected, {report.stats.failed} failed "
                    f"out of {report.stats.total_urls} URLs")

        return report

async def crawl_with_loader(loader: PageLoader,
                            frontier: Frontier,
                            extractor: Optional[PageExtractor] = None,
                            max_concurrent: int = 4,
                            on_page: Optional[PageCallback] = None) -> CrawlReport:
    """Convenience function: open the loader, crawl, close the loader."""
    async with loader:
        crawler = WebCrawler(loader, frontier, extractor=extractor, max_concurrent=max_concurrent)
        return await crawler.crawl(on_page=on_page)
