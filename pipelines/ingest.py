"""Resumable documentation ingestion run.

Seeds the frontier (persisted queue first, configured seeds otherwise),
crawls, chunks accepted pages and merges them into the corpus file.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from config.ingest_config import IngestConfig
from indexer.corpus_store import CorpusStore, PendingQueueStore
from observability.prometheus_metrics import record_chunks
from sources.loader import SourceConfig
from .chunker import Chunk, DocumentChunker
from .crawler import CrawlError, CrawlStats, WebCrawler
from .extractor import ExtractedPage, PageExtractor
from .frontier import CrawlScope, Frontier
from .loaders import PageLoader, create_page_loader

logger = logging.getLogger(__name__)

@dataclass
class IngestReport:
    """Summary of one ingestion run."""
    stats: CrawlStats
    errors: List[CrawlError] = field(default_factory=list)
    new_chunks: int = 0
    total_chunks: int = 0
    pending: int = 0
    resumed: bool = False

def build_scopes(sources: Iterable[SourceConfig]) -> List[CrawlScope]:
    """One crawl scope per source base URL."""
    scopes = []
    for source in sources:
        for base_url in source.base_urls:
            scopes.append(CrawlScope(
                base_url=base_url,
                include=list(source.include or []),
                exclude=list(source.exclude or [])
            ))
    return scopes

def configured_seeds(sources: Iterable[SourceConfig]) -> List[str]:
    seeds = []
    for source in sources:
        seeds.extend(source.seeds or source.base_urls)
    return seeds

def select_start_urls(pending: List[str], seeds: List[str]) -> List[str]:
    """Resume the persisted queue when it has work, else start from seeds."""
    return list(pending) if pending else list(seeds)

async def run_ingestion(config: IngestConfig,
                        sources: List[SourceConfig],
                        loader: Optional[PageLoader] = None,
                        max_pages: Optional[int] = None) -> IngestReport:
    """Run one resumable crawl and persist its results.

    Args:
        config: Ingestion configuration
        sources: Enabled crawl sources
        loader: Page loader override (defaults to the configured one)
        max_pages: Page budget override for this run

    Returns:
        IngestReport for the run

    Raises:
        StoreWriteError: if the corpus or queue cannot be written
    """
    if not sources:
        raise ValueError("At least one crawl source is required")

    store = CorpusStore(config.corpus_path)
    queue_store = PendingQueueStore(config.queue_path)

    existing = store.load()
    already_crawled = {chunk.url for chunk in existing}
    pending = queue_store.load()
    start_urls = select_start_urls(pending, configured_seeds(sources))
    resumed = bool(pending)

    if resumed:
        logger.info(f"Resuming {len(pending)} pending URLs from {config.queue_path}")
    else:
        logger.info(f"Starting from {len(start_urls)} configured seed URLs")

    budget = config.max_pages if max_pages is None else max_pages
    frontier = Frontier(build_scopes(sources), max_pages=budget)
    frontier.seed(already_crawled=already_crawled, pending=start_urls)

    chunker = DocumentChunker(max_chunk_size=config.max_chunk_size)
    extractor = PageExtractor(min_content_length=config.min_content_length)
    new_chunks: List[Chunk] = []

    def collect(page: ExtractedPage):
        chunks = chunker.chunk(page)
        new_chunks.extend(chunks)
        record_chunks(len(chunks))

    if loader is None:
        loader = create_page_loader(
            render_js=config.render_js,
            timeout=config.page_timeout,
            settle_delay=config.settle_delay,
            user_agent=config.user_agent,
            max_connections=config.concurrency * 2
        )

    async with loader:
        crawler = WebCrawler(loader, frontier, extractor=extractor, max_concurrent=config.concurrency)
        crawl_report = await crawler.crawl(on_page=collect)

    merged = store.merge(existing, new_chunks)
    store.save(merged)

    remaining = frontier.remaining_queue()
    queue_store.save(remaining)

    report = IngestReport(
        stats=crawl_report.stats,
        errors=crawl_report.errors,
        new_chunks=len(merged) - len(existing),
        total_chunks=len(merged),
        pending=len(remaining),
        resumed=resumed
    )
    _log_summary(report)
    return report

def _log_summary(report: IngestReport):
    logger.info(f"Ingestion finished: {report.stats.successful} pages, {report.new_chunks} new chunks, "
                f"{report.total_chunks} total, {report.pending} URLs pending")
    if report.errors:
        logger.warning(f"{len(report.errors)} URLs failed during this run:")
        for error in report.errors:
            logger.warning(f"  [{error.kind}] {error.url}: {error.message}")

def run_ingestion_sync(config: IngestConfig,
                       sources: List[SourceConfig],
                       loader: Optional[PageLoader] = None,
                       max_pages: Optional[int] = None) -> IngestReport:
    """Synchronous wrapper for run_ingestion."""
    return asyncio.run(run_ingestion(config, sources, loader=loader, max_pages=max_pages))
