"""Pipelines package for DocGround.

Provides URL frontier, page loading, extraction, crawling and chunking.
The ingestion run lives in ``pipelines.ingest``.
"""

from .errors import IngestError, FetchError, StoreLoadError, StoreWriteError
from .frontier import CrawlScope, Frontier, normalize_url
from .extractor import ExtractedPage, PageExtractor, Section
from .chunker import Chunk, DocumentChunker
from .loaders import PageLoader, BrowserPageLoader, HttpPageLoader, create_page_loader
from .crawler import WebCrawler, CrawlError, CrawlReport, CrawlStats

__all__ = [
    # Errors
    'IngestError',
    'FetchError',
    'StoreLoadError',
    'StoreWriteError',

    # Frontier
    'CrawlScope',
    'Frontier',
    'normalize_url',

    # Extraction
    'ExtractedPage',
    'PageExtractor',
    'Section',

    # Chunker
    'Chunk',
    'DocumentChunker',

    # Crawler
    'PageLoader',
    'BrowserPageLoader',
    'HttpPageLoader',
    'create_page_loader',
    'WebCrawler',
    'CrawlError',
    'CrawlReport',
    'CrawlStats'
]
