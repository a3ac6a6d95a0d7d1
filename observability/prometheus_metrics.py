"""Prometheus metrics for DocGround ingestion and retrieval."""

from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from prometheus_client.core import CollectorRegistry
from typing import Dict, Any
import logging

logger = logging.getLogger(__name__)

# Create custom registry for DocGround metrics
docground_registry = CollectorRegistry()

# Crawl metrics
pages_processed = Counter(
    'docground_pages_processed_total',
    'Pages processed by the crawler',
    ['outcome'],
    registry=docground_registry
)

chunks_created = Counter(
    'docground_chunks_created_total',
    'Chunks produced by the chunker',
    registry=docground_registry
)

# Search metrics
search_requests = Counter(
    'docground_search_requests_total',
    'Total number of search requests',
    ['status'],
    registry=docground_registry
)

search_duration = Histogram(
    'docground_search_duration_seconds',
    'Search duration in seconds',
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0],
    registry=docground_registry
)

search_results_count = Histogram(
    'docground_search_results_count',
    'Number of search results returned',
    buckets=[0, 1, 2, 4, 8, 16, 32],
    registry=docground_registry
)

corpus_size = Gauge(
    'docground_corpus_chunks',
    'Chunks currently loaded from the corpus store',
    registry=docground_registry
)

def record_page(outcome: str):
    """Record one crawled page ('success', 'rejected' or 'failed')."""
    pages_processed.labels(outcome=outcome).inc()

def record_chunks(count: int):
    if count > 0:
        chunks_created.inc(count)

def record_search_metrics(duration: float, results: int, status: str = 'success'):
    """Record search request metrics."""
    search_requests.labels(status=status).inc()
    search_duration.observe(duration)
    search_results_count.observe(results)

def record_corpus_size(count: int):
    corpus_size.set(count)

def get_metrics_summary() -> Dict[str, Any]:
    """Get a summary of current metric values."""
    summary = {}
    for metric in docground_registry.collect():
        for sample in metric.samples:
            labels = ",".join(f"{k}={v}" for k, v in sorted(sample.labels.items()))
            key = f"{sample.name}{{{labels}}}" if labels else sample.name
            summary[key] = sample.value
    return summary

def render_metrics() -> bytes:
    """Render the registry in Prometheus text format."""
    return generate_latest(docground_registry)

METRICS_CONTENT_TYPE = CONTENT_TYPE_LATEST
