"""Observability package for DocGround."""

from .logging import (
    setup_logging,
    setup_logging_from_config,
    get_logger,
    get_structured_logger,
    log_performance
)
from .prometheus_metrics import (
    record_page,
    record_chunks,
    record_search_metrics,
    record_corpus_size,
    get_metrics_summary,
    render_metrics,
    docground_registry
)

__all__ = [
    'setup_logging',
    'setup_logging_from_config',
    'get_logger',
    'get_structured_logger',
    'log_performance',
    'record_page',
    'record_chunks',
    'record_search_metrics',
    'record_corpus_size',
    'get_metrics_summary',
    'render_metrics',
    'docground_registry'
]
