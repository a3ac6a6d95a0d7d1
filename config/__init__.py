"""Configuration module for DocGround.

Provides configuration management for storage, crawling, chunking and retrieval.
"""

from .ingest_config import (
    DEFAULT_CONFIG,
    IngestConfig,
    load_ingest_config
)

__all__ = [
    'DEFAULT_CONFIG',
    'IngestConfig',
    'load_ingest_config'
]
