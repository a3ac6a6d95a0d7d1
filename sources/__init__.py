"""Crawl source definitions for DocGround.

Each YAML file in this directory describes one documentation site: its
base URLs, optional seed URLs and include/exclude path globs.
"""

from .loader import (
    SourceConfig,
    SourceLoader,
    load_source_config,
    get_enabled_sources
)

__all__ = [
    'SourceConfig',
    'SourceLoader',
    'load_source_config',
    'get_enabled_sources'
]
