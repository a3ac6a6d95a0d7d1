"""Configuration loader for ingestion and retrieval settings."""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

# Default configuration
DEFAULT_CONFIG = {
    'storage': {
        'corpus_path': 'data/documents.json',
        'queue_path': 'data/pending_queue.json'
    },
    'crawl': {
        'max_pages': 100,
        'concurrency': 4,
        'page_timeout': 30.0,
        'settle_delay': 2.0,
        'render_js': True,
        'user_agent': 'DocGround/1.0'
    },
    'extraction': {
        'min_content_length': 100
    },
    'chunking': {
        'max_chunk_size': 1000
    },
    'retrieval': {
        'default_k': 4
    },
    'logging': {
        'level': 'INFO',
        'json': False,
        'file': None
    }
}

# Environment variable -> dotted config key
ENV_OVERRIDES = {
    'DOCGROUND_MAX_PAGES': ('crawl.max_pages', int),
    'DOCGROUND_LOG_LEVEL': ('logging.level', str),
    'DOCGROUND_CORPUS_PATH': ('storage.corpus_path', str),
}


class IngestConfig:
    """Ingestion configuration manager."""

    def __init__(self, config_path: Optional[str] = None, overrides: Optional[Dict[str, Any]] = None):
        self.config_path = config_path or self._get_default_config_path()
        self._config = self._load_config()
        self._apply_env_overrides()
        if overrides:
            self._config = self._deep_merge(self._config, overrides)

    def _get_default_config_path(self) -> str:
        """Get the default configuration file path."""
        possible_paths = [
            os.environ.get('DOCGROUND_CONFIG'),
            os.path.join(os.getcwd(), 'config', 'ingest_config.yaml'),
            os.path.join(Path(__file__).parent, 'ingest_config.yaml'),
        ]

        for path in possible_paths:
            if path and os.path.exists(path):
                return path

        # Return the expected path even if it doesn't exist
        return os.path.join(Path(__file__).parent, 'ingest_config.yaml')

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from file or use defaults."""
        config = copy.deepcopy(DEFAULT_CONFIG)

        if os.path.exists(self.config_path):
            try:
                with open(self.config_path, 'r', encoding='utf-8') as f:
                    file_config = yaml.safe_load(f) or {}
                config = self._deep_merge(config, file_config)
            except (OSError, yaml.YAMLError) as e:
                logger.warning(f"Failed to load ingest config from {self.config_path}: {e}; using defaults")
        else:
            logger.info(f"Ingest config file not found at {self.config_path}, using defaults")

        return config

    def _apply_env_overrides(self):
        for env_name, (key, cast) in ENV_OVERRIDES.items():
            raw = os.environ.get(env_name)
            if raw is None or raw == '':
                continue
            try:
                self.set(key, cast(raw))
            except ValueError:
                logger.warning(f"Ignoring invalid value for {env_name}: {raw!r}")

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by dotted key."""
        value = self._config

        for k in key.split('.'):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def set(self, key: str, value: Any):
        """Set a configuration value by dotted key."""
        keys = key.split('.')
        target = self._config
        for k in keys[:-1]:
            target = target.setdefault(k, {})
        target[keys[-1]] = value

    @property
    def corpus_path(self) -> Path:
        return Path(self.get('storage.corpus_path'))

    @property
    def queue_path(self) -> Path:
        return Path(self.get('storage.queue_path'))

    @property
    def max_pages(self) -> int:
        return int(self.get('crawl.max_pages', 100))

    @property
    def concurrency(self) -> int:
        return max(1, int(self.get('crawl.concurrency', 4)))

    @property
    def page_timeout(self) -> float:
        return float(self.get('crawl.page_timeout', 30.0))

    @property
    def settle_delay(self) -> float:
        return float(self.get('crawl.settle_delay', 2.0))

    @property
    def render_js(self) -> bool:
        return bool(self.get('crawl.render_js', True))

    @property
    def user_agent(self) -> str:
        return self.get('crawl.user_agent', 'DocGround/1.0')

    @property
    def min_content_length(self) -> int:
        return int(self.get('extraction.min_content_length', 100))

    @property
    def max_chunk_size(self) -> int:
        return int(self.get('chunking.max_chunk_size', 1000))

    @property
    def default_k(self) -> int:
        return int(self.get('retrieval.default_k', 4))

    def to_dict(self) -> Dict[str, Any]:
        return copy.deepcopy(self._config)


def load_ingest_config(config_path: Optional[str] = None, **overrides) -> IngestConfig:
    """Load the ingestion configuration.

    Args:
        config_path: Optional YAML file path; defaults are searched otherwise
        **overrides: Nested dictionaries merged over file and env values

    Returns:
        IngestConfig instance
    """
    return IngestConfig(config_path, overrides or None)
