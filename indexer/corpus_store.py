"""Durable JSON storage for the chunk corpus and the pending crawl queue."""

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, List, Optional, Sequence, Set, Union

from pipelines.chunker import Chunk
from pipelines.errors import StoreLoadError, StoreWriteError
from observability.logging import log_performance
from observability.prometheus_metrics import record_corpus_size

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _atomic_write_json(path: Path, payload: Any):
    """Write JSON to a temp file beside ``path`` and rename it into place."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(payload, f, ensure_ascii=False, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
    except (OSError, TypeError, ValueError) as e:
        raise StoreWriteError(path, str(e), cause=e) from e


def _read_json(path: Path) -> Any:
    if not path.exists():
        raise StoreLoadError(path, "file does not exist")
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise StoreLoadError(path, str(e), cause=e) from e


class CorpusStore:
    """Ordered, append-only collection of chunks in one JSON file.

    The first successful ``load()`` is cached for the lifetime of the
    store; concurrent callers wait on the same load instead of re-reading.
    """

    def __init__(self, path: PathLike):
        self.path = Path(path)
        self._chunks: Optional[List[Chunk]] = None
        self._lock = threading.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._chunks is not None

    def load(self) -> List[Chunk]:
        """Return the corpus, reading the file at most once.

        A missing or corrupt file is logged and treated as an empty corpus;
        such a result is not cached so a later call can pick up the file.
        """
        chunks = self._chunks
        if chunks is not None:
            return list(chunks)

        with self._lock:
            if self._chunks is None:
                try:
                    self._chunks = self._read()
                except StoreLoadError as e:
                    logger.warning(f"Corpus unavailable, treating as empty: {e}")
                    return []
                record_corpus_size(len(self._chunks))
                logger.info(f"Loaded {len(self._chunks)} chunks from {self.path}")
            return list(self._chunks)

    @log_performance(threshold_ms=2000.0)
    def _read(self) -> List[Chunk]:
        data = _read_json(self.path)
        if not isinstance(data, list):
            raise StoreLoadError(self.path, "expected a JSON array of chunk records")

        chunks = []
        for index, record in enumerate(data):
            try:
                chunks.append(Chunk.from_dict(record))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                raise StoreLoadError(self.path, f"invalid chunk record at index {index}: {e}", cause=e) from e
        return chunks

    def merge(self, existing: Sequence[Chunk], new: Sequence[Chunk]) -> List[Chunk]:
        """Append new chunks after existing ones.

        New chunks whose ``(url, section)`` already exists in ``existing``
        are dropped. Chunks sharing a key within ``new`` (the split parts of
        one section) are all kept.
        """
        existing_keys = {chunk.key for chunk in existing}
        merged = list(existing)
        skipped = 0

        for chunk in new:
            if chunk.key in existing_keys:
                skipped += 1
                continue
            merged.append(chunk)

        if skipped:
            logger.warning(f"Skipped {skipped} chunks already present in the corpus")

        return merged

    def save(self, chunks: Sequence[Chunk]):
        """Atomically replace the corpus file.

        Raises:
            StoreWriteError: if the file cannot be written
        """
        _atomic_write_json(self.path, [chunk.to_dict() for chunk in chunks])
        with self._lock:
            self._chunks = list(chunks)
        record_corpus_size(len(chunks))
        logger.info(f"Saved {len(chunks)} chunks to {self.path}")

    def crawled_urls(self) -> Set[str]:
        """URLs with at least one chunk in the corpus."""
        return {chunk.url for chunk in self.load()}

    def invalidate(self):
        """Drop the cached corpus so the next load re-reads the file."""
        with self._lock:
            self._chunks = None


class PendingQueueStore:
    """JSON list of normalized URLs left to crawl by a previous run."""

    def __init__(self, path: PathLike):
        self.path = Path(path)

    def load(self) -> List[str]:
        try:
            data = _read_json(self.path)
        except StoreLoadError as e:
            logger.info(f"No pending queue to resume: {e}")
            return []

        if not isinstance(data, list):
            logger.warning(f"Ignoring malformed pending queue in {self.path}")
            return []
        return [url for url in data if isinstance(url, str) and url]

    def save(self, urls: Sequence[str]):
        """Atomically replace the queue file.

        Raises:
            StoreWriteError: if the file cannot be written
        """
        _atomic_write_json(self.path, list(urls))
        logger.info(f"Saved {len(urls)} pending URLs to {self.path}")
