"""Lexical relevance scoring over the chunk corpus."""

import logging
import re
import time
from dataclasses import dataclass
from typing import List, Optional

from pipelines.chunker import Chunk
from observability.prometheus_metrics import record_search_metrics
from .corpus_store import CorpusStore

logger = logging.getLogger(__name__)

EXACT_MATCH_BONUS = 100.0
TERM_MATCH_WEIGHT = 10.0
TITLE_WEIGHT = 2.0
SECTION_WEIGHT = 1.5


@dataclass
class SearchResult:
    """A chunk with its relevance score."""
    chunk: Chunk
    score: float

    def to_dict(self):
        return {
            "content": self.chunk.content,
            "url": self.chunk.url,
            "title": self.chunk.title,
            "section": self.chunk.section,
            "score": self.score,
        }


class _Query:
    """Pre-compiled form of a search query."""

    def __init__(self, text: str):
        self.phrase = text.strip().lower()
        self.term_patterns = [
            re.compile(rf"\b{re.escape(term)}\b", re.IGNORECASE)
            for term in self.phrase.split()
        ]


def score_text(query: _Query, text: Optional[str]) -> float:
    """Score one text: exact phrase bonus plus whole-word term counts."""
    if not text:
        return 0.0

    score = 0.0
    if query.phrase and query.phrase in text.lower():
        score += EXACT_MATCH_BONUS

    for pattern in query.term_patterns:
        score += TERM_MATCH_WEIGHT * len(pattern.findall(text))

    return score


def score_chunk(query: _Query, chunk: Chunk) -> float:
    content_score = score_text(query, chunk.content)
    title_score = score_text(query, chunk.title) * TITLE_WEIGHT
    section_score = score_text(query, chunk.section) * SECTION_WEIGHT
    return content_score + title_score + section_score


class LexicalRetriever:
    """Ranks corpus chunks against free-text queries.

    The corpus is read from the store on the first query and reused after.
    """

    def __init__(self, store: CorpusStore):
        self.store = store

    def search(self, query: str, k: int = 4) -> List[SearchResult]:
        """Return up to ``k`` chunks in descending score order.

        Chunks scoring zero are left out; equal scores keep corpus order.
        Never raises: failures are logged and yield an empty list.
        """
        start_time = time.perf_counter()
        try:
            results = self._search(query, k)
        except Exception:
            logger.exception(f"Search failed for query {query!r}")
            record_search_metrics(time.perf_counter() - start_time, 0, status='error')
            return []

        record_search_metrics(time.perf_counter() - start_time, len(results))
        return results

    def _search(self, query: str, k: int) -> List[SearchResult]:
        if not query or not query.strip() or k <= 0:
            return []

        chunks = self.store.load()
        if not chunks:
            return []

        compiled = _Query(query)
        scored = []
        for chunk in chunks:
            score = score_chunk(compiled, chunk)
            if score > 0:
                scored.append(SearchResult(chunk=chunk, score=score))

        # sorted() is stable, so ties keep corpus order
        ranked = sorted(scored, key=lambda result: result.score, reverse=True)
        logger.debug(f"Query {query!r}: {len(scored)} matching chunks")
        return ranked[:k]
