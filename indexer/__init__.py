"""Corpus storage and lexical retrieval for DocGround."""

from .corpus_store import CorpusStore, PendingQueueStore
from .lexical_retriever import LexicalRetriever, SearchResult

__all__ = [
    'CorpusStore',
    'PendingQueueStore',
    'LexicalRetriever',
    'SearchResult'
]
