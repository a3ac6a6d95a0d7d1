"""Formatting of retrieved chunks into the chat assistant's context block."""

import logging
from typing import List, Sequence

from indexer.lexical_retriever import LexicalRetriever, SearchResult

logger = logging.getLogger(__name__)

NO_CONTEXT_PLACEHOLDER = (
    "No relevant documentation found. "
    "Please provide general guidance based on your knowledge."
)
SOURCE_SEPARATOR = "\n---\n\n"
DEFAULT_CONTEXT_K = 4


def format_source(index: int, result: SearchResult) -> str:
    """Render one result as a labelled source block (1-based index)."""
    chunk = result.chunk
    title = chunk.title or "Documentation"
    section = f" - {chunk.section}" if chunk.section else ""
    return f"[Source {index}: {title}{section}]\n{chunk.content}\nURL: {chunk.url}\n"


def build_context_block(results: Sequence[SearchResult]) -> str:
    """Join results into one context block, or the placeholder if empty."""
    if not results:
        return NO_CONTEXT_PLACEHOLDER
    return SOURCE_SEPARATOR.join(
        format_source(i, result) for i, result in enumerate(results, 1)
    )


def retrieve_context(retriever: LexicalRetriever, query: str, k: int = DEFAULT_CONTEXT_K) -> str:
    """Search and format in one step. Never raises."""
    results: List[SearchResult] = []
    try:
        results = retriever.search(query, k)
    except Exception:
        logger.exception("Context retrieval failed; continuing without documentation")
    return build_context_block(results)
