"""Document chunking pipeline for DocGround.

Splits extracted pages into retrieval-sized chunks, one section at a time.
"""

import logging
import re
from typing import List, Dict, Any, Optional, Tuple, Iterable
from dataclasses import dataclass

from .extractor import ExtractedPage

logger = logging.getLogger(__name__)

_WHITESPACE_RUN = re.compile(r"(\s+)")

@dataclass(frozen=True)
class Chunk:
    """One retrieval unit of page text with its provenance."""
    content: str
    url: str
    title: str
    section: Optional[str] = None

    @property
    def key(self) -> Tuple[str, Optional[str]]:
        """Identity used to detect the same page section across runs."""
        return (self.url, self.section)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the corpus file record."""
        metadata = {
            "url": self.url,
            "title": self.title,
        }
        if self.section is not None:
            metadata["section"] = self.section
        return {"content": self.content, "metadata": metadata}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Chunk':
        """Create a Chunk from a corpus record.

        Accepts both the nested ``metadata`` layout and flat records.
        """
        meta = data.get("metadata") or data
        content = data["content"]
        url = meta["url"]
        if not isinstance(content, str) or not isinstance(url, str):
            raise ValueError("chunk content and url must be strings")
        return cls(
            content=content,
            url=url,
            title=meta.get("title") or "",
            section=meta.get("section")
        )

class DocumentChunker:
    """Chunks extracted pages into bounded-size pieces."""

    def __init__(self, max_chunk_size: int = 1000):
        """Initialize chunker.

        Args:
            max_chunk_size: Maximum chunk length in characters. Only a single
                word longer than this can produce a bigger chunk.
        """
        if max_chunk_size <= 0:
            raise ValueError("max_chunk_size must be positive")
        self.max_chunk_size = max_chunk_size

    def split_words(self, text: str) -> List[str]:
        """Accumulate words into pieces no longer than ``max_chunk_size``.

        Any whitespace run is a boundary. Separators inside a piece are kept
        as written (so the heading's blank line survives); the separator at
        a split point is dropped. Words are never cut.
        """
        pieces = []
        current = ""
        separator = ""

        for token in _WHITESPACE_RUN.split(text):
            if not token:
                continue
            if token.isspace():
                separator = token
                continue
            if current and len(current) + len(separator) + len(token) > self.max_chunk_size:
                pieces.append(current)
                current = token
            else:
                current = f"{current}{separator}{token}" if current else token
            separator = ""

        if current:
            pieces.append(current)

        return pieces

    def _chunk_text(self, text: str, page: ExtractedPage, section: Optional[str]) -> List[Chunk]:
        if len(text) <= self.max_chunk_size:
            pieces = [text] if text.strip() else []
        else:
            pieces = self.split_words(text)

        return [
            Chunk(content=piece, url=page.url, title=page.title, section=section)
            for piece in pieces
        ]

    def chunk(self, page: ExtractedPage) -> List[Chunk]:
        """Chunk one page.

        Each section becomes one chunk if ``heading + body`` fits, otherwise
        it is split at word boundaries. Pages without sections are chunked
        from their whole content with no section set.
        """
        chunks: List[Chunk] = []

        for section in page.sections:
            section_text = f"{section.heading}\n\n{section.content}"
            chunks.extend(self._chunk_text(section_text, page, section.heading))

        if not page.sections and page.content:
            chunks.extend(self._chunk_text(page.content.strip(), page, None))

        logger.debug(f"Chunked {page.url} into {len(chunks)} chunks")
        return chunks

    def chunk_pages(self, pages: Iterable[ExtractedPage]) -> List[Chunk]:
        """Chunk multiple pages, preserving page order."""
        chunks = []
        for page in pages:
            chunks.extend(self.chunk(page))
        return chunks
