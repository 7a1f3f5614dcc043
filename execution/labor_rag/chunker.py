"""
Sliding-Window Text Chunker

Splits long documents (government resolutions, VDI guidance) into overlapping
windows sized for the embedding model. Window ends are snapped back to a
natural boundary (sentence end, paragraph, line, comma) when one exists in
the second half of the window, so chunks rarely cut through a sentence.

Sizes are configured in tokens and converted with a fixed chars-per-token
ratio; Lithuanian text averages about four characters per token.
"""

import re
import logging
from dataclasses import dataclass, field
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class Chunk:
    """A window of a parent document, ready for embedding."""
    parent_id: str
    index: int
    text: str
    start: int
    end: int
    total_chunks: int = 0
    overlap_with_previous: int = 0

    def to_dict(self) -> dict:
        return {
            "parent_id": self.parent_id,
            "index": self.index,
            "total_chunks": self.total_chunks,
            "text": self.text,
            "start": self.start,
            "end": self.end,
            "overlap_with_previous": self.overlap_with_previous,
        }


@dataclass
class ChunkConfig:
    """Configuration for chunking parameters."""
    chunk_tokens: int = 800
    overlap_tokens: int = 100
    chars_per_token: int = 4
    # Chunks at or below this many characters are noise (page footers, stray headings)
    min_chunk_chars: int = 100
    # Preference order: first matching boundary in the second half of the window wins
    break_points: tuple[str, ...] = field(
        default_factory=lambda: (". ", ".\n", "\n\n", "\n", ", ")
    )
    preserve_newlines: bool = True

    @property
    def window_chars(self) -> int:
        return self.chunk_tokens * self.chars_per_token

    @property
    def overlap_chars(self) -> int:
        return self.overlap_tokens * self.chars_per_token


class TextChunker:
    """
    Overlapping fixed-window chunker with boundary snapping.

    Guarantees every chunk is at most window_chars long and every
    position of the normalised text is covered by some window.
    """

    def __init__(self, config: Optional[ChunkConfig] = None):
        self.config = config or ChunkConfig()
        if self.config.overlap_chars >= self.config.window_chars:
            raise ValueError("overlap_tokens must be smaller than chunk_tokens")

    def normalise(self, text: str) -> str:
        if self.config.preserve_newlines:
            text = re.sub(r"[ \t]+", " ", text)
            return re.sub(r"\n{3,}", "\n\n", text).strip()
        return re.sub(r"\s+", " ", text).strip()

    def _snap_end(self, text: str, start: int, end: int) -> int:
        """Move a window end back to just after the preferred break point."""
        floor = start + self.config.window_chars * 0.5
        for bp in self.config.break_points:
            pos = text.rfind(bp, 0, end)
            if pos >= floor:
                return pos + len(bp)
        return end

    def windows(self, text: str) -> list[tuple[int, int]]:
        """(start, end) offsets of every window over already normalised text."""
        size = self.config.window_chars
        overlap = self.config.overlap_chars
        spans = []
        start = 0
        while start < len(text):
            end = min(start + size, len(text))
            if end < len(text):
                end = self._snap_end(text, start, end)
            spans.append((start, end))
            if end >= len(text):
                break
            next_start = end - overlap
            # Overlap larger than the snapped window would stall; continue without it
            start = next_start if next_start > start else end
        return spans

    def split(self, text: str) -> list[str]:
        """Chunk texts only, in document order."""
        return [c.text for c in self.chunk(text)]

    def chunk(self, text: str, parent_id: str = "") -> list[Chunk]:
        """
        Split a document into Chunk records.

        Args:
            text: Document text
            parent_id: ID of the parent document, copied onto every chunk

        Returns:
            Chunks with total_chunks filled in
        """
        text = self.normalise(text)
        chunks = []
        previous_end = None
        for start, end in self.windows(text):
            piece = text[start:end].strip()
            if len(piece) <= self.config.min_chunk_chars:
                continue
            chunks.append(Chunk(
                parent_id=parent_id,
                index=len(chunks),
                text=piece,
                start=start,
                end=end,
                overlap_with_previous=max(0, previous_end - start) if previous_end is not None else 0,
            ))
            previous_end = end

        for c in chunks:
            c.total_chunks = len(chunks)

        logger.debug(f"Split {len(text)} chars into {len(chunks)} chunks ({parent_id or 'unnamed'})")
        return chunks
