"""
Chunking Service
Splits document text into overlapping chunks, preferring paragraph and sentence boundaries.
"""
from typing import Any, Iterator, List, Optional
import structlog

from doc_analysis.config import get_settings
from doc_analysis.models.schemas import Chunk

logger = structlog.get_logger()

PARAGRAPH_BREAK = "\n\n"
SENTENCE_END = ". "


class ChunkingService:
    """Splits text into bounded chunks with a configurable overlap window."""

    def __init__(self):
        self.settings = get_settings()

    def split(
        self,
        text: Any,
        max_chunk_size: Optional[int] = None,
        overlap_size: Optional[int] = None,
    ) -> List[Chunk]:
        """
        Split text into an ordered list of chunks.

        Args:
            text: Document text (non-string input is coerced with str())
            max_chunk_size: Maximum characters per chunk
            overlap_size: Characters repeated at the start of the next chunk

        Returns:
            Chunks with contiguous indices whose spans cover the whole text
        """
        max_size = max_chunk_size if max_chunk_size is not None else self.settings.max_chunk_size
        overlap = overlap_size if overlap_size is not None else self.settings.chunk_overlap

        if not isinstance(text, str):
            logger.warning("Non-string provided for chunking, converting", type=type(text).__name__)
            text = "" if text is None else str(text)

        chunks = list(self.iter_chunks(text, max_size, overlap))

        logger.info(
            "Chunking complete",
            text_length=len(text),
            chunk_count=len(chunks),
            max_chunk_size=max_size,
            overlap_size=overlap,
        )
        return chunks

    def iter_chunks(self, text: str, max_chunk_size: int, overlap_size: int) -> Iterator[Chunk]:
        """Lazily yield chunks of ``text``."""
        if max_chunk_size <= 0:
            raise ValueError(f"max_chunk_size must be positive, got {max_chunk_size}")
        if overlap_size < 0:
            raise ValueError(f"overlap_size must not be negative, got {overlap_size}")

        if not text:
            return

        if len(text) <= max_chunk_size:
            yield Chunk(index=0, content=text, start=0, end=len(text))
            return

        index = 0
        start = 0
        while start < len(text):
            hard_cut = start + max_chunk_size
            if hard_cut >= len(text):
                yield Chunk(index=index, content=text[start:], start=start, end=len(text))
                return

            cut = self._find_cut(text, start, hard_cut, max_chunk_size)
            yield Chunk(index=index, content=text[start:cut], start=start, end=cut)
            index += 1

            next_start = max(start, cut - overlap_size)
            if next_start <= start:
                # overlap swallowed the whole chunk
                next_start = cut
            start = next_start

    def _find_cut(self, text: str, start: int, hard_cut: int, max_chunk_size: int) -> int:
        """Pick a cut point in (start, hard_cut]: paragraph, then sentence, then hard cut."""
        floor = hard_cut - max_chunk_size / 2

        # Paragraph break: the cut lands on the break itself.
        pos = text.rfind(PARAGRAPH_BREAK, start + 1, hard_cut + len(PARAGRAPH_BREAK))
        if pos > start and pos >= floor:
            return pos

        # Sentence end: keep the period in this chunk.
        pos = text.rfind(SENTENCE_END, start + 1, hard_cut + 1)
        if pos > start and pos + 1 >= floor:
            return pos + 1

        return hard_cut


# Singleton
_chunking_service: Optional[ChunkingService] = None


def get_chunking_service() -> ChunkingService:
    """Get singleton chunking service instance."""
    global _chunking_service
    if _chunking_service is None:
        _chunking_service = ChunkingService()
    return _chunking_service
