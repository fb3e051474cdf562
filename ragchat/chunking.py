"""Fixed-size character chunking with overlap.

Chunks are character-exact windows: no whitespace trimming and no sentence or
paragraph awareness. Consecutive windows share exactly ``overlap_chars``
characters, and the function is pure so identical input always yields identical
boundaries.
"""
from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class Chunk:
    """A contiguous slice of one source document.

    Attributes:
        content: The slice text.
        source: Identifier of the originating document (e.g. its URL).
        chunk_index: Zero-based position of the slice within the document.
    """
    content: str
    source: str
    chunk_index: int


def chunk_text(text: str, max_chunk_chars: int, overlap_chars: int, source_id: str) -> List[Chunk]:
    """Split text into overlapping fixed-size character windows.

    Args:
        text: Input string to split.
        max_chunk_chars: Maximum characters per chunk.
        overlap_chars: Characters shared by consecutive chunks.
        source_id: Identifier stored on every chunk.

    Returns:
        List[Chunk]: Chunks in document order; empty when ``text`` is empty.

    Raises:
        ValueError: If the sizes would not make forward progress.
    """
    if max_chunk_chars < 1:
        raise ValueError("max_chunk_chars must be >= 1")
    if overlap_chars < 0 or overlap_chars >= max_chunk_chars:
        raise ValueError("overlap_chars must be in [0, max_chunk_chars)")
    if not text:
        return []

    chunks: List[Chunk] = []
    start = 0
    n = len(text)
    while start < n:
        end = min(n, start + max_chunk_chars)
        chunks.append(Chunk(content=text[start:end], source=source_id, chunk_index=len(chunks)))
        if end == n:
            break
        start = end - overlap_chars
    return chunks
