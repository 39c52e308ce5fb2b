"""Line-based chunking for any text source file."""

from pathlib import Path
from typing import List

from ..core.discovery import get_language
from ..models.chunk import CodeChunk, make_chunk_id
from .base import Chunker

# Lines that end a logical block; a chunk prefers to stop right after one
BOUNDARY_LINES = frozenset({"", "}", "};", "end"})

LOOKAHEAD_LINES = 10

# Chunks with this many non-whitespace characters or fewer are dropped
MIN_CHUNK_CHARS = 50

# chunk_overlap is given in characters; this converts it to whole lines
CHARS_PER_OVERLAP_LINE = 50


def split_lines(text: str, chunk_size: int, overlap: int) -> List[tuple[str, int, int]]:
    """Split text into overlapping line ranges.

    Each range takes lines until ``chunk_size`` characters are reached, then
    extends up to ``LOOKAHEAD_LINES`` further lines to stop after a blank line
    or a closing brace. A range that reaches the end of the file is the last
    one; otherwise the next range starts ``overlap // 50`` lines before the
    previous end, but always strictly after the previous start.

    Args:
        text: File contents
        chunk_size: Character budget per chunk (newlines included)
        overlap: Overlap between consecutive chunks, in characters

    Returns:
        List of tuples: (chunk_text, line_start, line_end), 1-based inclusive
    """
    if not text:
        return []

    lines = text.split("\n")
    # A trailing newline does not start another line
    if lines[-1] == "":
        lines.pop()
    overlap_lines = overlap // CHARS_PER_OVERLAP_LINE
    chunks = []
    start = 0

    while start < len(lines):
        end = start
        char_count = 0
        while end < len(lines) and char_count < chunk_size:
            char_count += len(lines[end]) + 1
            end += 1

        for i in range(end, min(end + LOOKAHEAD_LINES, len(lines))):
            if lines[i].strip() in BOUNDARY_LINES:
                end = i + 1
                break

        content = "\n".join(lines[start:end])
        if len(content.strip()) > MIN_CHUNK_CHARS:
            chunks.append((content, start + 1, end))

        if end >= len(lines):
            break

        next_start = end - overlap_lines
        # Always make progress
        start = next_start if next_start > start else end

    return chunks


class LineChunker(Chunker):
    """Chunker that splits on line counts and simple block boundaries.

    Language-agnostic: it knows nothing about syntax beyond blank lines and
    closing braces, so it works for every extension discovery accepts.
    """

    def __init__(self, chunk_size: int = 1500, chunk_overlap: int = 200):
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap

    def chunk_file(self, file_path: str, repo_path: Path) -> List[CodeChunk]:
        full_path = Path(repo_path) / file_path
        # Decode the raw bytes so "\r\n" and bare "\r" survive into chunk content
        text = full_path.read_bytes().decode("utf-8")
        language = get_language(file_path)

        return [
            CodeChunk(
                id=make_chunk_id(file_path, start, end),
                file_path=file_path,
                start_line=start,
                end_line=end,
                content=content,
                language=language,
            )
            for content, start, end in split_lines(text, self.chunk_size, self.chunk_overlap)
        ]
