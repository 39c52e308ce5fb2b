"""Tests for the line-based chunker."""

import pytest

from codebase_rag.chunking.line import LineChunker, split_lines

from conftest import write_file


BRACED = "\n".join([
    "function alpha() {",
    "  const first = computeSomething(1);",
    "  const second = computeSomething(2);",
    "  const third = computeSomething(3);",
    "  return first + second + third;",
    "}",
    "function beta() {",
    "  return 42;",
    "}",
]) + "\n"


def numbered_lines(count):
    return "\n".join(f"value_{i:03d} = compute({i:03d}) + 1" for i in range(count)) + "\n"


class TestSplitLines:
    def test_empty_text(self):
        assert split_lines("", 1500, 200) == []

    def test_small_file_is_one_chunk(self):
        text = numbered_lines(5)

        chunks = split_lines(text, 1500, 200)

        assert chunks == [(text.rstrip("\n"), 1, 5)]

    def test_short_content_is_dropped(self):
        assert split_lines("x = 1\ny = 2\n", 1500, 200) == []

    def test_large_file_overlaps_consecutive_chunks(self):
        chunks = split_lines(numbered_lines(100), 300, 100)

        assert len(chunks) > 1
        assert chunks[0][1] == 1
        assert chunks[-1][2] == 100
        for (_, prev_start, prev_end), (_, start, _) in zip(chunks, chunks[1:]):
            # 100 chars of overlap is two lines
            assert start == prev_end - 1
            assert start > prev_start

    def test_no_overlap_chunks_are_contiguous(self):
        chunks = split_lines(numbered_lines(60), 300, 0)

        for (_, _, prev_end), (_, start, _) in zip(chunks, chunks[1:]):
            assert start == prev_end + 1
        assert chunks[-1][2] == 60

    def test_last_chunk_is_not_repeated(self):
        chunks = split_lines(numbered_lines(100), 300, 100)

        ranges = [(start, end) for _, start, end in chunks]
        assert len(ranges) == len(set(ranges))
        assert sum(1 for _, _, end in chunks if end == 100) == 1

    def test_chunk_extends_to_closing_brace(self):
        chunks = split_lines(BRACED, 60, 0)

        content, start, end = chunks[0]
        assert (start, end) == (1, 6)
        assert content.endswith("}")

    def test_tiny_trailing_block_is_dropped(self):
        chunks = split_lines(BRACED, 60, 0)

        assert len(chunks) == 1

    def test_huge_overlap_still_makes_progress(self):
        chunks = split_lines(numbered_lines(40), 300, 10_000)

        starts = [start for _, start, _ in chunks]
        assert starts == sorted(set(starts))
        assert chunks[-1][2] == 40


class TestLineChunker:
    def test_chunk_file(self, tmp_path):
        write_file(tmp_path, "src/auth.ts", BRACED)

        chunks = LineChunker(chunk_size=60, chunk_overlap=0).chunk_file("src/auth.ts", tmp_path)

        assert len(chunks) == 1
        chunk = chunks[0]
        assert chunk.id == "src/auth.ts:1-6"
        assert chunk.file_path == "src/auth.ts"
        assert chunk.language == "typescript"
        assert chunk.content.startswith("function alpha()")

    def test_default_sizes(self):
        chunker = LineChunker()

        assert chunker.chunk_size == 1500
        assert chunker.chunk_overlap == 200

    def test_rejects_non_positive_chunk_size(self):
        with pytest.raises(ValueError):
            LineChunker(chunk_size=0)

    def test_non_utf8_file_raises(self, tmp_path):
        (tmp_path / "latin.py").write_bytes(b"name = '\xe9t\xe9'\n" * 10)

        with pytest.raises(UnicodeDecodeError):
            LineChunker().chunk_file("latin.py", tmp_path)

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(OSError):
            LineChunker().chunk_file("missing.py", tmp_path)

    def test_crlf_line_endings_are_kept(self, tmp_path):
        raw = b"function windowsStyle() {\r\n  return 'carriage returns stay in the content';\r\n}\r\n"
        (tmp_path / "w.ts").write_bytes(raw)

        chunks = LineChunker().chunk_file("w.ts", tmp_path)

        assert len(chunks) == 1
        assert chunks[0].content == raw.decode("utf-8").rstrip("\n")
        assert chunks[0].content.count("\r\n") == 2
        assert (chunks[0].start_line, chunks[0].end_line) == (1, 3)

    def test_bare_carriage_return_is_not_a_line_break(self, tmp_path):
        raw = b"first_value = 'old mac line'\rsecond_value = 'same line'\nthird_value = compute(3)\n"
        (tmp_path / "mac.py").write_bytes(raw)

        chunks = LineChunker().chunk_file("mac.py", tmp_path)

        assert len(chunks) == 1
        assert chunks[0].end_line == 2
        assert "\r" in chunks[0].content
