"""Tests for perlrepl.editor.document.Document."""

from __future__ import annotations

from pathlib import Path

from perlrepl.editor.document import Document

SOURCE = "use strict;\nmy $x = 1;\nprint $x;\n"


class TestDocumentBasics:
    def test_cursor_is_clamped(self) -> None:
        doc = Document(SOURCE, cursor=999, mark=-4)
        assert doc.cursor == len(SOURCE)
        assert doc.mark == 0

    def test_from_file(self, tmp_path: Path) -> None:
        path = tmp_path / "demo.pl"
        path.write_text(SOURCE, encoding="utf-8")
        doc = Document.from_file(path, cursor=3)
        assert doc.text == SOURCE
        assert doc.cursor == 3
        assert doc.path == str(path)


class TestSelection:
    def test_no_mark(self) -> None:
        assert Document(SOURCE, cursor=5).selection is None

    def test_empty_selection(self) -> None:
        assert Document(SOURCE, cursor=5, mark=5).selection is None

    def test_ordered(self) -> None:
        assert Document(SOURCE, cursor=3, mark=10).selection == (3, 10)
        assert Document(SOURCE, cursor=10, mark=3).selection == (3, 10)


class TestLines:
    def test_line_bounds_exclude_newline(self) -> None:
        doc = Document(SOURCE, cursor=SOURCE.index("$x = 1"))
        start, end = doc.line_bounds()
        assert doc.text[start:end] == "my $x = 1;"

    def test_line_bounds_ignore_column(self) -> None:
        doc = Document(SOURCE)
        line_start = SOURCE.index("my")
        for offset in (line_start, line_start + 4, SOURCE.index(";\nprint")):
            assert doc.line_bounds(offset) == doc.line_bounds(line_start)

    def test_line_bounds_last_line_without_newline(self) -> None:
        doc = Document("a;\nb;", cursor=4)
        assert doc.line_bounds() == (3, 5)

    def test_line_bounds_empty_line(self) -> None:
        doc = Document("a;\n\nb;", cursor=3)
        assert doc.line_bounds() == (3, 3)

    def test_offset_of(self) -> None:
        doc = Document(SOURCE)
        assert doc.offset_of(2) == SOURCE.index("my")
        assert doc.offset_of(2, 3) == SOURCE.index("$x")

    def test_offset_of_clamps_column(self) -> None:
        doc = Document(SOURCE)
        assert doc.offset_of(1, 500) == SOURCE.index("\n")

    def test_offset_of_past_last_line(self) -> None:
        doc = Document("a;\nb;")
        assert doc.offset_of(10) == len("a;\nb;")

    def test_line_column(self) -> None:
        doc = Document(SOURCE)
        assert doc.line_column(SOURCE.index("$x")) == (2, 3)
        assert doc.line_column(0) == (1, 0)
