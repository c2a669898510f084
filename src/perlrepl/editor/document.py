"""Editing context handed to the send commands."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass
class Document:
    """Source text with a cursor and an optional selection anchor.

    ``mark`` is the other end of the selection; the selection is active
    only when ``mark`` is set and differs from ``cursor``.
    """

    text: str
    cursor: int = 0
    mark: int | None = None
    path: str | None = None

    def __post_init__(self) -> None:
        self.cursor = self.clamp(self.cursor)
        if self.mark is not None:
            self.mark = self.clamp(self.mark)

    @classmethod
    def from_file(cls, path: str | Path, **kwargs: int | None) -> Document:
        p = Path(path)
        return cls(text=p.read_text(encoding="utf-8"), path=str(p), **kwargs)

    def clamp(self, offset: int) -> int:
        return max(0, min(offset, len(self.text)))

    @property
    def selection(self) -> tuple[int, int] | None:
        """Ordered (start, end) of a non-empty selection, else None."""
        if self.mark is None or self.mark == self.cursor:
            return None
        return min(self.mark, self.cursor), max(self.mark, self.cursor)

    def line_bounds(self, offset: int | None = None) -> tuple[int, int]:
        """Start and end of the line holding ``offset`` (newline excluded)."""
        pos = self.cursor if offset is None else self.clamp(offset)
        start = self.text.rfind("\n", 0, pos) + 1
        end = self.text.find("\n", pos)
        return start, len(self.text) if end < 0 else end

    def offset_of(self, line: int, column: int = 0) -> int:
        """Offset of a 1-based line and 0-based column, clamped to the line."""
        start = 0
        for _ in range(max(line, 1) - 1):
            nl = self.text.find("\n", start)
            if nl < 0:
                return len(self.text)
            start = nl + 1
        _, end = self.line_bounds(start)
        return min(start + max(column, 0), end)

    def line_column(self, offset: int) -> tuple[int, int]:
        """1-based line and 0-based column of an offset."""
        pos = self.clamp(offset)
        line = self.text.count("\n", 0, pos) + 1
        return line, pos - (self.text.rfind("\n", 0, pos) + 1)
