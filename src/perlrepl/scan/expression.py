"""Find the statement around a cursor."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from perlrepl.config import ScannerConfig
from perlrepl.scan.lexer import Classification, Lexer, PerlLexer

logger = logging.getLogger(__name__)


@dataclass
class ExpressionScanner:
    """Walks forward/backward from a position to the nearest statement boundaries.

    A *boundary* is a position classified as code whose preceding character
    is the statement terminator. A terminator directly after a sigil is a
    punctuation variable (``$;``) and does not end a statement.

    Scans that run off either edge of the text stop there without raising;
    the partial range is what gets sent.
    """

    lexer: Lexer = field(default_factory=PerlLexer)
    terminator: str = ";"
    sigils: str = "$@%"

    @classmethod
    def from_config(cls, config: ScannerConfig, lexer: Lexer | None = None) -> ExpressionScanner:
        return cls(
            lexer=lexer or PerlLexer(),
            terminator=config.terminator,
            sigils=config.sigils,
        )

    def is_boundary(self, text: str, pos: int) -> bool:
        if pos <= 0 or pos > len(text) or text[pos - 1] != self.terminator:
            return False
        if pos >= 2 and text[pos - 2] in self.sigils:
            return False
        return self.lexer.classify(text, pos) is Classification.CODE

    def end_of_expression(self, text: str, pos: int) -> int:
        n = len(text)
        pos = max(0, min(pos, n))
        while pos < n and not self.is_boundary(text, pos):
            while pos < n and text[pos] in self.sigils:
                pos += 1
            if pos < n:
                pos += 1
        if not self.is_boundary(text, pos):
            logger.debug("No statement end found; stopping at offset %d", pos)
        return pos

    def start_of_expression(self, text: str, pos: int) -> int:
        pos = max(0, min(pos, len(text)))
        while pos > 0 and not self.is_boundary(text, pos):
            pos -= 1
            while pos > 0 and text[pos - 1] in self.sigils:
                pos -= 1
        if pos == 0:
            logger.debug("No statement start found; stopping at offset 0")
        return pos

    def expression_range(self, text: str, pos: int) -> tuple[int, int] | None:
        """Range of the statement at ``pos``, trimmed of surrounding whitespace.

        Returns None when the statement is empty.
        """
        end = self.end_of_expression(text, pos)
        probe = end
        # Step off the terminator so the backward scan does not stop on it
        if end > 0 and text[end - 1] != "\n":
            probe = end - 1
        start = self.start_of_expression(text, probe)
        while start < end and text[start].isspace():
            start += 1
        while end > start and text[end - 1].isspace():
            end -= 1
        if end <= start:
            return None
        return start, end
