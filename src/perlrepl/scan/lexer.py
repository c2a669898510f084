"""Lexical classification of text offsets.

A lexer answers one question for the expression scanner: is the position
*before* the character at ``offset`` plain code, inside a string/pattern
literal, or inside a comment?  It never builds tokens for anyone else and
does not try to recover from malformed input: an unterminated literal simply
runs to the end of the text.
"""

from __future__ import annotations

import enum
import re
from functools import lru_cache
from typing import Protocol, Sequence


class Classification(enum.StrEnum):
    CODE = "code"
    LITERAL = "literal"
    COMMENT = "comment"


class Lexer(Protocol):
    """Pluggable per-offset classifier used by the expression scanner."""

    def classify(self, text: str, offset: int) -> Classification:
        """Classify the position before ``text[offset]``.

        ``offset == len(text)`` is valid and classifies the end of the text.
        """
        ...


# ---------------------------------------------------------------------------
# Perl
# ---------------------------------------------------------------------------

_QUOTE_OPS: dict[str, int] = {
    "q": 1,
    "qq": 1,
    "qw": 1,
    "qx": 1,
    "m": 1,
    "qr": 1,
    "s": 2,
    "tr": 2,
    "y": 2,
}

# Barewords after which a "/" or "<<" starts a term rather than an operator
_TERM_KEYWORDS = frozenset(
    {
        "and",
        "cmp",
        "die",
        "else",
        "elsif",
        "eq",
        "ge",
        "grep",
        "gt",
        "if",
        "join",
        "le",
        "lt",
        "map",
        "ne",
        "not",
        "or",
        "print",
        "printf",
        "push",
        "return",
        "say",
        "split",
        "unless",
        "unshift",
        "until",
        "warn",
        "while",
        "x",
        "xor",
    }
)

_BRACKETS = {"(": ")", "[": "]", "{": "}", "<": ">"}
_CLOSERS = frozenset(")]}>")
_BAD_QUOTE_DELIMS = frozenset(",;)=")

_WORD_RE = re.compile(r"[A-Za-z_]\w*(?:::\w+)*")
_HEREDOC_RE = re.compile(r"<<(~?)(?:\"([^\"\n]*)\"|'([^'\n]*)'|([A-Za-z_]\w*))")
_POD_START_RE = re.compile(r"=[A-Za-z]")
_TRAILER_RE = re.compile(r"__(?:END|DATA)__\b")
_FAT_COMMA_RE = re.compile(r"[ \t]*=>")
_POD_CUT_RE = re.compile(r"^=cut\b.*$", re.MULTILINE)


def _find_close(text: str, start: int, opener: str, closer: str) -> int:
    """Index of the delimiter closing a literal whose body begins at ``start``.

    Bracketing delimiters nest. Returns -1 when the literal is unterminated.
    """
    depth = 1
    i = start
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == closer:
            depth -= 1
            if depth == 0:
                return i
        elif ch == opener and opener != closer:
            depth += 1
        i += 1
    return -1


class _PerlClassifier:
    """Single left-to-right pass producing one classification per offset."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.n = len(text)
        self.states: list[Classification] = [Classification.CODE] * (self.n + 1)
        self.i = 0
        self.expect_term = True
        self.heredocs: list[tuple[str, bool]] = []

    def mark(self, start: int, end: int, cls: Classification) -> None:
        end = min(end, self.n + 1)
        if end > start:
            self.states[start:end] = [cls] * (end - start)

    def literal_through(self, opening: int, closing: int) -> int:
        """Mark a literal spanning ``opening``..``closing``; return next index."""
        if closing < 0:
            self.mark(opening + 1, self.n + 1, Classification.LITERAL)
            return self.n
        self.mark(opening + 1, closing + 1, Classification.LITERAL)
        return closing + 1

    def at_line_start(self) -> bool:
        return self.i == 0 or self.text[self.i - 1] == "\n"

    def run(self) -> list[Classification]:
        text = self.text
        while self.i < self.n:
            ch = text[self.i]
            if self.at_line_start() and self._line_start_construct():
                continue
            if ch == "\n":
                self._newline()
            elif ch in " \t\r\f":
                self.i += 1
            elif ch == "#":
                self._comment()
            elif ch in "'\"`":
                self.i = self.literal_through(
                    self.i, _find_close(text, self.i + 1, ch, ch)
                )
                self.expect_term = False
            elif ch == "$":
                self._scalar()
            elif ch == "@" or (ch in "%&" and self.expect_term):
                self._sigiled()
            elif ch == "/":
                self._slash()
            elif ch == "<" and text.startswith("<<", self.i):
                self._heredoc_or_shift()
            elif ch.isdigit():
                while self.i < self.n and (text[self.i].isalnum() or text[self.i] in "._"):
                    self.i += 1
                self.expect_term = False
            elif ch.isalpha() or ch == "_":
                self._word()
            elif ch in ")]}":
                self.i += 1
                self.expect_term = False
            else:
                self.i += 1
                self.expect_term = True
        return self.states

    # --- line-level constructs ---

    def _line_start_construct(self) -> bool:
        text = self.text
        if _POD_START_RE.match(text, self.i):
            cut = _POD_CUT_RE.search(text, self.i)
            end = self.n if cut is None else cut.end()
            self.mark(self.i + 1, end + 1, Classification.COMMENT)
            self.i = min(end + 1, self.n)
            return True
        if _TRAILER_RE.match(text, self.i):
            self.mark(self.i + 1, self.n + 1, Classification.COMMENT)
            self.i = self.n
            return True
        return False

    def _newline(self) -> None:
        self.i += 1
        while self.heredocs:
            terminator, indented = self.heredocs.pop(0)
            self._heredoc_body(terminator, indented)

    def _heredoc_body(self, terminator: str, indented: bool) -> None:
        text = self.text
        body_start = self.i
        pos = body_start
        while pos < self.n:
            eol = text.find("\n", pos)
            line_end = self.n if eol < 0 else eol
            line = text[pos:line_end].rstrip("\r")
            if (line.strip() if indented else line) == terminator:
                self.mark(body_start + 1, line_end + 1, Classification.LITERAL)
                self.i = min(line_end + 1, self.n)
                return
            pos = line_end + 1
        self.mark(body_start + 1, self.n + 1, Classification.LITERAL)
        self.i = self.n

    def _comment(self) -> None:
        eol = self.text.find("\n", self.i)
        end = self.n if eol < 0 else eol
        self.mark(self.i + 1, end + 1, Classification.COMMENT)
        self.i = end

    # --- variables ---

    def _scalar(self) -> None:
        text = self.text
        j = self.i + 1
        if j < self.n:
            nxt = text[j]
            if nxt == "#" and j + 1 < self.n and (
                text[j + 1] in "{$_" or text[j + 1].isalpha()
            ):
                j += 1
            elif nxt == "^" and j + 1 < self.n and text[j + 1].isupper():
                j += 2
            elif not (nxt.isalnum() or nxt == "_" or nxt in "{:" or nxt.isspace()):
                # Punctuation variable: $; $' $" $/ $$ ...
                j += 1
        m = _WORD_RE.match(text, j)
        self.i = m.end() if m else j
        self.expect_term = False

    def _sigiled(self) -> None:
        m = _WORD_RE.match(self.text, self.i + 1)
        self.i = m.end() if m else self.i + 1
        self.expect_term = m is None

    # --- operators that may open literals ---

    def _slash(self) -> None:
        if not self.expect_term:
            self.i += 2 if self.text.startswith("//", self.i) else 1
            self.expect_term = True
            return
        self.i = self.literal_through(
            self.i, _find_close(self.text, self.i + 1, "/", "/")
        )
        self._skip_modifiers()

    def _heredoc_or_shift(self) -> None:
        m = _HEREDOC_RE.match(self.text, self.i)
        bare = m is not None and m.group(4) is not None
        if m is None or (bare and not self.expect_term):
            self.i += 2
            self.expect_term = True
            return
        terminator = next(g for g in m.group(2, 3, 4) if g is not None)
        self.heredocs.append((terminator, m.group(1) == "~"))
        self.i = m.end()
        self.expect_term = False

    def _word(self) -> None:
        text = self.text
        m = _WORD_RE.match(text, self.i)
        assert m is not None
        word = m.group(0)
        start = self.i
        self.i = m.end()
        parts = _QUOTE_OPS.get(word)
        if parts is not None and self._quote_op_allowed(start):
            if self._quote_like(parts):
                self.expect_term = False
                return
        self.expect_term = word in _TERM_KEYWORDS

    def _quote_op_allowed(self, start: int) -> bool:
        text = self.text
        if start > 0 and text[start - 1] == "-" and (start < 2 or not text[start - 2].isalnum()):
            return False  # file test such as -s $path
        if text.startswith("->", max(start - 2, 0)) and start >= 2:
            return False
        return _FAT_COMMA_RE.match(text, self.i) is None

    def _quote_like(self, parts: int) -> bool:
        text = self.text
        j = self.i
        while j < self.n and text[j] in " \t\r\n":
            j += 1
        if j >= self.n:
            return False
        delim = text[j]
        if delim.isalnum() or delim == "_" or delim in _BAD_QUOTE_DELIMS or delim in _CLOSERS:
            return False
        if delim == "#" and j > self.i:
            return False
        opening = j
        closer = _BRACKETS.get(delim, delim)
        close = _find_close(text, j + 1, delim, closer)
        if parts == 2 and close >= 0:
            if delim in _BRACKETS:
                k = close + 1
                while k < self.n and text[k] in " \t\r\n":
                    k += 1
                if k < self.n:
                    second = text[k]
                    close = _find_close(text, k + 1, second, _BRACKETS.get(second, second))
                else:
                    close = -1
            else:
                close = _find_close(text, close + 1, delim, closer)
        self.i = self.literal_through(opening, close)
        self._skip_modifiers()
        return True

    def _skip_modifiers(self) -> None:
        while self.i < self.n and self.text[self.i].isalpha():
            self.i += 1
        self.expect_term = False


@lru_cache(maxsize=16)
def _perl_states(text: str) -> tuple[Classification, ...]:
    return tuple(_PerlClassifier(text).run())


class PerlLexer:
    """Classifies offsets in Perl source.

    Understands quoted strings, quote-like operators (``q qq qw qx m qr s
    tr y``), match patterns in term position, comments, POD blocks, heredoc
    bodies and ``__END__``/``__DATA__`` trailers.
    """

    def classifications(self, text: str) -> Sequence[Classification]:
        return _perl_states(text)

    def classify(self, text: str, offset: int) -> Classification:
        states = _perl_states(text)
        offset = max(0, min(offset, len(text)))
        return states[offset]

    def in_literal(self, text: str, offset: int) -> bool:
        """True when ``offset`` sits inside a literal opened earlier."""
        return self.classify(text, offset) is Classification.LITERAL
