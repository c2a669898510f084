"""Terminal output cleanup before it reaches the output log."""

from __future__ import annotations

import re

_ANSI_RE = re.compile(r"\x1b(?:\[[0-9;?]*[A-Za-z]|\][^\x07]*\x07|[()][A-Za-z0-9])")


def strip_ansi(text: str) -> str:
    """Strip ANSI CSI/OSC escape sequences from text."""
    return _ANSI_RE.sub("", text)


def normalize_newlines(text: str) -> str:
    """Collapse CRLF and lone CR to LF (a PTY echoes input as CRLF)."""
    return text.replace("\r\n", "\n").replace("\r", "\n")


def sanitize_binary_output(text: str) -> str:
    """Remove binary garbage from output.

    Keeps printable chars, tabs, newlines, and carriage returns.
    Strips everything else (control chars, undefined code points, format chars).
    """
    cleaned = []
    for ch in text:
        cp = ord(ch)
        if ch in ("\t", "\n", "\r"):
            cleaned.append(ch)
        elif cp >= 32 and cp not in range(0x7F, 0xA0):
            if cp not in range(0xFFF9, 0xFFFC):
                cleaned.append(ch)
    return "".join(cleaned)


def clean_output(text: str) -> str:
    return normalize_newlines(sanitize_binary_output(strip_ansi(text)))
