"""Tests for perlrepl.pty.ansi output cleanup."""

from __future__ import annotations

from perlrepl.pty.ansi import (
    clean_output,
    normalize_newlines,
    sanitize_binary_output,
    strip_ansi,
)


class TestStripAnsi:
    def test_plain_text(self) -> None:
        assert strip_ansi("re.pl$ ") == "re.pl$ "

    def test_colour(self) -> None:
        assert strip_ansi("\x1b[1;32m$VAR1\x1b[0m = 2;") == "$VAR1 = 2;"

    def test_bracketed_paste_toggle(self) -> None:
        assert strip_ansi("\x1b[?2004hre.pl$ \x1b[?2004l") == "re.pl$ "

    def test_window_title(self) -> None:
        assert strip_ansi("\x1b]0;re.pl\x07$ ") == "$ "

    def test_charset_selection(self) -> None:
        assert strip_ansi("\x1b(Bok") == "ok"


class TestNormalizeNewlines:
    def test_crlf(self) -> None:
        assert normalize_newlines("a\r\nb\r\n") == "a\nb\n"

    def test_lone_cr(self) -> None:
        assert normalize_newlines("a\rb") == "a\nb"

    def test_lf_untouched(self) -> None:
        assert normalize_newlines("a\nb") == "a\nb"


class TestSanitizeBinaryOutput:
    def test_keeps_whitespace(self) -> None:
        assert sanitize_binary_output("a\tb\nc\r") == "a\tb\nc\r"

    def test_strips_controls(self) -> None:
        assert sanitize_binary_output("a\x00\x07\x7f\x85b") == "ab"

    def test_keeps_unicode(self) -> None:
        assert sanitize_binary_output("naïve ≠ 日本") == "naïve ≠ 日本"

    def test_strips_interlinear_annotations(self) -> None:
        assert sanitize_binary_output("a\ufff9\ufffa\ufffbb") == "ab"


class TestCleanOutput:
    def test_pty_echo(self) -> None:
        raw = "\x1b[32mprint 1\x1b[0m\r\n1\r\nre.pl$ "
        assert clean_output(raw) == "print 1\n1\nre.pl$ "

    def test_empty(self) -> None:
        assert clean_output("") == ""
