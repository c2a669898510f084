"""Tests for perlrepl.scan.expression.ExpressionScanner."""

from __future__ import annotations

from perlrepl.config import ScannerConfig
from perlrepl.scan.expression import ExpressionScanner
from perlrepl.scan.lexer import Classification


def extract(text: str, cursor: int) -> str | None:
    bounds = ExpressionScanner().expression_range(text, cursor)
    if bounds is None:
        return None
    start, end = bounds
    return text[start:end]


class CodeOnlyLexer:
    """Treats every offset as code."""

    def classify(self, text: str, offset: int) -> Classification:
        return Classification.CODE


# ---------------------------------------------------------------------------
# Boundaries
# ---------------------------------------------------------------------------


class TestIsBoundary:
    def test_after_terminator(self) -> None:
        scanner = ExpressionScanner()
        text = "a(); b();"
        assert scanner.is_boundary(text, text.index(";") + 1)

    def test_not_after_other_char(self) -> None:
        scanner = ExpressionScanner()
        assert not scanner.is_boundary("a(); b();", 2)

    def test_start_of_text_is_not_boundary(self) -> None:
        assert not ExpressionScanner().is_boundary(";", 0)

    def test_terminator_inside_string(self) -> None:
        text = 'print "a;b";'
        assert not ExpressionScanner().is_boundary(text, text.index(";b") + 1)

    def test_punctuation_variable(self) -> None:
        text = "local $; = 1;"
        assert not ExpressionScanner().is_boundary(text, text.index("$;") + 2)


# ---------------------------------------------------------------------------
# Forward / backward scans
# ---------------------------------------------------------------------------


class TestEndOfExpression:
    def test_stops_after_terminator(self) -> None:
        text = "my $x = 1; foo();"
        assert ExpressionScanner().end_of_expression(text, 0) == text.index(";") + 1

    def test_already_at_boundary(self) -> None:
        text = "foo(); bar();"
        pos = text.index(";") + 1
        assert ExpressionScanner().end_of_expression(text, pos) == pos

    def test_skips_terminators_in_literals(self) -> None:
        text = 'print "a;b"; foo();'
        assert ExpressionScanner().end_of_expression(text, 0) == text.index('";') + 2

    def test_stops_at_end_without_terminator(self) -> None:
        text = "print 1"
        assert ExpressionScanner().end_of_expression(text, 2) == len(text)

    def test_clamps_position(self) -> None:
        assert ExpressionScanner().end_of_expression("a;", 50) == 2


class TestStartOfExpression:
    def test_stops_after_previous_terminator(self) -> None:
        text = "my $x = 1; foo();"
        pos = text.index("foo") + 2
        assert ExpressionScanner().start_of_expression(text, pos) == text.index(";") + 1

    def test_stops_at_start_of_text(self) -> None:
        text = "foo(1, 2)"
        assert ExpressionScanner().start_of_expression(text, 5) == 0

    def test_ignores_terminator_in_open_literal(self) -> None:
        text = "x(); $s = q{a; b};"
        pos = text.index("b}")
        assert ExpressionScanner().start_of_expression(text, pos) == text.index(";") + 1


# ---------------------------------------------------------------------------
# expression_range
# ---------------------------------------------------------------------------


class TestExpressionRange:
    def test_statement_around_cursor(self) -> None:
        text = "my $x = 1; foo();"
        assert extract(text, text.index("foo") + 2) == "foo();"

    def test_cursor_on_first_statement(self) -> None:
        text = "my $x = 1; foo();"
        assert extract(text, 4) == "my $x = 1;"

    def test_cursor_just_after_terminator(self) -> None:
        text = "my $x = 1; foo();"
        assert extract(text, len(text)) == "foo();"

    def test_multiline_statement(self) -> None:
        text = "my $x = 1;\nmy %h = (\n  a => 1,\n);\nprint $x;\n"
        assert extract(text, text.index("a =>")) == "my %h = (\n  a => 1,\n);"

    def test_string_with_terminator(self) -> None:
        text = 'print "a; b"; foo();'
        assert extract(text, text.index("b")) == 'print "a; b";'

    def test_unterminated_literal_is_not_split(self) -> None:
        text = 'foo(); print "abc; def'
        start, end = ExpressionScanner().expression_range(text, text.index("def"))
        assert start <= text.index('"')
        assert end == len(text)
        assert text[start:end] == 'print "abc; def'

    def test_nested_quote_like(self) -> None:
        text = "a(); my $x = q{1;{2;}3;}; b();"
        start, end = ExpressionScanner().expression_range(text, text.index("2;"))
        assert text[start:end] == "my $x = q{1;{2;}3;};"

    def test_unterminated_statement_sends_partial(self) -> None:
        text = "foo();\nprint 1"
        assert extract(text, len(text) - 1) == "print 1"

    def test_comment_terminators_are_ignored(self) -> None:
        text = "foo(); # a; b\nbar();"
        assert extract(text, text.index("bar")) == "# a; b\nbar();"

    def test_punctuation_variable(self) -> None:
        text = "foo(); local $; = '|'; bar();"
        assert extract(text, text.index("local")) == "local $; = '|';"

    def test_heredoc_body_terminators_are_not_boundaries(self) -> None:
        text = "x();\nprint <<EOF;\na; b\nEOF\n"
        scanner = ExpressionScanner()
        assert not scanner.is_boundary(text, text.index("a;") + 2)
        assert scanner.is_boundary(text, text.index("EOF;") + 4)

    def test_whitespace_only(self) -> None:
        assert extract("   \n  ", 2) is None

    def test_empty_text(self) -> None:
        assert extract("", 0) is None


# ---------------------------------------------------------------------------
# Configuration and pluggable lexers
# ---------------------------------------------------------------------------


class TestConfiguration:
    def test_from_config(self) -> None:
        scanner = ExpressionScanner.from_config(ScannerConfig(terminator=".", sigils=""))
        text = "a(1). b(2). c(3)."
        assert scanner.expression_range(text, text.index("b") + 1) == (
            text.index("b"),
            text.index("c") - 1,
        )

    def test_custom_lexer(self) -> None:
        scanner = ExpressionScanner(lexer=CodeOnlyLexer())
        text = 'print "a;b";'
        # Without literal awareness the terminator inside the string wins
        assert scanner.end_of_expression(text, 0) == text.index(";") + 1
