"""Lexically aware scanning for statement boundaries."""

from perlrepl.scan.expression import ExpressionScanner
from perlrepl.scan.lexer import Classification, Lexer, PerlLexer

__all__ = [
    "Classification",
    "ExpressionScanner",
    "Lexer",
    "PerlLexer",
]
