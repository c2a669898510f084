"""Textual terminal editor for perlrepl."""
