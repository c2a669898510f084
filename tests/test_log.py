"""Tests for perlrepl.pty.log.OutputLog."""

from __future__ import annotations

import asyncio

from perlrepl.config import DEFAULT_PROMPT_PATTERN
from perlrepl.pty.log import OutputLog


class TestOutputLogBasics:
    def test_empty(self) -> None:
        log = OutputLog()
        assert log.text == ""
        assert log.marker == 0
        assert log.line_count == 0
        assert log.end_position == 0

    def test_insert_advances_marker(self) -> None:
        log = OutputLog()
        log.insert("hello")
        log.insert(" world")
        assert log.text == "hello world"
        assert log.marker == len("hello world")
        assert log.total_chars == 11

    def test_insert_empty_is_noop(self) -> None:
        log = OutputLog()
        log.insert("")
        assert log.text == ""
        assert log.total_chars == 0

    def test_insert_break(self) -> None:
        log = OutputLog()
        log.insert("re.pl$ ")
        log.insert_break()
        log.insert("1 + 1")
        assert log.lines == ["re.pl$ ", "1 + 1"]

    def test_line_count(self) -> None:
        log = OutputLog()
        log.insert("a\nb\nc")
        assert log.line_count == 3


class TestOutputLogTrimming:
    def test_max_lines_enforced(self) -> None:
        log = OutputLog(max_lines=3)
        log.insert("a\nb\nc\nd")
        assert log.lines == ["b", "c", "d"]
        assert log.total_chars == 7

    def test_positions_stay_absolute(self) -> None:
        log = OutputLog(max_lines=3)
        log.insert("a\nb\nc\nd")
        # "a\n" was dropped but the end keeps counting from the first insert
        assert log.end_position == 7
        assert log.marker == len(log.text)

    def test_read_from_after_trim(self) -> None:
        log = OutputLog(max_lines=2)
        log.insert("one\n")
        pos = log.end_position
        log.insert("two\nthree")
        assert log.read_from(pos) == "two\nthree"
        # Positions inside the trimmed head read from what is left
        assert log.read_from(0) == "two\nthree"


class TestOutputLogRead:
    def test_read_from(self) -> None:
        log = OutputLog()
        log.insert("first\n")
        pos = log.end_position
        log.insert("second\n")
        assert log.read_from(pos) == "second\n"

    def test_read_from_end_is_empty(self) -> None:
        log = OutputLog()
        log.insert("abc")
        assert log.read_from(log.end_position) == ""

    def test_read_tail(self) -> None:
        log = OutputLog()
        log.insert("\n".join(f"line {i}" for i in range(10)))
        assert log.read_tail(2) == ["line 8", "line 9"]

    def test_read_tail_more_than_available(self) -> None:
        log = OutputLog()
        log.insert("a\nb")
        assert log.read_tail(50) == ["a", "b"]

    def test_read_tail_empty(self) -> None:
        assert OutputLog().read_tail(5) == []

    def test_search(self) -> None:
        log = OutputLog()
        log.insert("ok\nError: foo\nok\nError: bar")
        results = log.search(r"^Error")
        assert results == [(1, "Error: foo"), (3, "Error: bar")]

    def test_search_limit(self) -> None:
        log = OutputLog()
        log.insert("x\nx\nx")
        assert len(log.search("x", limit=2)) == 2

    def test_search_invalid_regex(self) -> None:
        log = OutputLog()
        log.insert("abc")
        assert log.search("[invalid") == []


class TestOutputLogClear:
    def test_clear(self) -> None:
        log = OutputLog()
        log.insert("abc\ndef")
        end = log.end_position
        log.clear()
        assert log.text == ""
        assert log.marker == 0
        assert log.end_position == end

    def test_insert_after_clear(self) -> None:
        log = OutputLog()
        log.insert("old")
        log.clear()
        pos = log.end_position
        log.insert("new")
        assert log.read_from(pos) == "new"


# ---------------------------------------------------------------------------
# Prompt detection
# ---------------------------------------------------------------------------


class TestOutputLogPrompt:
    def test_no_pattern_never_at_prompt(self) -> None:
        log = OutputLog()
        log.insert("re.pl$ ")
        assert not log.at_prompt()

    def test_default_pattern(self) -> None:
        log = OutputLog(prompt_pattern=DEFAULT_PROMPT_PATTERN)
        log.insert("$ 1 + 1\n2\nre.pl$ ")
        assert log.at_prompt()

    def test_output_after_prompt(self) -> None:
        log = OutputLog(prompt_pattern=DEFAULT_PROMPT_PATTERN)
        log.insert("re.pl$ ")
        log.insert_break()
        log.insert("2")
        assert not log.at_prompt()

    def test_is_prompt(self) -> None:
        log = OutputLog(prompt_pattern=DEFAULT_PROMPT_PATTERN)
        assert log.is_prompt("re.pl$ ")
        assert log.is_prompt("$ ")
        assert not log.is_prompt("costs $5")


# ---------------------------------------------------------------------------
# Waiting
# ---------------------------------------------------------------------------


class TestOutputLogWait:
    def test_wait_for_data(self) -> None:
        async def _run() -> bool:
            log = OutputLog()
            asyncio.get_running_loop().call_later(0.01, log.insert, "x")
            return await log.wait_for_data(timeout=2)

        assert asyncio.run(_run()) is True

    def test_wait_for_data_timeout(self) -> None:
        async def _run() -> bool:
            return await OutputLog().wait_for_data(timeout=0.01)

        assert asyncio.run(_run()) is False
