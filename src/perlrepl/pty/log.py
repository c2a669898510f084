"""Output log for a REPL session."""

from __future__ import annotations

import asyncio
import re


class OutputLog:
    """Growing output log with an insertion marker.

    Process output is inserted at the marker, which then moves past it.
    Text can also be inserted at the marker by the sender (the line break
    that keeps echoed input off the prompt line). Both kinds of insertion
    must happen on the event loop thread; the log does no locking.

    Positions handed out by ``end_position`` are absolute: they keep
    counting when old lines are trimmed from the head, so a reader can
    remember where it stopped and call ``read_from`` later.

    The log outlives any single process: when a session is respawned the
    registry hands the same log to the replacement.
    """

    def __init__(self, max_lines: int = 10_000, prompt_pattern: str | None = None) -> None:
        self._text: str = ""
        self._marker: int = 0
        self._dropped: int = 0  # Characters trimmed from the head
        self._total_chars: int = 0  # Total characters ever inserted
        self._max_lines = max_lines
        self._prompt = re.compile(prompt_pattern) if prompt_pattern else None
        self._data_event: asyncio.Event | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    # --- mutation ---

    def insert(self, text: str) -> None:
        """Insert text at the marker and advance the marker past it."""
        if not text:
            return
        self._text = self._text[: self._marker] + text + self._text[self._marker :]
        self._marker += len(text)
        self._total_chars += len(text)
        self._trim()
        if self._data_event is not None:
            self._data_event.set()

    def insert_break(self) -> None:
        """Put a line break at the marker so the next echo starts a new line."""
        self.insert("\n")

    def clear(self) -> None:
        """Clear the log."""
        self._dropped += len(self._text)
        self._text = ""
        self._marker = 0

    def _trim(self) -> None:
        excess = self._text.count("\n") + 1 - self._max_lines
        if excess <= 0:
            return
        cut = 0
        for _ in range(excess):
            cut = self._text.index("\n", cut) + 1
        self._text = self._text[cut:]
        self._marker = max(0, self._marker - cut)
        self._dropped += cut

    # --- waiting ---

    async def wait_for_data(self, timeout: float | None = None) -> bool:
        """Wait until something is inserted (or timeout).

        Returns True if data arrived, False on timeout.
        Resets the event so the next call blocks again.
        """
        loop = asyncio.get_running_loop()
        if self._data_event is None or self._loop is not loop:
            self._loop = loop
            self._data_event = asyncio.Event()
        try:
            await asyncio.wait_for(self._data_event.wait(), timeout=timeout)
            self._data_event.clear()
            return True
        except asyncio.TimeoutError:
            return False

    # --- reading ---

    @property
    def marker(self) -> int:
        """Insertion marker as an offset into ``text``."""
        return self._marker

    @property
    def text(self) -> str:
        return self._text

    @property
    def end_position(self) -> int:
        """Absolute position just past the newest content."""
        return self._dropped + len(self._text)

    @property
    def total_chars(self) -> int:
        return self._total_chars

    def read_from(self, position: int) -> str:
        """Text from an absolute position to the end (trimmed text is lost)."""
        return self._text[max(0, position - self._dropped) :]

    @property
    def lines(self) -> list[str]:
        return self._text.split("\n")

    @property
    def line_count(self) -> int:
        return self._text.count("\n") + 1 if self._text else 0

    def read_tail(self, n: int = 100) -> list[str]:
        """Read the last N lines."""
        lines = self.lines if self._text else []
        return lines[-n:] if len(lines) > n else lines

    def search(self, pattern: str, limit: int = 50) -> list[tuple[int, str]]:
        """Search for lines matching a regex pattern.

        Returns list of (line_number, line_text) tuples.
        """
        try:
            compiled = re.compile(pattern)
        except re.error:
            return []

        results = []
        for i, line in enumerate(self.lines):
            if compiled.search(line):
                results.append((i, line))
                if len(results) >= limit:
                    break
        return results

    # --- prompts ---

    def is_prompt(self, line: str) -> bool:
        return self._prompt is not None and self._prompt.match(line) is not None

    def at_prompt(self) -> bool:
        """True when the line holding the marker is an input-ready prompt."""
        line_start = self._text.rfind("\n", 0, self._marker) + 1
        return self.is_prompt(self._text[line_start : self._marker])
