"""Keep the REPL output visible after each send."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Hashable, Protocol

from rich.console import Console
from rich.text import Text

from perlrepl.pty.log import OutputLog

logger = logging.getLogger(__name__)


class DisplayHost(Protocol):
    """The editor's window/pane layer, as seen by the synchronizer.

    A *region* is whatever the host uses to show one surface (a window, a
    pane, a widget). Region values are opaque to the synchronizer.
    """

    def active_region(self) -> Hashable | None: ...

    def region_showing(self, name: str) -> Hashable | None: ...

    def show(self, name: str) -> Hashable: ...

    def select(self, region: Hashable) -> None: ...

    def scroll_to_end(self, region: Hashable) -> None: ...


class OutputSynchronizer:
    """Reveals a session's output surface without stealing the caller's focus."""

    def __init__(self, host: DisplayHost) -> None:
        self.host = host

    def reveal(self, name: str) -> None:
        """Show ``name``'s surface scrolled to its end, then restore focus.

        Reuses a region already showing the surface; otherwise asks the host
        to show it. The previously active region is re-selected even if
        scrolling fails.
        """
        previous = self.host.active_region()
        region = self.host.region_showing(name)
        if region is None:
            region = self.host.show(name)
            logger.debug("Showing %s in region %r", name, region)
        try:
            self.host.select(region)
            self.host.scroll_to_end(region)
        finally:
            if previous is not None:
                self.host.select(previous)


# ---------------------------------------------------------------------------
# Hosts
# ---------------------------------------------------------------------------


@dataclass
class Pane:
    """One region of a MemoryDisplay."""

    id: str
    surface: str | None = None
    view_end: int = 0  # Absolute log position the view is scrolled to


class MemoryDisplay:
    """In-memory display host: a set of panes, one of them active.

    Used headless and by tests. ``show`` reuses the first pane that is not
    the active one, creating a pane when the active pane is the only one.
    """

    def __init__(
        self,
        logs: Callable[[str], OutputLog | None],
        panes: list[str] | None = None,
    ) -> None:
        self._logs = logs
        self.panes: dict[str, Pane] = {
            pane_id: Pane(pane_id) for pane_id in (panes or ["main"])
        }
        self.active: str = next(iter(self.panes))
        self.history: list[tuple[str, str]] = []

    def active_region(self) -> str:
        return self.active

    def region_showing(self, name: str) -> str | None:
        for pane in self.panes.values():
            if pane.surface == name:
                return pane.id
        return None

    def show(self, name: str) -> str:
        target = next((p for p in self.panes.values() if p.id != self.active), None)
        if target is None:
            target = Pane(f"pane-{len(self.panes) + 1}")
            self.panes[target.id] = target
        target.surface = name
        target.view_end = 0
        self.history.append(("show", target.id))
        return target.id

    def select(self, region: str) -> None:
        self.active = region
        self.history.append(("select", region))

    def scroll_to_end(self, region: str) -> None:
        pane = self.panes[region]
        log = self._logs(pane.surface) if pane.surface else None
        pane.view_end = log.end_position if log is not None else 0
        self.history.append(("scroll", region))


class ConsoleDisplay:
    """Single-region host that prints new log text to a rich Console.

    The terminal is always "showing" the session; scrolling to the end means
    printing whatever arrived since the last scroll.
    """

    REGION = "console"

    def __init__(
        self,
        logs: Callable[[str], OutputLog | None],
        console: Console | None = None,
    ) -> None:
        self._logs = logs
        self.console = console or Console(highlight=False)
        self._printed: dict[str, int] = {}
        self._surface: str | None = None

    def active_region(self) -> str:
        return self.REGION

    def region_showing(self, name: str) -> str | None:
        return self.REGION if self._surface == name else None

    def show(self, name: str) -> str:
        self._surface = name
        return self.REGION

    def select(self, region: str) -> None:
        pass

    def scroll_to_end(self, region: str) -> None:
        if self._surface is None:
            return
        log = self._logs(self._surface)
        if log is None:
            return
        start = self._printed.get(self._surface, 0)
        chunk = log.read_from(start)
        self._printed[self._surface] = log.end_position
        if chunk:
            self.console.print(Text(chunk), end="")
