"""Send commands: route source text to the REPL session."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from perlrepl.editor.display import OutputSynchronizer
from perlrepl.editor.document import Document
from perlrepl.errors import NoSelectionError
from perlrepl.pty.ansi import normalize_newlines
from perlrepl.pty.registry import SessionRegistry
from perlrepl.scan.expression import ExpressionScanner

if TYPE_CHECKING:
    from perlrepl.session.wire import Wire

logger = logging.getLogger(__name__)


class RegionSender:
    """Sends a range of source text to the session and reveals the output."""

    def __init__(
        self,
        registry: SessionRegistry,
        synchronizer: OutputSynchronizer,
        name: str | None = None,
        wire: Wire | None = None,
    ) -> None:
        self.registry = registry
        self.synchronizer = synchronizer
        self.name = name or registry.default_name
        self._wire = wire

    async def send_range(self, source: str, start: int | None, end: int | None) -> bool:
        """Send ``source[start:end]`` followed by a newline.

        Returns False without touching the session when the range is missing
        or empty. A SpawnError from starting the session propagates.
        """
        if start is None or end is None or end <= start:
            return False

        session = await self.registry.ensure(self.name)

        # Echoed input must not land on the prompt line that is still
        # sitting at the marker.
        session.log.insert_break()

        text = normalize_newlines(source[start:end])
        self.registry.send(session, text)
        self.registry.send(session, "\n")
        logger.debug("Sent %d chars to %s", len(text), self.name)

        self.synchronizer.reveal(self.name)
        if self._wire:
            self._wire.send_input(self.name, text)
        return True


class ReplCommands:
    """The editor-facing commands: send region, line, or expression."""

    def __init__(self, sender: RegionSender, scanner: ExpressionScanner | None = None) -> None:
        self.sender = sender
        self.scanner = scanner or ExpressionScanner()

    async def send_region(self, doc: Document) -> bool:
        selection = doc.selection
        if selection is None:
            raise NoSelectionError()
        return await self.sender.send_range(doc.text, *selection)

    async def send_line(self, doc: Document) -> bool:
        start, end = doc.line_bounds()
        return await self.sender.send_range(doc.text, start, end)

    async def send_expression(self, doc: Document) -> bool:
        bounds = self.scanner.expression_range(doc.text, doc.cursor)
        if bounds is None:
            return False
        return await self.sender.send_range(doc.text, *bounds)
