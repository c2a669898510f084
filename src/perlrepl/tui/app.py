"""Terminal editor: a source pane wired to a live REPL output pane."""

from __future__ import annotations

import logging
import os

from rich.markup import escape

from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.widgets import Footer, Header, Log, Static, TextArea

from perlrepl.cli import ReplPipeline, build_pipeline
from perlrepl.config import ReplConfig
from perlrepl.editor.document import Document
from perlrepl.errors import ReplError
from perlrepl.pty.log import OutputLog
from perlrepl.session.wire import EventType, Wire, WireEvent

logger = logging.getLogger(__name__)

_EDITOR = "editor"
_OUTPUT = "output"


def location_to_offset(lines: list[str], location: tuple[int, int]) -> int:
    """Convert a (row, column) location to an offset into "\\n".join(lines)."""
    row, column = location
    row = max(0, min(row, len(lines) - 1)) if lines else 0
    offset = sum(len(line) + 1 for line in lines[:row])
    return offset + min(column, len(lines[row]) if lines else 0)


class TUILogHandler(logging.Handler):
    """Logging handler that captures the last log message for the status bar.

    Writing to stderr would corrupt the Textual display.
    """

    def __init__(self, app: ReplEditorApp) -> None:
        super().__init__()
        self._app = app
        self.last_message: str = ""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.last_message = self.format(record)
            self._app.call_later(self._app._update_status)
        except Exception:
            self.handleError(record)


class ReplEditorApp(App):
    """Editor that sends lines, regions and statements to a REPL."""

    TITLE = "perlrepl"
    CSS = """
    #main-layout {
        layout: horizontal;
        height: 1fr;
    }

    #editor {
        width: 3fr;
        border: solid $primary;
    }

    #output {
        width: 2fr;
        border: solid $secondary;
    }

    #status-bar {
        dock: bottom;
        height: 1;
        background: $surface;
        color: $text-muted;
        padding: 0 1;
    }
    """

    BINDINGS = [
        Binding("f4", "open_session", "Start REPL", priority=True),
        Binding("f5", "send_line", "Send line", priority=True),
        Binding("f6", "send_region", "Send region", priority=True),
        Binding("f7", "send_expression", "Send statement", priority=True),
        Binding("f8", "toggle_output", "Output", priority=True),
        Binding("ctrl+l", "clear_output", "Clear output", priority=True),
        Binding("ctrl+s", "save", "Save", priority=True),
        Binding("ctrl+q", "quit", "Quit", priority=True),
    ]

    def __init__(
        self,
        file_path: str,
        text: str,
        config: ReplConfig,
        wire: Wire | None = None,
    ) -> None:
        super().__init__()
        self.file_path = file_path
        self._initial_text = text
        self.config = config
        self.wire = wire or Wire()
        self.pipeline: ReplPipeline = build_pipeline(
            config, lambda _logs: self, wire=self.wire
        )
        self._output_surface: str | None = None
        self._printed: int = 0
        self._hooked_session: str | None = None
        self._last_event: str = ""
        self._log_handler: TUILogHandler | None = None

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="main-layout"):
            yield TextArea(self._initial_text, id=_EDITOR)
            yield Log(id=_OUTPUT)
        yield Static(id="status-bar")
        yield Footer()

    def on_mount(self) -> None:
        self.title = f"perlrepl - {os.path.basename(self.file_path)}"
        self.sub_title = " ".join(self.config.command)
        self.query_one(f"#{_OUTPUT}", Log).display = False
        self._install_log_handler()
        self.query_one(f"#{_EDITOR}", TextArea).focus()
        self._update_status()
        self._listen_wire()

    def _install_log_handler(self) -> None:
        root = logging.getLogger()
        for handler in root.handlers[:]:
            root.removeHandler(handler)
        self._log_handler = TUILogHandler(self)
        self._log_handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        root.addHandler(self._log_handler)

    # --- Status bar ---

    def _update_status(self) -> None:
        try:
            status = self.query_one("#status-bar", Static)
        except Exception:
            return
        session = self.pipeline.registry.get(self.pipeline.name)
        if session is None:
            state = "[dim]no session[/dim]"
        elif not session.alive:
            state = f"[red]{session.status.value}[/red]"
        elif session.log.at_prompt():
            state = "[green]ready[/green]"
        else:
            state = "[yellow]busy[/yellow]"
        parts = [f"{escape(self.pipeline.name)}: {state}"]
        if self._last_event:
            parts.append(self._last_event)
        if self._log_handler and self._log_handler.last_message:
            last_log = self._log_handler.last_message
            if len(last_log) > 80:
                last_log = last_log[:77] + "..."
            parts.append(f"[dim]{escape(last_log)}[/dim]")
        status.update(" | ".join(parts))

    # --- DisplayHost ---

    def active_region(self) -> str | None:
        focused = self.focused
        return focused.id if focused is not None else None

    def region_showing(self, name: str) -> str | None:
        output = self.query_one(f"#{_OUTPUT}", Log)
        if output.display and self._output_surface == name:
            return _OUTPUT
        return None

    def show(self, name: str) -> str:
        output = self.query_one(f"#{_OUTPUT}", Log)
        if self._output_surface != name:
            output.clear()
            self._printed = 0
            self._output_surface = name
        output.display = True
        return _OUTPUT

    def select(self, region: str) -> None:
        self.query_one(f"#{region}").focus()

    def scroll_to_end(self, region: str) -> None:
        self._write_new_output()
        self.query_one(f"#{region}").scroll_end(animate=False)

    def _write_new_output(self) -> None:
        if self._output_surface is None:
            return
        log: OutputLog = self.pipeline.registry.log(self._output_surface)
        chunk = log.read_from(self._printed)
        self._printed = log.end_position
        if chunk:
            self.query_one(f"#{_OUTPUT}", Log).write(chunk)

    # --- Session hooks ---

    def _hook_session(self) -> None:
        session = self.pipeline.registry.get(self.pipeline.name)
        if session is None or session.id == self._hooked_session:
            return
        self._hooked_session = session.id
        session.on_output(self._on_output)

    def _on_output(self, _chunk: str) -> None:
        self._write_new_output()
        self._update_status()

    # --- Commands ---

    def _document(self) -> Document:
        area = self.query_one(f"#{_EDITOR}", TextArea)
        lines = list(area.document.lines)
        text = "\n".join(lines)
        cursor = location_to_offset(lines, area.cursor_location)
        anchor = location_to_offset(lines, area.selection.start)
        return Document(text=text, cursor=cursor, mark=anchor, path=self.file_path)

    async def _run_command(self, command: str) -> None:
        try:
            sent = await getattr(self.pipeline.commands, command)(self._document())
        except ReplError as e:
            logger.warning("%s failed: %s", command, e)
            self.wire.send_error(str(e))
            self.notify(str(e), severity="error")
            sent = False
        self._hook_session()
        if not sent:
            self._update_status()

    async def action_open_session(self) -> None:
        try:
            await self.pipeline.registry.ensure(self.pipeline.name)
        except ReplError as e:
            self.wire.send_error(str(e))
            self.notify(str(e), severity="error")
            return
        self._hook_session()
        self.pipeline.synchronizer.reveal(self.pipeline.name)

    async def action_send_line(self) -> None:
        await self._run_command("send_line")

    async def action_send_region(self) -> None:
        await self._run_command("send_region")

    async def action_send_expression(self) -> None:
        await self._run_command("send_expression")

    def action_toggle_output(self) -> None:
        output = self.query_one(f"#{_OUTPUT}", Log)
        if output.display:
            output.display = False
        else:
            self.pipeline.synchronizer.reveal(self.pipeline.name)

    def action_clear_output(self) -> None:
        log = self.pipeline.registry.log(self.pipeline.name)
        log.clear()
        self._printed = log.end_position
        self.query_one(f"#{_OUTPUT}", Log).clear()

    def action_save(self) -> None:
        area = self.query_one(f"#{_EDITOR}", TextArea)
        with open(self.file_path, "w", encoding="utf-8") as f:
            f.write(area.text)
        self.wire.send_status(f"Saved {os.path.basename(self.file_path)}")

    async def action_quit(self) -> None:
        await self.pipeline.registry.cleanup()
        self.wire.close()
        self.exit()

    # --- Wire event loop ---

    @work(exclusive=True)
    async def _listen_wire(self) -> None:
        queue = self.wire.subscribe()
        try:
            while True:
                event = await queue.get()
                if event is None:
                    break
                self._handle_event(event)
        finally:
            self.wire.unsubscribe(queue)

    def _handle_event(self, event: WireEvent) -> None:
        d = event.data
        if event.type == EventType.SESSION_START:
            self._last_event = f"started pid {d.get('pid')}"
        elif event.type == EventType.SESSION_EXIT:
            code = d.get("exit_code")
            code_str = str(code) if code is not None else "?"
            self._last_event = f"[bold yellow]exited (code={code_str})[/bold yellow]"
            self.notify(f"{d.get('name')} exited (code={code_str})", severity="warning")
        elif event.type == EventType.SEND:
            self._last_event = f"sent {d.get('chars', 0)} chars"
        elif event.type == EventType.ERROR:
            self._last_event = f"[bold red]{escape(d.get('error', ''))}[/bold red]"
        elif event.type == EventType.STATUS:
            self._last_event = escape(d.get("message", ""))
        self._update_status()
