"""CLI entry point for perlrepl."""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Callable

import typer

from perlrepl.config import ReplConfig
from perlrepl.editor.display import ConsoleDisplay, DisplayHost, OutputSynchronizer
from perlrepl.editor.document import Document
from perlrepl.editor.sender import RegionSender, ReplCommands
from perlrepl.errors import NoSelectionError, ReplError
from perlrepl.pty.log import OutputLog
from perlrepl.pty.registry import SessionRegistry
from perlrepl.scan.expression import ExpressionScanner
from perlrepl.session.wire import EventType, Wire

app = typer.Typer(
    name="perlrepl",
    help="Send Perl source, a line or a statement at a time, to a persistent REPL.",
    no_args_is_help=True,
)


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


@dataclass
class ReplPipeline:
    """All components needed to drive a session, shared by the CLI and the TUI."""

    config: ReplConfig
    wire: Wire
    registry: SessionRegistry
    synchronizer: OutputSynchronizer
    commands: ReplCommands

    @property
    def name(self) -> str:
        return self.config.session_name


def build_pipeline(
    config: ReplConfig,
    host_factory: Callable[[Callable[[str], OutputLog | None]], DisplayHost],
    wire: Wire | None = None,
) -> ReplPipeline:
    """Wire registry, display host, sender and scanner together.

    ``host_factory`` receives a log lookup (session name -> OutputLog) and
    returns the display host the synchronizer drives.
    """
    wire = wire or Wire()
    registry = SessionRegistry(config, wire=wire)
    synchronizer = OutputSynchronizer(host_factory(registry.log))
    sender = RegionSender(registry, synchronizer, name=config.session_name, wire=wire)
    scanner = ExpressionScanner.from_config(config.scanner)
    return ReplPipeline(
        config=config,
        wire=wire,
        registry=registry,
        synchronizer=synchronizer,
        commands=ReplCommands(sender, scanner),
    )


def _load_config(config_file: str | None, executable: str | None) -> ReplConfig:
    config = ReplConfig.load(config_file)
    if executable:
        config.executable = executable
    return config


def _load_document(path: str) -> Document:
    file_path = os.path.abspath(path)
    if not os.path.isfile(file_path):
        typer.echo(f"Error: File not found: {file_path}", err=True)
        raise typer.Exit(1)
    return Document.from_file(file_path)


def _place_cursor(
    doc: Document, offset: int | None, line: int | None, column: int
) -> None:
    if offset is not None:
        doc.cursor = doc.clamp(offset)
    elif line is not None:
        doc.cursor = doc.offset_of(line, column)


async def _run_send(
    config: ReplConfig, doc: Document, command: str, timeout: float
) -> bool:
    """Start the session, run one send command, print what comes back."""
    pipeline = build_pipeline(config, ConsoleDisplay)
    registry = pipeline.registry

    async def _consume_wire() -> None:
        queue = pipeline.wire.subscribe()
        while True:
            event = await queue.get()
            if event is None:
                break
            d = event.data
            if event.type == EventType.SESSION_EXIT:
                typer.echo(
                    f"\n[{d.get('name')} exited (code={d.get('exit_code')})]", err=True
                )
            elif event.type == EventType.ERROR:
                typer.echo(f"Error: {d.get('error', '')}", err=True)

    consumer = asyncio.create_task(_consume_wire())
    try:
        session = await registry.ensure(pipeline.name)
        await session.wait_for_output(0, timeout=timeout)
        pipeline.synchronizer.reveal(pipeline.name)

        since = session.log.end_position
        sent = await getattr(pipeline.commands, command)(doc)
        if sent:
            await session.wait_for_output(since, timeout=timeout)
            pipeline.synchronizer.reveal(pipeline.name)
            typer.echo()
        return sent
    finally:
        await registry.cleanup()
        pipeline.wire.close()
        await consumer


def _execute(
    config: ReplConfig, doc: Document, command: str, timeout: float
) -> None:
    try:
        sent = asyncio.run(_run_send(config, doc, command, timeout))
    except ReplError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    if not sent:
        typer.echo("Nothing to send.", err=True)


# Shared options
_CONFIG_OPT = typer.Option(None, "--config", "-c", help="Config file path.")
_EXEC_OPT = typer.Option(
    None, "--executable", "-e", help="REPL executable (default: from env/config)."
)
_VERBOSE_OPT = typer.Option(False, "--verbose", "-v", help="Enable debug logging.")
_TIMEOUT_OPT = typer.Option(
    10.0, "--timeout", "-t", help="Seconds to wait for the REPL to answer."
)


@app.command("send-line")
def send_line(
    file: str = typer.Argument(help="Source file."),
    line: int = typer.Option(..., "--line", "-l", help="1-based line number."),
    config_file: str | None = _CONFIG_OPT,
    executable: str | None = _EXEC_OPT,
    timeout: float = _TIMEOUT_OPT,
    verbose: bool = _VERBOSE_OPT,
) -> None:
    """Send one whole line of FILE to the REPL."""
    setup_logging(verbose)
    doc = _load_document(file)
    _place_cursor(doc, None, line, 0)
    _execute(_load_config(config_file, executable), doc, "send_line", timeout)


@app.command("send-region")
def send_region(
    file: str = typer.Argument(help="Source file."),
    start: int = typer.Option(..., "--start", "-s", help="Start offset."),
    end: int = typer.Option(..., "--end", help="End offset (exclusive)."),
    config_file: str | None = _CONFIG_OPT,
    executable: str | None = _EXEC_OPT,
    timeout: float = _TIMEOUT_OPT,
    verbose: bool = _VERBOSE_OPT,
) -> None:
    """Send the text between two offsets of FILE to the REPL."""
    setup_logging(verbose)
    doc = _load_document(file)
    doc.mark = doc.clamp(start)
    doc.cursor = doc.clamp(end)
    if doc.selection is None:
        typer.echo(f"Error: {NoSelectionError()}", err=True)
        raise typer.Exit(1)
    _execute(_load_config(config_file, executable), doc, "send_region", timeout)


@app.command("send-expression")
def send_expression(
    file: str = typer.Argument(help="Source file."),
    offset: int | None = typer.Option(None, "--offset", "-o", help="Cursor offset."),
    line: int | None = typer.Option(None, "--line", "-l", help="1-based cursor line."),
    column: int = typer.Option(0, "--column", help="0-based cursor column."),
    config_file: str | None = _CONFIG_OPT,
    executable: str | None = _EXEC_OPT,
    timeout: float = _TIMEOUT_OPT,
    verbose: bool = _VERBOSE_OPT,
) -> None:
    """Send the statement around the cursor to the REPL."""
    setup_logging(verbose)
    doc = _load_document(file)
    _place_cursor(doc, offset, line, column)
    _execute(_load_config(config_file, executable), doc, "send_expression", timeout)


@app.command()
def scan(
    file: str = typer.Argument(help="Source file."),
    offset: int | None = typer.Option(None, "--offset", "-o", help="Cursor offset."),
    line: int | None = typer.Option(None, "--line", "-l", help="1-based cursor line."),
    column: int = typer.Option(0, "--column", help="0-based cursor column."),
    config_file: str | None = _CONFIG_OPT,
) -> None:
    """Print the statement send-expression would send, without a REPL."""
    doc = _load_document(file)
    _place_cursor(doc, offset, line, column)
    config = _load_config(config_file, None)
    bounds = ExpressionScanner.from_config(config.scanner).expression_range(
        doc.text, doc.cursor
    )
    if bounds is None:
        typer.echo("No statement at cursor.", err=True)
        raise typer.Exit(1)
    start, end = bounds
    typer.echo(f"{start}:{end}")
    typer.echo(doc.text[start:end])


@app.command()
def edit(
    file: str = typer.Argument(help="Source file to open (created on save)."),
    config_file: str | None = _CONFIG_OPT,
    executable: str | None = _EXEC_OPT,
    verbose: bool = _VERBOSE_OPT,
) -> None:
    """Edit FILE in a terminal editor wired to a live REPL pane."""
    # The TUI installs its own handler on mount that routes logs to the status bar.
    logging.getLogger().setLevel(logging.DEBUG if verbose else logging.INFO)

    from perlrepl.tui.app import ReplEditorApp

    file_path = os.path.abspath(file)
    text = ""
    if os.path.isfile(file_path):
        with open(file_path, encoding="utf-8") as f:
            text = f.read()

    config = _load_config(config_file, executable)
    ReplEditorApp(file_path=file_path, text=text, config=config).run()


def main() -> None:
    app()


if __name__ == "__main__":
    main()
