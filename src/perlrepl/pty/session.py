"""Terminal session — a REPL process attached to a pseudo-terminal."""

from __future__ import annotations

import asyncio
import codecs
import enum
import logging
import os
import pty
import signal
import subprocess
import uuid
from dataclasses import dataclass, field
from typing import Callable

from perlrepl.errors import SessionClosedError, SpawnError
from perlrepl.pty.ansi import clean_output
from perlrepl.pty.log import OutputLog

logger = logging.getLogger(__name__)


class SessionStatus(enum.Enum):
    """Lifecycle states for a terminal session."""

    STARTING = "starting"
    RUNNING = "running"
    KILLING = "killing"  # Kill requested, waiting for process to die
    KILLED = "killed"  # Killed by us (SIGKILL)
    EXITED = "exited"  # Process exited on its own


@dataclass
class TerminalSession:
    """A named interpreter process running in its own pseudo-terminal.

    Wraps the process with:
    - Process group isolation (start_new_session) for safe tree-killing
    - An output log fed by an async reader on the event loop
    - ANSI stripping, binary sanitization and newline normalization
    - Output and exit callbacks

    Writes are fire-and-forget: ``send`` never waits for a reply.

    Uses subprocess.Popen (not os.fork) to avoid deadlocks when
    spawned from within an asyncio event loop on macOS.
    """

    name: str
    command: list[str] = field(default_factory=list)
    cwd: str = field(default_factory=os.getcwd)
    env: dict[str, str] = field(default_factory=dict)
    log: OutputLog = field(default_factory=OutputLog)
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])

    # Internal state
    _master_fd: int = field(default=-1, init=False)
    _proc: subprocess.Popen | None = field(default=None, init=False)
    _pgid: int = field(default=0, init=False)
    _reader_task: asyncio.Task | None = field(default=None, init=False)
    _status: SessionStatus = field(default=SessionStatus.STARTING, init=False)
    _output_callbacks: list[Callable[[str], None]] = field(
        default_factory=list, init=False
    )
    _on_exit: Callable[[TerminalSession, int | None], None] | None = field(
        default=None, init=False
    )

    def on_output(self, callback: Callable[[str], None]) -> None:
        """Register a callback fired with each cleaned chunk of output.

        Callbacks run on the event loop after the chunk is in the log.
        """
        self._output_callbacks.append(callback)

    def set_on_exit(self, callback: Callable[[TerminalSession, int | None], None]) -> None:
        """Set a callback to be invoked when the process exits on its own.

        Not called when the session is killed via kill().
        """
        self._on_exit = callback

    async def start(self) -> None:
        """Spawn the process in a new PTY with its own process group."""
        master_fd, slave_fd = pty.openpty()

        env = {**os.environ, **self.env}
        env["TERM"] = "dumb"  # Minimize ANSI escape sequences
        env.pop("PROMPT_COMMAND", None)

        try:
            self._proc = subprocess.Popen(
                self.command,
                stdin=slave_fd,
                stdout=slave_fd,
                stderr=slave_fd,
                start_new_session=True,
                env=env,
                cwd=self.cwd,
            )
        except OSError as e:
            os.close(master_fd)
            raise SpawnError(self.command[0] if self.command else "", str(e)) from e
        finally:
            # Parent always closes slave fd
            os.close(slave_fd)

        self._master_fd = master_fd
        self._pgid = os.getpgid(self._proc.pid)
        self._status = SessionStatus.RUNNING
        self._reader_task = asyncio.create_task(self._read_loop())

        logger.info(
            "Session %s (%s) started: pid=%d cmd=%s",
            self.name,
            self.id,
            self._proc.pid,
            " ".join(self.command),
        )

    async def _read_loop(self) -> None:
        """Read PTY output and feed it to the log on the event loop."""
        loop = asyncio.get_running_loop()
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        try:
            while self._status == SessionStatus.RUNNING:
                try:
                    data = await loop.run_in_executor(
                        None, os.read, self._master_fd, 4096
                    )
                except OSError:
                    break

                if not data:
                    break

                # Back on the loop thread: the log and its marker are only
                # touched here and by senders on the same loop.
                cleaned = clean_output(decoder.decode(data))
                if not cleaned:
                    continue
                self.log.insert(cleaned)
                for callback in list(self._output_callbacks):
                    callback(cleaned)
        except Exception as e:
            logger.debug("Reader for session %s ended: %s", self.name, e)
        finally:
            if self._status == SessionStatus.RUNNING:
                exit_code = self._proc.poll() if self._proc else None
                self._status = SessionStatus.EXITED
                logger.info("Session %s exited (code=%s)", self.name, exit_code)
                if self._on_exit:
                    try:
                        self._on_exit(self, exit_code)
                    except Exception:
                        logger.exception(
                            "Error in on_exit callback for session %s", self.name
                        )

    def send(self, data: str | bytes) -> None:
        """Write raw input to the process. Does not wait for output."""
        if not self.alive:
            raise SessionClosedError(f"Session {self.name} is not running")
        payload = data.encode() if isinstance(data, str) else data
        while payload:
            written = os.write(self._master_fd, payload)
            payload = payload[written:]

    async def wait_for_output(
        self, since: int, timeout: float = 10.0, settle_time: float = 0.3
    ) -> str:
        """Wait for output after ``since`` (an absolute log position) to settle.

        Returns as soon as the log is back at a prompt, or once no new
        output has arrived for ``settle_time`` seconds, or at the deadline.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        last_position = since
        settled_at = None

        while loop.time() < deadline and self.alive:
            current = self.log.end_position
            if current > since and self.log.at_prompt():
                break
            if current > last_position:
                last_position = current
                settled_at = loop.time()
            elif settled_at and (loop.time() - settled_at) > settle_time:
                break

            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            wait_time = settle_time if settled_at else min(remaining, 0.5)
            await self.log.wait_for_data(timeout=wait_time)

        return self.log.read_from(since)

    def kill(self) -> None:
        """Kill the entire process tree."""
        if self._status not in (SessionStatus.RUNNING, SessionStatus.KILLING):
            return

        self._status = SessionStatus.KILLING
        try:
            os.killpg(self._pgid, signal.SIGKILL)
            logger.info("Killed session %s (pgid=%d)", self.name, self._pgid)
        except ProcessLookupError:
            logger.debug("Process group already gone: %d", self._pgid)
        except OSError as e:
            logger.warning("Error killing session %s: %s", self.name, e)

        # Wait for process to be reaped (avoids zombies)
        if self._proc is not None:
            try:
                self._proc.wait(timeout=2)
            except subprocess.TimeoutExpired:
                logger.warning("Session %s did not exit after SIGKILL", self.name)

        try:
            os.close(self._master_fd)
        except OSError:
            pass
        self._master_fd = -1

        self._status = SessionStatus.KILLED

    def reap(self) -> None:
        """Release the resources of a process that already exited."""
        if self._status is SessionStatus.RUNNING and self._proc is not None:
            self._status = SessionStatus.EXITED
        if self._proc is not None:
            self._proc.poll()
        if self._master_fd >= 0:
            try:
                os.close(self._master_fd)
            except OSError:
                pass
            self._master_fd = -1

    @property
    def process(self) -> subprocess.Popen | None:
        """The live process reference."""
        return self._proc

    @property
    def pid(self) -> int | None:
        return self._proc.pid if self._proc else None

    @property
    def alive(self) -> bool:
        return (
            self._status == SessionStatus.RUNNING
            and self._proc is not None
            and self._proc.poll() is None
        )

    @property
    def status(self) -> SessionStatus:
        return self._status

    async def wait_for_exit(self, timeout: float = 10.0) -> int | None:
        """Wait for the process to exit. Returns exit code or None on timeout.

        The status change and exit callback are left to the reader, which
        sees end-of-file once the process is gone.
        """
        if self._proc is None:
            return -1
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while loop.time() < deadline:
            ret = self._proc.poll()
            if ret is not None:
                return ret
            await asyncio.sleep(0.05)
        return None

    def __del__(self) -> None:
        """Ensure cleanup on garbage collection."""
        if self._status in (SessionStatus.RUNNING, SessionStatus.KILLING):
            self.kill()
