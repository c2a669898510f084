"""One live interpreter per session name."""

from __future__ import annotations

import logging
import os
import shutil
from typing import Any, TYPE_CHECKING

from perlrepl.config import ReplConfig
from perlrepl.errors import SpawnError
from perlrepl.pty.log import OutputLog
from perlrepl.pty.session import TerminalSession

if TYPE_CHECKING:
    from perlrepl.session.wire import Wire

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Creates, reuses and replaces named REPL sessions.

    - ``ensure(name)`` returns the live session for ``name``, spawning one
      if there is none or the previous process has died
    - The output log for a name survives process replacement
    - A failed spawn leaves nothing registered
    - Start and unexpected exit are announced via Wire (if attached)
    """

    def __init__(self, config: ReplConfig | None = None, wire: Wire | None = None) -> None:
        self.config = config or ReplConfig()
        self._sessions: dict[str, TerminalSession] = {}
        self._logs: dict[str, OutputLog] = {}
        self._wire = wire

    @property
    def default_name(self) -> str:
        return self.config.session_name

    async def ensure(self, name: str | None = None) -> TerminalSession:
        """Return the live session for ``name``, spawning it if needed.

        Raises:
            SpawnError: the executable is missing or refused to start.
        """
        name = name or self.default_name
        session = self._sessions.get(name)
        if session is not None:
            if session.alive:
                return session
            logger.info(
                "Session %s is no longer running (%s), starting a replacement",
                name,
                session.status.value,
            )
            self._sessions.pop(name)
            session.reap()

        executable = shutil.which(self.config.executable)
        if executable is None:
            raise SpawnError(self.config.executable, "executable not found")

        session = TerminalSession(
            name=name,
            command=[executable, *self.config.args],
            cwd=self.config.cwd or os.getcwd(),
            env=dict(self.config.env),
            log=self.log(name),
        )

        if self._wire:
            wire = self._wire

            def _on_exit(s: TerminalSession, exit_code: int | None) -> None:
                tail = s.log.read_tail(3)
                wire.send_session_exit(s.name, exit_code, "\n".join(tail))

            session.set_on_exit(_on_exit)

        await session.start()
        self._sessions[name] = session
        if self._wire:
            self._wire.send_session_start(name, session.pid, session.command)
        return session

    def send(self, session: TerminalSession, data: str | bytes) -> None:
        """Write raw input to a session (fire-and-forget)."""
        session.send(data)

    def get(self, name: str | None = None) -> TerminalSession | None:
        """Get the registered session for a name, alive or not."""
        return self._sessions.get(name or self.default_name)

    def log(self, name: str | None = None) -> OutputLog:
        """The output log for a name, created empty on first use."""
        name = name or self.default_name
        log = self._logs.get(name)
        if log is None:
            log = OutputLog(
                max_lines=self.config.max_log_lines,
                prompt_pattern=self.config.prompt_pattern,
            )
            self._logs[name] = log
        return log

    def names(self) -> list[str]:
        return list(self._sessions)

    def list_sessions(self) -> list[dict[str, Any]]:
        """Describe every registered session."""
        return [
            {
                "name": s.name,
                "id": s.id,
                "pid": s.pid,
                "command": " ".join(s.command),
                "alive": s.alive,
                "status": s.status.value,
                "lines": s.log.line_count,
            }
            for s in self._sessions.values()
        ]

    async def kill(self, name: str | None = None) -> None:
        """Kill a session and remove it from tracking. The log is kept."""
        session = self._sessions.pop(name or self.default_name, None)
        if session:
            session.kill()
            session.reap()

    async def cleanup(self) -> None:
        """Kill all sessions. Called on shutdown."""
        for name in list(self._sessions):
            await self.kill(name)
        logger.info("All REPL sessions cleaned up")

    def __len__(self) -> int:
        return len(self._sessions)
