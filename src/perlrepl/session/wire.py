"""Wire protocol — decouples the REPL bridge from whatever renders it.

The registry announces session start and exit, the sender announces each
send, and hosts post errors and status lines. The CLI and the terminal
editor both listen on the same wire.
"""

from __future__ import annotations

import asyncio
import enum
from dataclasses import dataclass, field
from typing import Any

# Exit reports carry only the tail of the log
EXIT_OUTPUT_LIMIT = 500


class EventType(enum.Enum):
    SESSION_START = "session_start"
    SESSION_EXIT = "session_exit"
    SEND = "send"
    ERROR = "error"
    STATUS = "status"


@dataclass
class WireEvent:
    type: EventType
    data: dict[str, Any] = field(default_factory=dict)


class Wire:
    """Broadcast bus from the REPL bridge to display subscribers.

    Every subscriber gets its own queue. ``close`` pushes a ``None``
    sentinel to each queue once; anything sent afterwards is dropped.
    """

    def __init__(self) -> None:
        self._queues: list[asyncio.Queue[WireEvent | None]] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, event: WireEvent) -> None:
        if self._closed:
            return
        for queue in self._queues:
            queue.put_nowait(event)

    def _emit(self, event_type: EventType, **data: Any) -> None:
        self.send(WireEvent(type=event_type, data=data))

    def send_status(self, message: str) -> None:
        self._emit(EventType.STATUS, message=message)

    def send_error(self, error: str) -> None:
        self._emit(EventType.ERROR, error=error)

    def send_session_start(self, name: str, pid: int | None, command: list[str]) -> None:
        self._emit(EventType.SESSION_START, name=name, pid=pid, command=" ".join(command))

    def send_session_exit(
        self, name: str, exit_code: int | None, last_output: str = ""
    ) -> None:
        """Report a session whose process went away without being killed."""
        self._emit(
            EventType.SESSION_EXIT,
            name=name,
            exit_code=exit_code,
            last_output=last_output[:EXIT_OUTPUT_LIMIT],
        )

    def send_input(self, name: str, text: str) -> None:
        self._emit(EventType.SEND, name=name, text=text, chars=len(text))

    def subscribe(self) -> asyncio.Queue[WireEvent | None]:
        """Register a listener and return the queue its events arrive on."""
        queue: asyncio.Queue[WireEvent | None] = asyncio.Queue()
        self._queues.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        if queue in self._queues:
            self._queues.remove(queue)

    def close(self) -> None:
        """Wake every listener with the end-of-stream sentinel."""
        if self._closed:
            return
        self._closed = True
        for queue in self._queues:
            queue.put_nowait(None)
