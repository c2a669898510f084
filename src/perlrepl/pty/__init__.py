"""PTY process management — the interpreter session behind the editor.

The REPL runs in a pseudo-terminal with process group isolation. Its output
is cleaned and inserted into an output log that outlives the process, so a
respawned interpreter continues the same scrollback.
"""

from perlrepl.pty.log import OutputLog
from perlrepl.pty.registry import SessionRegistry
from perlrepl.pty.session import SessionStatus, TerminalSession

__all__ = [
    "OutputLog",
    "SessionRegistry",
    "SessionStatus",
    "TerminalSession",
]
