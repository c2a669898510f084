"""Editor-side plumbing: documents, send commands and output display."""

from perlrepl.editor.display import (
    ConsoleDisplay,
    DisplayHost,
    MemoryDisplay,
    OutputSynchronizer,
)
from perlrepl.editor.document import Document
from perlrepl.editor.sender import RegionSender, ReplCommands

__all__ = [
    "ConsoleDisplay",
    "DisplayHost",
    "Document",
    "MemoryDisplay",
    "OutputSynchronizer",
    "RegionSender",
    "ReplCommands",
]
