"""Platform abstraction layer."""

from .files import FileSnapshot, atomic_write_text
from .process import CompletedCommand, ProcessError, run, run_captured

__all__ = [
    # files
    "FileSnapshot",
    "atomic_write_text",
    # process
    "CompletedCommand",
    "ProcessError",
    "run",
    "run_captured",
]
