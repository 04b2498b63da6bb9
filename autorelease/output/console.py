"""Console output abstraction.

Services and the orchestrator report progress through ``ConsoleProtocol``
instead of printing directly. Production uses Rich; tests use
``MockConsole`` and assert on what would have been shown. This is the only
module allowed to import Rich.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Protocol

__all__ = [
    "ConsoleProtocol",
    "MockConsole",
    "OutputRecord",
    "RichConsole",
    "Style",
]


class Style(Enum):
    """Text styles for console output."""

    DEFAULT = auto()
    SUCCESS = auto()
    ERROR = auto()
    WARNING = auto()
    INFO = auto()  # version transitions
    DIM = auto()  # command echoes, hints
    BOLD = auto()
    HEADER = auto()  # run and stage banners

    def __str__(self) -> str:
        return self.name.lower()


_RICH_STYLES: dict[Style, str] = {
    Style.DEFAULT: "",
    Style.SUCCESS: "green",
    Style.ERROR: "red bold",
    Style.WARNING: "yellow",
    Style.INFO: "cyan",
    Style.DIM: "dim",
    Style.BOLD: "bold",
    Style.HEADER: "blue bold",
}


class ConsoleProtocol(Protocol):
    """Interface for styled console output."""

    def print(self, message: str, style: Style = Style.DEFAULT) -> None: ...

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def header(self, message: str) -> None: ...

    def step(self, index: int, total: int, title: str) -> None:
        """Announce stage ``index`` of ``total``."""
        ...

    def newline(self) -> None: ...


class RichConsole:
    """Console implementation using Rich.

    Args:
        stderr: Write to stderr instead of stdout (keeps stdout clean for
            commands whose output is machine-read, like ``next-version``).
    """

    def __init__(self, *, stderr: bool = False) -> None:
        from rich.console import Console

        # Version strings and shas must not be recoloured.
        self._console = Console(stderr=stderr, highlight=False)

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        # Subprocess output may contain [brackets]; never parse it as markup.
        self._console.print(message, style=_RICH_STYLES[style] or None, markup=False)

    def success(self, message: str) -> None:
        self._labelled("OK", "green", message)

    def error(self, message: str) -> None:
        self._labelled("error:", "red bold", message)

    def warning(self, message: str) -> None:
        self._labelled("warning:", "yellow", message)

    def header(self, message: str) -> None:
        self._console.print()
        self.print(message, Style.HEADER)

    def step(self, index: int, total: int, title: str) -> None:
        self._console.print()
        self.print(f"[{index}/{total}] {title}", Style.HEADER)

    def newline(self) -> None:
        self._console.print()

    def _labelled(self, label: str, style: str, message: str) -> None:
        from rich.text import Text

        line = Text(label, style=style)
        line.append(" ")
        line.append(message)
        self._console.print(line)


@dataclass
class OutputRecord:
    """A single output record for MockConsole."""

    message: str
    style: Style


def _empty_outputs() -> list[OutputRecord]:
    return []


@dataclass
class MockConsole:
    """Console implementation that captures output for testing."""

    outputs: list[OutputRecord] = field(default_factory=_empty_outputs)

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self.outputs.append(OutputRecord(message, style))

    def success(self, message: str) -> None:
        self.print(f"OK {message}", Style.SUCCESS)

    def error(self, message: str) -> None:
        self.print(f"error: {message}", Style.ERROR)

    def warning(self, message: str) -> None:
        self.print(f"warning: {message}", Style.WARNING)

    def header(self, message: str) -> None:
        self.print(message, Style.HEADER)

    def step(self, index: int, total: int, title: str) -> None:
        self.print(f"[{index}/{total}] {title}", Style.HEADER)

    def newline(self) -> None:
        self.print("")

    # Test helpers

    @property
    def messages(self) -> list[str]:
        return [o.message for o in self.outputs]

    @property
    def text(self) -> str:
        return "\n".join(self.messages)

    def has_error(self) -> bool:
        return any(o.style == Style.ERROR for o in self.outputs)

    def find(self, substring: str) -> list[OutputRecord]:
        return [o for o in self.outputs if substring in o.message]
