"""Console output abstraction.

Pipeline stages report progress through ``ConsoleProtocol`` rather than
printing directly. ``RichConsole`` is used by the CLI; ``MockConsole``
records output so tests can assert on what an operator would see.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Protocol

__all__ = [
    "Style",
    "ConsoleProtocol",
    "RichConsole",
    "MockConsole",
    "OutputRecord",
]


class Style(Enum):
    """Text styles for console output."""

    DEFAULT = auto()
    SUCCESS = auto()
    ERROR = auto()
    WARNING = auto()
    INFO = auto()
    DIM = auto()  # echoed commands, process output, hints
    BOLD = auto()
    HEADER = auto()  # pipeline stage banner

    def __str__(self) -> str:
        return self.name.lower()


class ConsoleProtocol(Protocol):
    """Interface for operator-facing output."""

    def print(self, message: str, style: Style = Style.DEFAULT) -> None: ...

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...

    def header(self, message: str) -> None:
        """Announce a pipeline stage."""
        ...

    def newline(self) -> None: ...


class RichConsole:
    """Console backed by Rich.

    Messages are escaped before styling: process output and manifest
    content routinely contain square brackets that Rich would otherwise
    read as markup. Errors and warnings go to stderr.
    """

    def __init__(self) -> None:
        from rich.console import Console

        self._out = Console(highlight=False)
        self._err = Console(stderr=True, highlight=False)
        self._style_map = {
            Style.DEFAULT: "",
            Style.SUCCESS: "green",
            Style.ERROR: "red bold",
            Style.WARNING: "yellow",
            Style.INFO: "cyan",
            Style.DIM: "dim",
            Style.BOLD: "bold",
            Style.HEADER: "blue bold",
        }

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        from rich.markup import escape

        rich_style = self._style_map.get(style, "")
        if rich_style:
            self._out.print(escape(message), style=rich_style)
        else:
            self._out.print(escape(message))

    def success(self, message: str) -> None:
        from rich.markup import escape

        self._out.print(f"[green]OK[/green] {escape(message)}")

    def error(self, message: str) -> None:
        from rich.markup import escape

        self._err.print(f"[red bold]error:[/red bold] {escape(message)}")

    def warning(self, message: str) -> None:
        from rich.markup import escape

        self._err.print(f"[yellow]warning:[/yellow] {escape(message)}")

    def info(self, message: str) -> None:
        from rich.markup import escape

        self._out.print(f"[cyan]info:[/cyan] {escape(message)}")

    def header(self, message: str) -> None:
        from rich.markup import escape

        self._out.print(f"\n[blue bold]==> {escape(message)}[/blue bold]")

    def newline(self) -> None:
        self._out.print()


@dataclass
class OutputRecord:
    """A single line captured by MockConsole."""

    message: str
    style: Style


def _empty_outputs() -> list[OutputRecord]:
    return []


@dataclass
class MockConsole:
    """Console that records output for tests."""

    outputs: list[OutputRecord] = field(default_factory=_empty_outputs)

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self.outputs.append(OutputRecord(message, style))

    def success(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"OK {message}", Style.SUCCESS))

    def error(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"error: {message}", Style.ERROR))

    def warning(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"warning: {message}", Style.WARNING))

    def info(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"info: {message}", Style.INFO))

    def header(self, message: str) -> None:
        self.outputs.append(OutputRecord(message, Style.HEADER))

    def newline(self) -> None:
        self.outputs.append(OutputRecord("", Style.DEFAULT))

    @property
    def messages(self) -> list[str]:
        return [o.message for o in self.outputs]

    @property
    def text(self) -> str:
        return "\n".join(self.messages)

    def has_error(self) -> bool:
        return any(o.style == Style.ERROR for o in self.outputs)

    def has_warning(self) -> bool:
        return any(o.style == Style.WARNING for o in self.outputs)

    def find(self, substring: str) -> list[OutputRecord]:
        return [o for o in self.outputs if substring in o.message]
