"""Rich-based rendering of failure events to HTML and plain text."""

from __future__ import annotations

import io
from pathlib import Path
from typing import Any, Mapping, Optional, Protocol

from rich.console import Console, Group, RenderableType
from rich.panel import Panel
from rich.pretty import Pretty
from rich.table import Table
from rich.text import Text

from faultline.events import EventKind, FailureEvent, severity_name


class Renderer(Protocol):
    def render_html(self, event: FailureEvent) -> str:
        ...

    def render_plain_text(self, event: FailureEvent) -> str:
        ...


def relative_path(path: str, root: Optional[Path]) -> str:
    """Best-effort path relative to ``root``; falls back to the path unchanged."""
    if root is None:
        return path
    try:
        return str(Path(path).resolve().relative_to(root.resolve()))
    except (ValueError, OSError):
        return path


def _title(event: FailureEvent) -> str:
    if event.kind == EventKind.RAISED:
        return "Uncaught exception" if event.fatal_at_origin else "Exception"
    return severity_name(event.severity)


class RichRenderer:
    """
    Render an event with stack, locals and context, bounded for size.

    Parameters
    ----------
    project_root
        File paths under this directory are shown relative to it.
    max_items
        Maximum number of elements shown per captured container.
    max_string
        Maximum characters shown per captured string.
    width
        Console width used for layout.
    """

    def __init__(
        self,
        project_root: Optional[Path] = None,
        *,
        max_items: int = 20,
        max_string: int = 200,
        width: int = 120,
    ) -> None:
        self.project_root = project_root
        self.max_items = max_items
        self.max_string = max_string
        self.width = width

    def _console(self) -> Console:
        return Console(record=True, file=io.StringIO(), width=self.width, color_system=None)

    def _pretty(self, value: Any) -> Pretty:
        return Pretty(value, max_length=self.max_items, max_string=self.max_string)

    def _bounded_mapping(self, values: Mapping[str, Any]) -> Pretty:
        return self._pretty(dict(list(values.items())[: self.max_items]))

    def _stack(self, event: FailureEvent) -> Table:
        table = Table(title="Stack (oldest call first)", expand=True)
        table.add_column("#", justify="right")
        table.add_column("Location")
        table.add_column("Function")
        table.add_column("Source")
        for i, frame in enumerate(event.stack):
            table.add_row(
                str(i),
                f"{relative_path(frame.file, self.project_root)}:{frame.line}",
                frame.function,
                frame.source,
            )
        return table

    def _sections(self, event: FailureEvent) -> list[RenderableType]:
        where = f"{relative_path(event.location.file, self.project_root)}:{event.location.line}"
        parts: list[RenderableType] = [
            Text(f"{event.code}: {event.message}", style="bold"),
            Text(f"at {where}"),
        ]
        if event.stack:
            parts.append(self._stack(event))
        for frame in reversed(event.stack):
            if frame.locals:
                title = f"locals of {frame.function} ({relative_path(frame.file, self.project_root)}:{frame.line})"
                parts.append(Panel(self._bounded_mapping(frame.locals), title=title))
        if event.context:
            parts.append(Panel(self._bounded_mapping(event.context), title="context"))
        if event.metadata:
            parts.append(Panel(self._bounded_mapping(event.metadata), title="metadata"))
        for cause in event.causes():
            cause_where = f"{relative_path(cause.location.file, self.project_root)}:{cause.location.line}"
            parts.append(Text(f"Caused by {cause.code}: {cause.message} at {cause_where}"))
        return parts

    def _render(self, event: FailureEvent) -> Console:
        console = self._console()
        console.rule(_title(event))
        console.print(Group(*self._sections(event)))
        return console

    def render_html(self, event: FailureEvent) -> str:
        return self._render(event).export_html()

    def render_plain_text(self, event: FailureEvent) -> str:
        return self._render(event).export_text()
