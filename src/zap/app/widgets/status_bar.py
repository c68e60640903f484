"""Status line for the search screen."""

from __future__ import annotations

from rich.markup import escape
from textual.widgets import Static

from zap.core.interactive import EngineStatus, SearchEngine

STATUS_LABELS = {
    EngineStatus.IDLE: "Type at least {min_length} characters to search",
    EngineStatus.TYPING: "…",
    EngineStatus.SEARCHING: "Searching {backend}…",
    EngineStatus.DISPLAYING: "{count} result(s)",
    EngineStatus.CANCELLED: "…",
    EngineStatus.CONFIRMED: "Installing…",
    EngineStatus.EXITED: "Bye",
}


class StatusBar(Static):
    """Engine status, selection count and the last search error."""

    def show(self, engine: SearchEngine) -> None:
        label = STATUS_LABELS[engine.status].format(
            min_length=engine.min_length,
            backend=engine.backend.descriptor.name,
            count=len(engine.state.records),
        )
        lines = [f"{label}  |  selected: {len(engine.state.selected)}"]
        if engine.state.error:
            lines.append(f"[red]{escape(engine.state.error)}[/red]")
        else:
            lines.append("[dim]Tab select · Enter install · Esc quit[/dim]")
        self.update("\n".join(lines))
