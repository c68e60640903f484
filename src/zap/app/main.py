"""Interactive search application."""

from __future__ import annotations

from textual.app import App, ComposeResult
from textual.widgets import Footer, Header, Input

from zap.core.interactive import SearchEngine
from .keymap import KEYMAP
from .theme import CSS, set_theme
from .widgets.package_table import PackageTable
from .widgets.status_bar import StatusBar


class ZapSearch(App[bool]):
    """Live search over one backend.

    The app only edits the engine's selection. It exits with True when the
    user confirms; the install runs after the terminal is released.
    """

    CSS = CSS
    BINDINGS = KEYMAP
    TITLE = "zap"

    def __init__(self, engine: SearchEngine) -> None:
        super().__init__()
        self.engine = engine

    def compose(self) -> ComposeResult:
        """Compose the UI layout.

        Returns:
            ComposeResult: The composed UI elements.
        """
        yield Header()
        yield Input(
            value=self.engine.state.query,
            placeholder=f"Search {self.engine.backend.descriptor.name} packages",
            id="query",
        )
        yield PackageTable(id="results")
        yield StatusBar(id="status")
        yield Footer()

    def on_mount(self) -> None:
        """Called when the app is mounted."""
        set_theme(self)
        self.sub_title = self.engine.backend.descriptor.name
        self.engine.on_change(self.show_engine)
        self.query_one("#query", Input).focus()
        self.show_engine(self.engine)

    @property
    def table(self) -> PackageTable:
        return self.query_one("#results", PackageTable)

    def show_engine(self, engine: SearchEngine) -> None:
        if not self.is_running:
            return
        self.table.load_records(engine.state.records, engine.state.selected_names)
        self.query_one("#status", StatusBar).show(engine)

    def on_input_changed(self, event: Input.Changed) -> None:
        self.engine.set_query(event.value)

    def action_toggle_selected(self) -> None:
        name = self.table.highlighted_name
        if name is not None:
            self.engine.toggle(name)

    def action_cursor_up(self) -> None:
        self.table.action_cursor_up()

    def action_cursor_down(self) -> None:
        self.table.action_cursor_down()

    def action_confirm(self) -> None:
        """Confirm the selection, or the highlighted row when none is selected."""
        name = self.table.highlighted_name
        if not self.engine.state.selected and name is not None:
            self.engine.select(name)
        self.exit(True)

    def action_quit_search(self) -> None:
        self.exit(False)


async def run_search_app(engine: SearchEngine) -> bool:
    """Run the search UI until the user confirms or quits."""
    confirmed = await ZapSearch(engine).run_async()
    return bool(confirmed)
