"""Key mappings for the interactive search screen."""

from textual.binding import Binding

# Priority bindings fire even while the query Input has focus.
KEYMAP = [
    Binding("tab", "toggle_selected", "Select", priority=True),
    Binding("space", "toggle_selected", "Select", show=False),
    Binding("up", "cursor_up", "Up", show=False, priority=True),
    Binding("down", "cursor_down", "Down", show=False, priority=True),
    Binding("enter", "confirm", "Install", priority=True),
    Binding("escape", "quit_search", "Quit", priority=True),
    Binding("ctrl+c", "quit_search", "Quit", show=False, priority=True),
]
