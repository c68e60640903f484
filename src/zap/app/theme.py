"""Theme configuration for the search screen."""

from textual.app import App

CSS = """
#query {
    dock: top;
}

#status {
    dock: bottom;
    height: 2;
    padding: 0 1;
}
"""


def set_theme(app: App) -> None:
    """Set the theme for the application.

    Args:
        app (App): The Textual application instance.
    """
    app.styles.background = "black"
    app.styles.color = "white"
