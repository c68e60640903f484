"""Widget to display search results with selection markers."""

from __future__ import annotations

from typing import Sequence

from rich.text import Text
from textual.widgets import DataTable

from zap.core.models import PackageRecord

MARK_ON = Text("●", style="green")
MARK_OFF = Text("○")


class PackageTable(DataTable):
    """Search results; row keys are package names."""

    def on_mount(self) -> None:
        """Called when the widget is mounted."""
        self.zebra_stripes = True
        self.cursor_type = "row"

        self.add_column("", key="mark")
        self.add_column("Name", key="name")
        self.add_column("Version", key="version")
        self.add_column("Description", key="description")

    def load_records(self, records: Sequence[PackageRecord], selected: Sequence[str]) -> None:
        """Replace the rows, keeping the cursor on the same package if present."""
        current = self.highlighted_name
        self.clear()
        names: list[str] = []
        for record in records:
            if record.name in names:
                continue
            names.append(record.name)
            self.add_row(
                MARK_ON if record.name in selected else MARK_OFF,
                Text(record.name),
                Text(record.version or ""),
                Text(record.description),
                key=record.name,
            )
        if current in names:
            self.move_cursor(row=names.index(current))

    @property
    def highlighted_name(self) -> str | None:
        if self.row_count == 0:
            return None
        row_key, _ = self.coordinate_to_cell_key(self.cursor_coordinate)
        return row_key.value
