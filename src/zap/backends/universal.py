"""Distribution-independent app stores: Flatpak and Snap."""

from __future__ import annotations

from zap.backends.base import BackendDescriptor, CommandBackend, CommandSpec
from zap.backends.parsing import clean_lines, parse_key_values, parse_table
from zap.core.models import BackendId, Category, PackageRecord


class FlatpakBackend(CommandBackend):
    descriptor = BackendDescriptor(
        id=BackendId.FLATPAK,
        name="Flatpak",
        executables=("flatpak",),
        category=Category.UNIVERSAL,
    )
    commands = CommandSpec(
        search=("flatpak", "search", "--columns=application,version,description", "{query}"),
        info=("flatpak", "remote-info", "flathub", "{name}"),
        install=("flatpak", "install", "-y", "flathub", "{names}"),
        update=("flatpak", "update", "-y"),
        list=("flatpak", "list", "--app", "--columns=application,version"),
    )

    def _tab_rows(self, output: str) -> list[list[str]]:
        rows = []
        for line in clean_lines(output):
            if line.startswith("No matches found") or line.startswith("Application ID"):
                continue
            rows.append([cell.strip() for cell in line.split("\t")])
        return rows

    def parse_search(self, output: str) -> list[PackageRecord]:
        records = []
        for cells in self._tab_rows(output):
            cells += [""] * (3 - len(cells))
            records.append(self.record(cells[0], cells[1], cells[2]))
        return records

    def parse_info(self, output: str, name: str) -> PackageRecord | None:
        lines = clean_lines(output)
        if not lines:
            return None
        _, _, summary = lines[0].partition(" - ")
        data = parse_key_values("\n".join(lines[1:]))
        if not data.get("ID"):
            return None
        return self.record(data["ID"], data.get("Version"), summary.strip())

    def parse_list(self, output: str) -> list[PackageRecord]:
        records = []
        for cells in self._tab_rows(output):
            records.append(self.record(cells[0], cells[1] if len(cells) > 1 else None))
        return records


class SnapBackend(CommandBackend):
    descriptor = BackendDescriptor(
        id=BackendId.SNAP,
        name="Snap",
        executables=("snap",),
        category=Category.UNIVERSAL,
    )
    commands = CommandSpec(
        search=("snap", "find", "{query}"),
        info=("snap", "info", "{name}"),
        install=("snap", "install", "{name}"),
        update=("snap", "refresh"),
        list=("snap", "list"),
        privileged=frozenset({"install", "update"}),
        batch_install=False,
        no_results_codes=frozenset({1}),
        not_found_codes=frozenset({1}),
    )

    def parse_search(self, output: str) -> list[PackageRecord]:
        if output.startswith("No matching snaps"):
            return []
        return [
            self.record(row["Name"], row.get("Version"), row.get("Summary", ""))
            for row in parse_table(output)
            if row.get("Name")
        ]

    def parse_info(self, output: str, name: str) -> PackageRecord | None:
        data = parse_key_values(output)
        if not data.get("name"):
            return None
        version_line = data.get("installed") or data.get("latest/stable") or ""
        version = version_line.split()[0] if version_line.split() else None
        return self.record(data["name"], version, data.get("summary", ""))

    def parse_list(self, output: str) -> list[PackageRecord]:
        return [
            self.record(row["Name"], row.get("Version"))
            for row in parse_table(output)
            if row.get("Name")
        ]
