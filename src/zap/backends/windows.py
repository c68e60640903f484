"""Windows package managers: winget, Scoop and Chocolatey."""

from __future__ import annotations

import re

from zap.backends.base import BackendDescriptor, CommandBackend, CommandSpec
from zap.backends.parsing import clean_lines, parse_key_values, parse_table
from zap.core.errors import BackendParseError
from zap.core.models import BackendId, Category, PackageRecord

WINGET_AGREEMENTS = ("--accept-source-agreements", "--disable-interactivity")


class WingetBackend(CommandBackend):
    """winget identifies packages by Id; the display name becomes the description."""

    descriptor = BackendDescriptor(
        id=BackendId.WINGET,
        name="winget",
        executables=("winget",),
        category=Category.SYSTEM,
        os_families=("windows",),
        priority=10,
    )
    commands = CommandSpec(
        search=("winget", "search", "{query}", *WINGET_AGREEMENTS),
        info=("winget", "show", "--id", "{name}", "--exact", *WINGET_AGREEMENTS),
        install=(
            "winget", "install", "--id", "{name}", "--exact",
            "--accept-package-agreements", "--accept-source-agreements",
        ),
        update=(
            "winget", "upgrade", "--all",
            "--accept-package-agreements", "--accept-source-agreements",
        ),
        list=("winget", "list", *WINGET_AGREEMENTS),
        batch_install=False,
        # APPINSTALLER_CLI_ERROR_NO_APPLICATIONS_FOUND
        no_results_codes=frozenset({-1978335212, 2316632084}),
        not_found_codes=frozenset({-1978335212, 2316632084}),
    )

    def _rows(self, output: str) -> list[PackageRecord]:
        if "No package found" in output:
            return []
        rows = parse_table(output)
        if rows and "Id" not in rows[0]:
            raise BackendParseError(
                "winget table has no Id column",
                backend=self.id.value,
                raw_output=output,
            )
        return [
            self.record(row["Id"], row.get("Version"), row.get("Name", ""))
            for row in rows
            if row.get("Id")
        ]

    def parse_search(self, output: str) -> list[PackageRecord]:
        return self._rows(output)

    def parse_info(self, output: str, name: str) -> PackageRecord | None:
        lines = clean_lines(output)
        found = next((i for i, line in enumerate(lines) if line.startswith("Found ")), None)
        if found is None:
            return None
        match = re.match(r"^Found (.*) \[(.+)\]$", lines[found].strip())
        display, package_id = (match.group(1), match.group(2)) if match else ("", name)
        data = parse_key_values("\n".join(lines[found + 1:]))
        return self.record(
            package_id,
            data.get("Version"),
            data.get("Description") or display,
        )

    def parse_list(self, output: str) -> list[PackageRecord]:
        return self._rows(output)


class ScoopBackend(CommandBackend):
    descriptor = BackendDescriptor(
        id=BackendId.SCOOP,
        name="Scoop",
        executables=("scoop",),
        category=Category.SYSTEM,
        os_families=("windows",),
        priority=20,
    )
    commands = CommandSpec(
        search=("scoop", "search", "{query}"),
        info=("scoop", "info", "{name}"),
        install=("scoop", "install", "{names}"),
        refresh=("scoop", "update"),
        update=("scoop", "update", "*"),
        list=("scoop", "list"),
        not_found_codes=frozenset({1}),
    )

    def _rows(self, output: str) -> list[PackageRecord]:
        if "No matches found" in output:
            return []
        return [
            self.record(row["Name"], row.get("Version"), row.get("Source", ""))
            for row in parse_table(output)
            if row.get("Name")
        ]

    def parse_search(self, output: str) -> list[PackageRecord]:
        return self._rows(output)

    def parse_info(self, output: str, name: str) -> PackageRecord | None:
        data = parse_key_values(output)
        if not data.get("Name"):
            return None
        return self.record(data["Name"], data.get("Version"), data.get("Description", ""))

    def parse_list(self, output: str) -> list[PackageRecord]:
        return self._rows(output)


class ChocoBackend(CommandBackend):
    descriptor = BackendDescriptor(
        id=BackendId.CHOCO,
        name="Chocolatey",
        executables=("choco",),
        category=Category.SYSTEM,
        os_families=("windows",),
        priority=30,
    )
    commands = CommandSpec(
        search=("choco", "search", "{query}", "--limit-output"),
        info=("choco", "info", "{name}", "--limit-output"),
        install=("choco", "install", "{names}", "-y"),
        update=("choco", "upgrade", "all", "-y"),
        list=("choco", "list", "--limit-output"),
    )

    def _pipe_rows(self, output: str) -> list[PackageRecord]:
        records = []
        for line in clean_lines(output):
            name, found, version = line.partition("|")
            if not found:
                raise BackendParseError(
                    f"Unexpected choco line: {line!r}",
                    backend=self.id.value,
                    raw_output=output,
                )
            records.append(self.record(name.strip(), version.strip()))
        return records

    def parse_search(self, output: str) -> list[PackageRecord]:
        return self._pipe_rows(output)

    def parse_info(self, output: str, name: str) -> PackageRecord | None:
        records = self._pipe_rows(output)
        for record in records:
            if record.name.lower() == name.lower():
                return record
        return records[0] if records else None

    def parse_list(self, output: str) -> list[PackageRecord]:
        return self._pipe_rows(output)
