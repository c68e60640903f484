"""Language ecosystem installers: pip, npm, cargo and go."""

from __future__ import annotations

import re

from zap.backends.base import BackendDescriptor, CommandBackend, CommandSpec
from zap.backends.parsing import clean_lines, load_json, parse_key_values
from zap.core.errors import BackendParseError
from zap.core.models import BackendId, Category, PackageRecord

PIP_INDEX_RE = re.compile(r"^(\S+) \(([^)]+)\)$")
CARGO_SEARCH_RE = re.compile(r'^(\S+)\s*=\s*"([^"]*)"\s*(?:#\s*(.*))?$')
CARGO_LIST_RE = re.compile(r"^(\S+) v(\S+?)(?: \(.*\))?:$")


class PipBackend(CommandBackend):
    """pip has no full-text search; ``search`` is an exact index lookup."""

    descriptor = BackendDescriptor(
        id=BackendId.PIP,
        name="pip (Python)",
        executables=("pip3", "pip"),
        category=Category.LANGUAGE,
    )
    commands = CommandSpec(
        search=("{exe}", "index", "versions", "{query}"),
        info=("{exe}", "show", "{name}"),
        install=("{exe}", "install", "--user", "{names}"),
        list=("{exe}", "list", "--format=json"),
        no_results_codes=frozenset({1}),
        not_found_codes=frozenset({1}),
    )

    def parse_search(self, output: str) -> list[PackageRecord]:
        for line in clean_lines(output):
            match = PIP_INDEX_RE.match(line.strip())
            if match:
                return [self.record(match.group(1), match.group(2))]
        if output.strip():
            raise BackendParseError(
                "No 'name (version)' line in pip index output",
                backend=self.id.value,
                raw_output=output,
            )
        return []

    def parse_info(self, output: str, name: str) -> PackageRecord | None:
        data = parse_key_values(output)
        if not data.get("Name"):
            return None
        return self.record(data["Name"], data.get("Version"), data.get("Summary", ""))

    def parse_list(self, output: str) -> list[PackageRecord]:
        data = load_json(output, self.id)
        if not isinstance(data, list):
            raise BackendParseError(
                "Expected a JSON array from pip list",
                backend=self.id.value,
                raw_output=output,
            )
        return [self.record(item["name"], item.get("version")) for item in data if "name" in item]


class NpmBackend(CommandBackend):
    descriptor = BackendDescriptor(
        id=BackendId.NPM,
        name="npm (Node.js)",
        executables=("npm", "npm.cmd"),
        category=Category.LANGUAGE,
    )
    commands = CommandSpec(
        search=("{exe}", "search", "--json", "{query}"),
        info=("{exe}", "view", "--json", "{name}"),
        install=("{exe}", "install", "-g", "{names}"),
        update=("{exe}", "update", "-g"),
        list=("{exe}", "list", "-g", "--depth=0", "--json"),
        not_found_codes=frozenset({1}),
    )

    def parse_search(self, output: str) -> list[PackageRecord]:
        if not output.strip():
            return []
        data = load_json(output, self.id)
        if not isinstance(data, list):
            raise BackendParseError(
                "Expected a JSON array from npm search",
                backend=self.id.value,
                raw_output=output,
            )
        return [
            self.record(item["name"], item.get("version"), item.get("description") or "")
            for item in data
            if isinstance(item, dict) and "name" in item
        ]

    def parse_info(self, output: str, name: str) -> PackageRecord | None:
        if not output.strip():
            return None
        data = load_json(output, self.id)
        if isinstance(data, list):
            data = data[-1] if data else {}
        if not isinstance(data, dict) or "name" not in data:
            return None
        return self.record(data["name"], data.get("version"), data.get("description") or "")

    def parse_list(self, output: str) -> list[PackageRecord]:
        data = load_json(output, self.id)
        deps = data.get("dependencies", {}) if isinstance(data, dict) else None
        if not isinstance(deps, dict):
            raise BackendParseError(
                "npm list output has no dependencies map",
                backend=self.id.value,
                raw_output=output,
            )
        return [self.record(name, (meta or {}).get("version")) for name, meta in deps.items()]


class CargoBackend(CommandBackend):
    """crates.io via ``cargo search``; cargo has no upgrade-all command."""

    descriptor = BackendDescriptor(
        id=BackendId.CARGO,
        name="Cargo (Rust)",
        executables=("cargo",),
        category=Category.LANGUAGE,
    )
    commands = CommandSpec(
        search=("cargo", "search", "--limit", "{limit}", "{query}"),
        info=("cargo", "search", "--limit", "10", "{name}"),
        install=("cargo", "install", "{names}"),
        list=("cargo", "install", "--list"),
    )

    def parse_search(self, output: str) -> list[PackageRecord]:
        records = []
        for line in clean_lines(output):
            if line.startswith("..."):
                continue
            match = CARGO_SEARCH_RE.match(line.strip())
            if not match:
                raise BackendParseError(
                    f"Unexpected cargo search line: {line!r}",
                    backend=self.id.value,
                    raw_output=output,
                )
            records.append(self.record(match.group(1), match.group(2), match.group(3) or ""))
        return records

    def parse_info(self, output: str, name: str) -> PackageRecord | None:
        for record in self.parse_search(output):
            if record.name == name:
                return record
        return None

    def parse_list(self, output: str) -> list[PackageRecord]:
        records = []
        for line in clean_lines(output):
            if line[:1].isspace():
                continue
            match = CARGO_LIST_RE.match(line)
            if match:
                records.append(self.record(match.group(1), match.group(2)))
        return records


class GoBackend(CommandBackend):
    """Go modules resolved through the module proxy.

    Searching is an exact module path lookup, and go keeps no registry of
    installed binaries, so ``list`` and ``update`` are unsupported.
    """

    descriptor = BackendDescriptor(
        id=BackendId.GO,
        name="Go (go install)",
        executables=("go",),
        category=Category.LANGUAGE,
    )
    commands = CommandSpec(
        search=("go", "list", "-m", "-json", "{query}@latest"),
        info=("go", "list", "-m", "-json", "{name}@latest"),
        install=("go", "install", "{name}@latest"),
        batch_install=False,
        no_results_codes=frozenset({1}),
        not_found_codes=frozenset({1}),
    )

    def _module(self, output: str) -> PackageRecord | None:
        if not output.strip():
            return None
        data = load_json(output, self.id)
        if not isinstance(data, dict) or "Path" not in data:
            raise BackendParseError(
                "go list output has no module Path",
                backend=self.id.value,
                raw_output=output,
            )
        return self.record(data["Path"], data.get("Version"), f"https://pkg.go.dev/{data['Path']}")

    def parse_search(self, output: str) -> list[PackageRecord]:
        module = self._module(output)
        return [module] if module else []

    def parse_info(self, output: str, name: str) -> PackageRecord | None:
        return self._module(output)
