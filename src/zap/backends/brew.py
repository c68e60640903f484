"""Homebrew backend (formulae and casks)."""

from __future__ import annotations

from zap.backends.base import BackendDescriptor, CommandBackend, CommandSpec
from zap.backends.parsing import clean_lines, load_json
from zap.core.errors import BackendParseError
from zap.core.models import BackendId, Category, PackageRecord


class BrewBackend(CommandBackend):
    descriptor = BackendDescriptor(
        id=BackendId.BREW,
        name="Homebrew",
        executables=("brew",),
        category=Category.SYSTEM,
        os_families=("macos",),
    )
    commands = CommandSpec(
        search=("brew", "search", "{query}"),
        info=("brew", "info", "--json=v2", "{name}"),
        install=("brew", "install", "{names}"),
        refresh=("brew", "update"),
        update=("brew", "upgrade"),
        list=("brew", "list", "--versions"),
        no_results_codes=frozenset({1}),
        not_found_codes=frozenset({1}),
    )

    def parse_search(self, output: str) -> list[PackageRecord]:
        # "==> Formulae" / "==> Casks" sections, one token per line when piped
        records = []
        for line in clean_lines(output):
            if line.startswith("==>"):
                continue
            for token in line.split():
                records.append(self.record(token))
        return records

    def parse_info(self, output: str, name: str) -> PackageRecord | None:
        data = load_json(output, self.id)
        if not isinstance(data, dict):
            raise BackendParseError(
                "Expected a JSON object from brew info",
                backend=self.id.value,
                raw_output=output,
            )

        formula = (data.get("formulae") or [{}])[0]
        if formula:
            installed = formula.get("installed") or []
            version = (
                installed[-1].get("version") if installed
                else (formula.get("versions") or {}).get("stable")
            )
            return self.record(formula.get("name", name), version, formula.get("desc") or "")

        cask = (data.get("casks") or [{}])[0]
        if cask:
            return self.record(
                cask.get("token") or (cask.get("name") or [name])[0],
                cask.get("version"),
                cask.get("desc") or "",
            )
        return None

    def parse_list(self, output: str) -> list[PackageRecord]:
        # "name 1.0 1.1" - newest installed version last
        records = []
        for line in clean_lines(output):
            parts = line.split()
            records.append(self.record(parts[0], parts[-1] if len(parts) > 1 else None))
        return records
