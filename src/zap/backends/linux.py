"""Native Linux and BSD package managers."""

from __future__ import annotations

import re

from zap.backends.base import BackendDescriptor, CommandBackend, CommandSpec
from zap.backends.parsing import (
    clean_lines,
    parse_key_values,
    parse_pipe_table,
    split_name_version,
)
from zap.core.errors import BackendParseError
from zap.core.models import BackendId, Category, PackageRecord

DEBIAN_FAMILY = ("debian", "ubuntu", "linuxmint", "pop", "elementary", "kali", "raspbian", "zorin")
ARCH_FAMILY = ("arch", "manjaro", "endeavouros", "garuda", "artix", "cachyos")
FEDORA_FAMILY = ("fedora", "rhel", "centos", "rocky", "almalinux", "nobara")
SUSE_FAMILY = ("opensuse", "opensuse-leap", "opensuse-tumbleweed", "suse", "sles")

RPM_LIST = ("rpm", "-qa", "--queryformat", "%{NAME} %{VERSION}\n")


def _name_version_lines(backend: CommandBackend, output: str) -> list[PackageRecord]:
    """Parse ``name version`` lines, as printed by most list commands."""
    records = []
    for line in clean_lines(output):
        parts = line.split()
        if len(parts) >= 2:
            records.append(backend.record(parts[0], parts[1]))
        elif parts:
            records.append(backend.record(parts[0]))
    return records


class AptBackend(CommandBackend):
    descriptor = BackendDescriptor(
        id=BackendId.APT,
        name="APT (Debian/Ubuntu)",
        executables=("apt-get", "apt"),
        category=Category.SYSTEM,
        os_families=DEBIAN_FAMILY,
    )
    commands = CommandSpec(
        search=("apt-cache", "search", "{query}"),
        info=("apt-cache", "show", "{name}"),
        install=("apt-get", "install", "-y", "{names}"),
        refresh=("apt-get", "update"),
        update=("apt-get", "upgrade", "-y"),
        list=("dpkg-query", "-W", "-f=${Package} ${Version}\n"),
        privileged=frozenset({"install", "refresh", "update"}),
        not_found_codes=frozenset({100}),
    )

    def parse_search(self, output: str) -> list[PackageRecord]:
        records = []
        for line in clean_lines(output):
            name, found, desc = line.partition(" - ")
            if not found:
                raise BackendParseError(
                    f"Unexpected apt-cache search line: {line!r}",
                    backend=self.id.value,
                    raw_output=output,
                )
            records.append(self.record(name.strip(), description=desc.strip()))
        return records

    def parse_info(self, output: str, name: str) -> PackageRecord | None:
        data = parse_key_values(output)
        if not data.get("Package"):
            return None
        desc = data.get("Description") or data.get("Description-en", "")
        return self.record(data["Package"], data.get("Version"), desc)

    def parse_list(self, output: str) -> list[PackageRecord]:
        return _name_version_lines(self, output)


class PacmanBackend(CommandBackend):
    descriptor = BackendDescriptor(
        id=BackendId.PACMAN,
        name="pacman (Arch Linux)",
        executables=("pacman",),
        category=Category.SYSTEM,
        os_families=ARCH_FAMILY,
        priority=20,
    )
    commands = CommandSpec(
        search=("pacman", "-Ss", "{query}"),
        info=("pacman", "-Si", "{name}"),
        install=("pacman", "-S", "--needed", "--noconfirm", "{names}"),
        update=("pacman", "-Syu", "--noconfirm"),
        list=("pacman", "-Q"),
        privileged=frozenset({"install", "update"}),
        no_results_codes=frozenset({1}),
        not_found_codes=frozenset({1}),
    )

    def parse_search(self, output: str) -> list[PackageRecord]:
        # repo/name version [flags]
        #     description
        records: list[PackageRecord] = []
        for line in clean_lines(output):
            if line[:1].isspace():
                if not records:
                    raise BackendParseError(
                        "Description line before any package",
                        backend=self.id.value,
                        raw_output=output,
                    )
                last = records[-1]
                last.description = f"{last.description} {line.strip()}".strip()
                continue
            parts = line.split()
            repo_name = parts[0]
            _, _, name = repo_name.rpartition("/")
            version = parts[1] if len(parts) > 1 else None
            records.append(self.record(name, version))
        return records

    def parse_info(self, output: str, name: str) -> PackageRecord | None:
        data = parse_key_values(output)
        if not data.get("Name"):
            return None
        return self.record(data["Name"], data.get("Version"), data.get("Description", ""))

    def parse_list(self, output: str) -> list[PackageRecord]:
        return _name_version_lines(self, output)


class AurBackend(PacmanBackend):
    """AUR through a pacman-compatible helper (paru or yay).

    Helpers call sudo themselves, so nothing here is privileged.
    """

    descriptor = BackendDescriptor(
        id=BackendId.AUR,
        name="AUR (Arch User Repository)",
        executables=("paru", "yay"),
        category=Category.SYSTEM,
        os_families=ARCH_FAMILY,
        priority=10,
    )
    commands = CommandSpec(
        search=("{exe}", "-Ssa", "{query}"),
        info=("{exe}", "-Sai", "{name}"),
        install=("{exe}", "-S", "--needed", "--noconfirm", "{names}"),
        update=("{exe}", "-Sua", "--noconfirm"),
        list=("pacman", "-Qm"),
        no_results_codes=frozenset({1}),
        not_found_codes=frozenset({1}),
    )


class DnfBackend(CommandBackend):
    descriptor = BackendDescriptor(
        id=BackendId.DNF,
        name="DNF (Fedora/RHEL)",
        executables=("dnf", "dnf5"),
        category=Category.SYSTEM,
        os_families=FEDORA_FAMILY,
    )
    commands = CommandSpec(
        search=("{exe}", "search", "-q", "{query}"),
        info=("{exe}", "info", "-q", "{name}"),
        install=("{exe}", "install", "-y", "{names}"),
        update=("{exe}", "upgrade", "-y"),
        list=RPM_LIST,
        privileged=frozenset({"install", "update"}),
        no_results_codes=frozenset({1}),
        not_found_codes=frozenset({1}),
    )

    def parse_search(self, output: str) -> list[PackageRecord]:
        records = []
        seen = set()
        for line in clean_lines(output):
            stripped = line.strip()
            # "=== Name Matched: fi ===" and dnf5 "Matched fields:" headers
            if stripped.startswith("=") or stripped.endswith(":"):
                continue
            name_arch, found, summary = stripped.partition(" : ")
            if not found:
                continue
            name = name_arch.strip().rsplit(".", 1)[0]
            if name in seen:
                continue
            seen.add(name)
            records.append(self.record(name, description=summary.strip()))
        return records

    def parse_info(self, output: str, name: str) -> PackageRecord | None:
        data = parse_key_values(output)
        if not data.get("Name"):
            return None
        version = data.get("Version")
        if version and data.get("Release"):
            version = f"{version}-{data['Release']}"
        return self.record(data["Name"], version, data.get("Summary", ""))

    def parse_list(self, output: str) -> list[PackageRecord]:
        return _name_version_lines(self, output)


class ZypperBackend(CommandBackend):
    descriptor = BackendDescriptor(
        id=BackendId.ZYPPER,
        name="zypper (openSUSE)",
        executables=("zypper",),
        category=Category.SYSTEM,
        os_families=SUSE_FAMILY,
    )
    commands = CommandSpec(
        search=("zypper", "--non-interactive", "--quiet", "search", "{query}"),
        info=("zypper", "--non-interactive", "info", "{name}"),
        install=("zypper", "--non-interactive", "install", "{names}"),
        update=("zypper", "--non-interactive", "update"),
        list=RPM_LIST,
        privileged=frozenset({"install", "update"}),
        no_results_codes=frozenset({104}),
        not_found_codes=frozenset({104}),
    )

    def parse_search(self, output: str) -> list[PackageRecord]:
        # S | Name | Summary | Type
        records = []
        for cells in parse_pipe_table(output):
            if len(cells) < 3:
                raise BackendParseError(
                    "Unexpected zypper search row",
                    backend=self.id.value,
                    raw_output=output,
                )
            records.append(self.record(cells[1], description=cells[2]))
        return records

    def parse_info(self, output: str, name: str) -> PackageRecord | None:
        lines = [line for line in output.splitlines() if ":" in line]
        data = parse_key_values("\n".join(lines))
        if not data.get("Name"):
            return None
        return self.record(data["Name"], data.get("Version"), data.get("Summary", ""))

    def parse_list(self, output: str) -> list[PackageRecord]:
        return _name_version_lines(self, output)


class PkgBackend(CommandBackend):
    descriptor = BackendDescriptor(
        id=BackendId.PKG,
        name="pkg (FreeBSD)",
        executables=("pkg",),
        category=Category.SYSTEM,
        os_families=("freebsd", "dragonfly", "ghostbsd"),
    )
    commands = CommandSpec(
        search=("pkg", "search", "{query}"),
        info=("pkg", "rquery", "%n|%v|%c", "{name}"),
        install=("pkg", "install", "-y", "{names}"),
        refresh=("pkg", "update"),
        update=("pkg", "upgrade", "-y"),
        list=("pkg", "query", "%n %v"),
        privileged=frozenset({"install", "refresh", "update"}),
        no_results_codes=frozenset({1}),
        not_found_codes=frozenset({1}),
    )

    def parse_search(self, output: str) -> list[PackageRecord]:
        records = []
        for line in clean_lines(output):
            match = re.match(r"^(\S+)\s+(.*)$", line)
            token, desc = (match.group(1), match.group(2)) if match else (line.strip(), "")
            name, version = split_name_version(token)
            records.append(self.record(name, version, desc.strip()))
        return records

    def parse_info(self, output: str, name: str) -> PackageRecord | None:
        lines = clean_lines(output)
        if not lines:
            return None
        parts = lines[0].split("|", 2)
        if len(parts) != 3:
            raise BackendParseError(
                "Unexpected pkg rquery output",
                backend=self.id.value,
                raw_output=output,
            )
        return self.record(parts[0], parts[1], parts[2])

    def parse_list(self, output: str) -> list[PackageRecord]:
        return _name_version_lines(self, output)
