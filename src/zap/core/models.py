"""Data models shared by every backend."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class BackendId(Enum):
    """Enumeration of supported package managers."""

    # System package managers
    APT = "apt"
    AUR = "aur"
    PACMAN = "pacman"
    DNF = "dnf"
    ZYPPER = "zypper"
    PKG = "pkg"
    BREW = "brew"
    WINGET = "winget"
    SCOOP = "scoop"
    CHOCO = "choco"
    # Universal package managers
    FLATPAK = "flatpak"
    SNAP = "snap"
    # Language package managers
    PIP = "pip"
    NPM = "npm"
    CARGO = "cargo"
    GO = "go"


class Category(Enum):
    """Enumeration of backend categories."""

    SYSTEM = "system"
    UNIVERSAL = "universal"
    LANGUAGE = "language"


@dataclass
class PackageRecord:
    """A package as reported by any backend."""

    name: str
    source: BackendId
    version: str | None = None
    description: str = ""


@dataclass
class ExecutionResult:
    """Outcome of one child process."""

    argv: list[str]
    returncode: int
    output: str = ""
    error: str = ""
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.cancelled

    @property
    def combined(self) -> str:
        """stdout and stderr joined, in that order."""
        return "\n".join(part for part in (self.output, self.error) if part)

    @property
    def command(self) -> str:
        return " ".join(self.argv)


@dataclass
class SelectionState:
    """State of one interactive search session."""

    query: str = ""
    records: list[PackageRecord] = field(default_factory=list)
    selected: dict[str, None] = field(default_factory=dict)
    sequence: int = 0
    error: str | None = None

    @property
    def selected_names(self) -> list[str]:
        """Selected package names in the order they were selected."""
        return list(self.selected)

    def is_selected(self, name: str) -> bool:
        return name in self.selected
