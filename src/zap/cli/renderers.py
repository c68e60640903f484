"""Renderers for displaying package information in the CLI using Rich."""

from __future__ import annotations

from typing import Iterable, Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from zap.backends.base import BackendDescriptor
from zap.core.detect import OSInfo
from zap.core.models import BackendId, Category, PackageRecord
from zap.core.update import UPGRADE_HINT, ReleaseInfo

console = Console()

CATEGORY_LABELS = {
    Category.SYSTEM: "[bold]System[/bold]",
    Category.UNIVERSAL: "[cyan]Universal[/cyan]",
    Category.LANGUAGE: "[magenta]Language[/magenta]",
}


def package_table(records: Iterable[PackageRecord]) -> Table:
    """Create a Rich Table of package records.

    Args:
        records: Records in the order the backend returned them.

    Returns:
        A Rich Table with one row per record.
    """
    table = Table(box=box.MINIMAL_HEAVY_HEAD)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Name", style="bold")
    table.add_column("Version")
    table.add_column("Source", style="dim")
    table.add_column("Description")

    for index, record in enumerate(records, start=1):
        table.add_row(
            str(index),
            record.name,
            record.version or "",
            record.source.value,
            record.description,
        )
    return table


def package_details(record: PackageRecord) -> Table:
    """Display detailed information about a package.

    Args:
        record: The package to display information for.

    Returns:
        A two-column Field/Value table.
    """
    t = Table(box=box.MINIMAL_HEAVY_HEAD)
    t.add_column("Field", style="bold")
    t.add_column("Value")
    t.add_row("Name", record.name)
    t.add_row("Version", record.version or "unknown")
    t.add_row("Source", record.source.value)
    t.add_row("Description", record.description)
    return t


def managers_table(
    descriptors: Iterable[BackendDescriptor],
    available: dict[BackendId, str | None],
    active: BackendId | None = None,
) -> Table:
    """Every backend with its category and the executable found, if any."""
    table = Table(box=box.MINIMAL_HEAVY_HEAD)
    table.add_column("Backend", style="bold")
    table.add_column("Name")
    table.add_column("Category")
    table.add_column("Executable")
    table.add_column("Status")

    for descriptor in descriptors:
        exe = available.get(descriptor.id)
        if descriptor.id is active:
            status = "[bold green]active[/bold green]"
        elif exe:
            status = "[green]available[/green]"
        else:
            status = "[dim]missing[/dim]"
        table.add_row(
            descriptor.id.value,
            descriptor.name,
            CATEGORY_LABELS[descriptor.category],
            exe or "",
            status,
        )
    return table


def system_table(
    os_info: OSInfo, candidates: Sequence[BackendId], active: BackendId | None
) -> Table:
    t = Table(box=box.MINIMAL_HEAVY_HEAD)
    t.add_column("Field", style="bold")
    t.add_column("Value")
    t.add_row("System", os_info.system)
    t.add_row("OS", os_info.pretty_name or os_info.id)
    t.add_row("ID", os_info.id)
    t.add_row("Like", " ".join(os_info.like))
    t.add_row("Candidates", ", ".join(c.value for c in candidates) or "none")
    t.add_row("Active backend", active.value if active else "[red]none[/red]")
    return t


def release_notice(info: ReleaseInfo) -> str:
    return (
        f"[yellow bold]Update available[/yellow bold]: zap {info.current} -> {info.latest}\n"
        f"  Run: {UPGRADE_HINT}\n"
        "[dim]Set ZAP_DISABLE_UPDATE_CHECK=1 to disable automatic checks.[/dim]"
    )


def print_records(records: Sequence[PackageRecord], out: Console | None = None) -> None:
    out = out or console
    if not records:
        out.print("No packages found.", style="yellow")
        return
    out.print(package_table(records))
