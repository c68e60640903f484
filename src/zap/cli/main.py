"""CLI entry point for zap."""

from __future__ import annotations

import asyncio
import sys
from typing import List, Optional, Sequence

import typer

from zap.backends.registry import DESCRIPTORS, by_category, create_backend, parse_backend_id
from zap.cli.renderers import console, managers_table, release_notice, system_table
from zap.core.bootstrap import BootstrapManager
from zap.core.config import Settings, load_settings
from zap.core.detect import detect_candidates
from zap.core.dispatch import Dispatcher
from zap.core.errors import (
    EXIT_SYSTEM_ERROR,
    ZapError,
    exit_code_for,
    format_error_message,
)
from zap.core.logging import configure_logging, get_logger
from zap.core.models import BackendId, Category
from zap.core.selector import BackendSelector
from zap.core.shell import ProcessExecutor
from zap.core.update import ReleaseChecker

log = get_logger(__name__)

app = typer.Typer(
    help="zap: one command line for every package manager.",
    invoke_without_command=True,
    add_completion=False,
)

executor = ProcessExecutor()


def handle_error(error: Exception) -> int:
    """Handle errors and return appropriate exit codes.

    Args:
        error: The exception to handle.

    Returns:
        An integer exit code.
    """
    if isinstance(error, ZapError):
        log.error(
            "cli_error",
            error_type=type(error).__name__,
            message=error.message,
            context=error.context,
            exc_info=True,
        )
        console.print(f"\n{format_error_message(error)}\n", style="bold red")
        return exit_code_for(error)

    log.error("unexpected_error", error=str(error), exc_info=True)
    console.print(f"\n⚠️ Unexpected error occurred: {error}\n", style="bold red")
    return EXIT_SYSTEM_ERROR


def _candidates() -> list[BackendId]:
    return detect_candidates(executor.env.get("PATH"))[1]


def build_selector(settings: Settings) -> BackendSelector:
    bootstrap = BootstrapManager(executor, settings)
    return BackendSelector(executor, bootstrap, _candidates, settings)


async def _dispatch(
    settings: Settings, command: str, args: Sequence[str], show_info: bool, pick: bool
) -> int:
    backend = await build_selector(settings).select()
    dispatcher = Dispatcher(
        backend,
        console,
        settings,
        check_updates=settings.check_updates,
        releases=ReleaseChecker(executor),
    )
    return await dispatcher.dispatch(command, args, show_info=show_info, pick=pick)


def run_command(
    ctx: typer.Context,
    command: str,
    args: Sequence[str] = (),
    show_info: bool = False,
    pick: bool = False,
) -> None:
    """Select a backend, run ``command`` and exit with its code."""
    settings: Settings = ctx.obj or load_settings()
    try:
        code = asyncio.run(_dispatch(settings, command, args, show_info, pick))
    except Exception as e:
        sys.exit(handle_error(e))
    if code:
        sys.exit(code)


def _available(settings: Settings) -> dict[BackendId, str | None]:
    return {
        backend_id: create_backend(backend_id, executor, settings).executable()
        for backend_id in DESCRIPTORS
    }


def _active(
    settings: Settings, candidates: Sequence[BackendId], available: dict[BackendId, str | None]
) -> BackendId | None:
    """The backend an auto selection would pick right now, without bootstrap."""
    if settings.backend and settings.backend != "auto":
        backend_id = parse_backend_id(settings.backend)
        return backend_id if available.get(backend_id) else None
    return next((b for b in candidates if available.get(b)), None)


@app.callback()
def main(
    ctx: typer.Context,
    backend: Optional[str] = typer.Option(
        None, "--backend", "-b", help="Backend to use instead of auto-detection (e.g. apt, brew, pip)"
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Answer yes to bootstrap prompts"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log to the terminal"),
) -> None:
    """Search and install packages with whatever package manager this machine has.

    Without a command, zap starts interactive search.
    """
    settings = load_settings(backend=backend, auto_yes=yes or None, verbose=verbose or None)
    configure_logging(
        level="DEBUG" if settings.verbose else settings.log_level,
        log_file=settings.log_file,
        enable_console=settings.verbose,
    )
    ctx.obj = settings
    log.debug("cli_start", command=ctx.invoked_subcommand, backend=settings.backend)

    if ctx.invoked_subcommand is None:
        run_command(ctx, "interactive")


@app.command()
def search(
    ctx: typer.Context,
    query: List[str] = typer.Argument(..., help="Search terms"),
    show_info: bool = typer.Option(False, "--info", help="Also show details of the first result"),
    pick: bool = typer.Option(
        False, "--interactive", "-I", help="Pick packages to install from the results"
    ),
) -> None:
    """Search for packages.

    Args:
        query: Search terms, joined with spaces.
        show_info: Show details of the first result as well.
        pick: Open the results in the interactive picker and install the selection.
    """
    run_command(ctx, "search", query, show_info=show_info, pick=pick)


@app.command()
def install(
    ctx: typer.Context,
    names: List[str] = typer.Argument(..., help="Packages to install"),
) -> None:
    """Install one or more packages."""
    run_command(ctx, "install", names)


@app.command()
def info(ctx: typer.Context, name: str = typer.Argument(..., help="Package name")) -> None:
    """Show detailed information about a package."""
    run_command(ctx, "info", [name])


@app.command()
def update(ctx: typer.Context) -> None:
    """Upgrade every package the backend manages."""
    run_command(ctx, "update")


@app.command("list")
def list_installed(ctx: typer.Context) -> None:
    """List installed packages."""
    run_command(ctx, "list")


@app.command()
def interactive(ctx: typer.Context) -> None:
    """Search as you type and install the selection."""
    run_command(ctx, "interactive")


app.command("s", hidden=True)(search)
app.command("i", hidden=True)(install)
app.command("ls", hidden=True)(list_installed)
app.command("int", hidden=True)(interactive)


@app.command()
def managers(ctx: typer.Context) -> None:
    """Show every supported backend and whether it is installed."""
    settings: Settings = ctx.obj or load_settings()
    try:
        available = _available(settings)
        active = _active(settings, _candidates(), available)
        for category in Category:
            console.print(f"\n[bold]{category.value.title()}[/bold]")
            console.print(
                managers_table((DESCRIPTORS[b] for b in by_category(category)), available, active)
            )
    except Exception as e:
        sys.exit(handle_error(e))


@app.command()
def system(ctx: typer.Context) -> None:
    """Show the detected OS, ranked backends and the active one."""
    settings: Settings = ctx.obj or load_settings()
    try:
        os_info, candidates = detect_candidates(executor.env.get("PATH"))
        active = _active(settings, candidates, _available(settings))
        console.print(system_table(os_info, candidates, active))
    except Exception as e:
        sys.exit(handle_error(e))


@app.command("self-update")
def self_update() -> None:
    """Check the package index for a newer zap release."""
    try:
        release = asyncio.run(ReleaseChecker(executor).check())
    except Exception as e:
        sys.exit(handle_error(e))

    if release.latest is None:
        console.print("⚠️ Could not determine the latest zap release.", style="yellow")
    elif release.newer:
        console.print(release_notice(release))
    else:
        console.print(f"✓ zap {release.current} is up to date", style="green")


if __name__ == "__main__":
    app()
