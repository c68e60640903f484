"""Maps a parsed command onto one backend operation and renders the result."""

from __future__ import annotations

import time
from typing import Awaitable, Callable, Sequence

from rich.console import Console

from zap.app.main import run_search_app
from zap.backends.base import Backend
from zap.cli.renderers import package_details, print_records, release_notice
from zap.core.config import Settings
from zap.core.errors import EXIT_SUCCESS, ProcessExecutionError, UserError, ZapError
from zap.core.interactive import SearchEngine
from zap.core.logging import get_logger
from zap.core.models import ExecutionResult
from zap.core.update import ReleaseChecker

log = get_logger(__name__)

COMMAND_ALIASES = {
    "s": "search",
    "i": "install",
    "int": "interactive",
    "ls": "list",
}

COMMANDS = ("search", "install", "info", "update", "list", "interactive")

# Runs the interactive UI; returns True when the user confirmed.
UIRunner = Callable[[SearchEngine], Awaitable[bool]]


def resolve_command(name: str) -> str:
    """Expand an alias and validate the command name."""
    command = COMMAND_ALIASES.get(name, name)
    if command not in COMMANDS:
        raise UserError(f"Unknown command '{name}'", context={"known": ", ".join(COMMANDS)})
    return command


def _check(result: ExecutionResult, operation: str) -> None:
    if not result.ok:
        raise ProcessExecutionError(
            command=result.command,
            returncode=result.returncode,
            error=result.error,
        ).with_context(operation=operation)


class Dispatcher:
    """Executes commands against the active backend.

    The dispatcher owns the terminal while a command runs; in interactive
    mode it hands the terminal to the UI and only takes it back, to run the
    install, after the UI has exited.
    """

    def __init__(
        self,
        backend: Backend,
        console: Console | None = None,
        settings: Settings | None = None,
        check_updates: bool = True,
        releases: ReleaseChecker | None = None,
        run_ui: UIRunner | None = None,
    ) -> None:
        self.backend = backend
        self.console = console or Console()
        self.settings = settings or Settings()
        self.check_updates = check_updates
        self.releases = releases
        self.run_ui = run_ui or run_search_app

    async def notify_release(self) -> None:
        if not self.check_updates or self.releases is None:
            return
        info = await self.releases.check()
        if info.newer:
            self.console.print(release_notice(info))

    async def dispatch(
        self,
        command: str,
        args: Sequence[str] = (),
        show_info: bool = False,
        pick: bool = False,
    ) -> int:
        """Run ``command`` and return the exit code.

        ``pick`` turns a search into an interactive session seeded with the
        query.

        Raises:
            ZapError: Any failure of the underlying backend operation.
        """
        name = resolve_command(command)
        await self.notify_release()

        start = time.perf_counter()
        log.info("dispatch_start", command=name, backend=self.backend.descriptor.id.value)
        try:
            if name == "search":
                code = await self.search(" ".join(args), show_info=show_info, pick=pick)
            elif name == "install":
                code = await self.install(args)
            elif name == "info":
                code = await self.info(" ".join(args))
            elif name == "update":
                code = await self.update()
            elif name == "list":
                code = await self.list()
            else:
                code = await self.interactive()
        except ZapError as e:
            raise e.with_context(action=name)

        log.info(
            "dispatch_complete",
            command=name,
            backend=self.backend.descriptor.id.value,
            duration_ms=int((time.perf_counter() - start) * 1000),
        )
        return code

    async def search(self, query: str, show_info: bool = False, pick: bool = False) -> int:
        if not query.strip():
            raise UserError("Search query must not be empty")
        if pick:
            return await self.interactive(query)
        records = await self.backend.search(query)
        print_records(records, self.console)
        if show_info and records:
            record = await self.backend.info(records[0].name)
            self.console.print(package_details(record))
        return EXIT_SUCCESS

    async def install(self, names: Sequence[str]) -> int:
        names = [n for n in names if n.strip()]
        if not names:
            raise UserError("No packages given to install")
        self.console.print(
            f"--> Installing {', '.join(names)} with {self.backend.descriptor.name}", style="bold"
        )
        _check(await self.backend.install(names), "install")
        self.console.print(f"✓ Installed {', '.join(names)}", style="green")
        return EXIT_SUCCESS

    async def info(self, name: str) -> int:
        if not name.strip():
            raise UserError("Package name must not be empty")
        self.console.print(package_details(await self.backend.info(name)))
        return EXIT_SUCCESS

    async def update(self) -> int:
        self.console.print(f"--> Updating packages with {self.backend.descriptor.name}", style="bold")
        _check(await self.backend.update(), "update")
        self.console.print("✓ Update complete", style="green")
        return EXIT_SUCCESS

    async def list(self) -> int:
        print_records(await self.backend.list(), self.console)
        return EXIT_SUCCESS

    async def interactive(self, query: str = "") -> int:
        engine = SearchEngine.from_settings(self.backend, self.settings)
        if query:
            engine.set_query(query)
        confirmed = await self.run_ui(engine)
        if not confirmed:
            engine.quit()
            log.info("interactive_exit", selected=len(engine.state.selected))
            return EXIT_SUCCESS

        result = await engine.confirm()
        if result is None:
            self.console.print("Nothing selected.", style="yellow")
            return EXIT_SUCCESS
        _check(result, "install")
        self.console.print(
            f"✓ Installed {', '.join(engine.state.selected_names)}", style="green"
        )
        return EXIT_SUCCESS
