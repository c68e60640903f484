"""Unattended installation of missing package managers and runtimes."""

from __future__ import annotations

import platform
import sys
import time
from dataclasses import dataclass
from typing import Callable, Mapping

from rich.console import Console
from rich.prompt import Confirm

from zap.backends.base import CommandBackend
from zap.core.config import Settings
from zap.core.errors import BootstrapDeclinedError, BootstrapFailedError
from zap.core.logging import get_logger
from zap.core.models import BackendId
from zap.core.shell import ProcessExecutor

log = get_logger(__name__)
console = Console(stderr=True)

POWERSHELL = ("powershell", "-NoProfile", "-ExecutionPolicy", "Bypass", "-Command")

WINGET_SCRIPT = """
$ErrorActionPreference = 'Stop'
$bundle = "$env:TEMP\\winget.msixbundle"
Invoke-WebRequest -UseBasicParsing -Uri https://aka.ms/getwinget -OutFile $bundle
Add-AppxPackage -Path $bundle
"""

SCOOP_SCRIPT = """
Set-ExecutionPolicy -Scope CurrentUser RemoteSigned -Force
Invoke-Expression (New-Object System.Net.WebClient).DownloadString('https://get.scoop.sh')
"""

CHOCO_SCRIPT = """
Set-ExecutionPolicy Bypass -Scope Process -Force
[System.Net.ServicePointManager]::SecurityProtocol = [System.Net.ServicePointManager]::SecurityProtocol -bor 3072
iex ((New-Object System.Net.WebClient).DownloadString('https://community.chocolatey.org/install.ps1'))
"""

RUSTUP_SCRIPT = "curl --proto '=https' --tlsv1.2 -sSf https://sh.rustup.rs | sh -s -- -y"

WINDOWS = frozenset({"windows"})
ANYWHERE = frozenset({"windows", "linux", "darwin", "freebsd"})


@dataclass(frozen=True)
class Strategy:
    """One way to install a tool, usable when ``requires`` is on PATH."""

    requires: str
    commands: tuple[tuple[str, ...], ...]
    privileged: bool = False


@dataclass(frozen=True)
class BootstrapRecipe:
    """How to make a backend's tool available."""

    display_name: str
    platforms: frozenset[str]
    strategies: tuple[Strategy, ...]


def _winget(package_id: str) -> Strategy:
    return Strategy("winget", ((
        "winget", "install", "--id", package_id, "--exact",
        "--accept-package-agreements", "--accept-source-agreements",
    ),))


def _runtime(
    winget_id: str, scoop: str, choco: str, apt: tuple[str, ...], dnf: tuple[str, ...],
    pacman: tuple[str, ...], brew: str,
) -> tuple[Strategy, ...]:
    """Strategies for installing a runtime through whatever manager exists."""
    return (
        _winget(winget_id),
        Strategy("scoop", (("scoop", "install", scoop),)),
        Strategy("choco", (("choco", "install", choco, "-y"),)),
        Strategy(
            "apt-get",
            (("apt-get", "update"), ("apt-get", "install", "-y", *apt)),
            privileged=True,
        ),
        Strategy("dnf", (("dnf", "install", "-y", *dnf),), privileged=True),
        Strategy("pacman", (("pacman", "-Sy", "--noconfirm", "--needed", *pacman),), privileged=True),
        Strategy("brew", (("brew", "install", brew),)),
    )


RECIPES: Mapping[BackendId, BootstrapRecipe] = {
    BackendId.WINGET: BootstrapRecipe(
        "winget", WINDOWS, (Strategy("powershell", ((*POWERSHELL, WINGET_SCRIPT),)),)
    ),
    BackendId.SCOOP: BootstrapRecipe(
        "Scoop", WINDOWS, (Strategy("powershell", ((*POWERSHELL, SCOOP_SCRIPT),)),)
    ),
    BackendId.CHOCO: BootstrapRecipe(
        "Chocolatey", WINDOWS, (Strategy("powershell", ((*POWERSHELL, CHOCO_SCRIPT),)),)
    ),
    BackendId.PIP: BootstrapRecipe(
        "Python",
        ANYWHERE,
        _runtime(
            "Python.Python.3.12", "python", "python",
            ("python3", "python3-pip"), ("python3", "python3-pip"), ("python", "python-pip"),
            "python",
        ),
    ),
    BackendId.NPM: BootstrapRecipe(
        "Node.js",
        ANYWHERE,
        _runtime(
            "OpenJS.NodeJS.LTS", "nodejs-lts", "nodejs-lts",
            ("nodejs", "npm"), ("nodejs", "npm"), ("nodejs", "npm"),
            "node",
        ),
    ),
    BackendId.GO: BootstrapRecipe(
        "Go",
        ANYWHERE,
        _runtime("GoLang.Go", "go", "golang", ("golang-go",), ("golang",), ("go",), "go"),
    ),
    BackendId.CARGO: BootstrapRecipe(
        "Rust (rustup)",
        ANYWHERE,
        (
            _winget("Rustlang.Rustup"),
            Strategy("scoop", (("scoop", "install", "rustup"),)),
            Strategy("curl", (("sh", "-c", RUSTUP_SCRIPT),)),
        ),
    ),
}


def ask_consent(prompt: str) -> bool:
    """Ask on the terminal; a non-interactive stdin counts as no."""
    if not sys.stdin.isatty():
        log.info("bootstrap_consent_unavailable", reason="stdin is not a tty")
        return False
    return Confirm.ask(prompt, default=True, console=console)


class BootstrapManager:
    """Installs a backend's missing tool at most once per invocation."""

    def __init__(
        self,
        executor: ProcessExecutor,
        settings: Settings | None = None,
        confirm: Callable[[str], bool] = ask_consent,
        system: str | None = None,
        recipes: Mapping[BackendId, BootstrapRecipe] = RECIPES,
    ) -> None:
        self.executor = executor
        self.settings = settings or Settings()
        self.confirm = confirm
        self.system = (system or platform.system()).lower()
        self.recipes = recipes
        self.attempted: set[BackendId] = set()

    def has_recipe(self, backend_id: BackendId) -> bool:
        return backend_id in self.recipes

    def _consent(self, recipe: BootstrapRecipe, backend: CommandBackend) -> bool:
        if self.settings.auto_yes:
            console.print(f"--> Auto-confirmed installation of {recipe.display_name}")
            return True
        console.print(f"{recipe.display_name} is required for {backend.name} but is not installed.")
        return self.confirm(f"Install {recipe.display_name} now?")

    def _strategy(self, recipe: BootstrapRecipe) -> Strategy | None:
        for strategy in recipe.strategies:
            if self.executor.which(strategy.requires):
                return strategy
        return None

    async def ensure(self, backend: CommandBackend) -> None:
        """Make ``backend`` available, installing its tool if needed.

        Raises:
            BootstrapDeclinedError: The user said no.
            BootstrapFailedError: No recipe, no usable installer, the
                installer failed, the tool is still missing afterwards, or
                this backend was already attempted.
        """
        backend_id = backend.id
        if backend.is_available():
            return

        if backend_id in self.attempted:
            raise BootstrapFailedError(
                backend=backend.name, reason="bootstrap was already attempted in this run"
            )

        recipe = self.recipes.get(backend_id)
        if recipe is None:
            raise BootstrapFailedError(backend=backend.name, reason="no bootstrap recipe")
        if self.system not in recipe.platforms:
            raise BootstrapFailedError(
                backend=backend.name,
                reason=f"{recipe.display_name} bootstrap is not supported on {self.system}",
            )

        self.attempted.add(backend_id)

        if not self._consent(recipe, backend):
            log.info("bootstrap_declined", backend=backend_id.value)
            raise BootstrapDeclinedError(backend=recipe.display_name)

        strategy = self._strategy(recipe)
        if strategy is None:
            raise BootstrapFailedError(
                backend=backend.name,
                reason=f"no installer available for {recipe.display_name}",
            )

        start = time.perf_counter()
        log.info("bootstrap_start", backend=backend_id.value, via=strategy.requires)
        console.print(f"--> Installing {recipe.display_name} via {strategy.requires}...")

        for command in strategy.commands:
            argv = self.executor.elevate(command) if strategy.privileged else list(command)
            result = await self.executor.run(argv, stream=True)
            if result.returncode != 0:
                log.error(
                    "bootstrap_step_failed",
                    backend=backend_id.value,
                    command=result.command,
                    returncode=result.returncode,
                )
                raise BootstrapFailedError(
                    backend=backend.name,
                    reason=f"'{argv[0]}' exited with code {result.returncode}",
                )

        if not backend.is_available():
            raise BootstrapFailedError(
                backend=backend.name,
                reason=f"{recipe.display_name} installed but {backend.descriptor.executables[0]} is still not on PATH",
            )

        log.info(
            "bootstrap_complete",
            backend=backend_id.value,
            duration_ms=int((time.perf_counter() - start) * 1000),
        )
