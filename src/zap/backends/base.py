"""Backend base classes and protocols for package management."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import ClassVar, Literal, Protocol, Sequence

from zap.core.config import Settings
from zap.core.errors import (
    PackageNotFoundError,
    ProcessExecutionError,
    UnsupportedOperationError,
)
from zap.core.logging import get_logger
from zap.core.models import BackendId, Category, ExecutionResult, PackageRecord
from zap.core.shell import CancelToken, ProcessExecutor

log = get_logger(__name__)

Operation = Literal["search", "info", "install", "update", "list", "refresh"]
Argv = tuple[str, ...]


@dataclass(frozen=True)
class BackendDescriptor:
    """Static metadata for one backend."""

    id: BackendId
    name: str
    executables: tuple[str, ...]
    category: Category
    os_families: tuple[str, ...] = ()
    priority: int = 100


@dataclass(frozen=True)
class CommandSpec:
    """Argument templates for each logical operation.

    Tokens: ``{exe}`` is the resolved executable, ``{query}``, ``{name}`` and
    ``{limit}`` are substituted inside an argument, and a bare ``{names}`` argument
    expands to one argument per package. ``None`` marks an operation the
    backend cannot perform.
    """

    search: Argv | None = None
    info: Argv | None = None
    install: Argv | None = None
    update: Argv | None = None
    list: Argv | None = None
    refresh: Argv | None = None
    privileged: frozenset[str] = field(default_factory=frozenset)
    batch_install: bool = True
    no_results_codes: frozenset[int] = field(default_factory=frozenset)
    not_found_codes: frozenset[int] = field(default_factory=frozenset)

    def template(self, operation: Operation) -> Argv | None:
        return getattr(self, operation)

    def render(self, operation: Operation, exe: str, **values: str | Sequence[str]) -> list[str]:
        """Expand the template for ``operation``.

        Raises:
            KeyError: If the operation has no template.
        """
        template = self.template(operation)
        if template is None:
            raise KeyError(operation)

        argv: list[str] = []
        for part in template:
            if part == "{names}":
                argv.extend(values.get("names", ()))
                continue
            text = part.replace("{exe}", exe)
            for key in ("query", "name", "limit"):
                if f"{{{key}}}" in text:
                    text = text.replace(f"{{{key}}}", str(values.get(key, "")))
            argv.append(text)
        return argv


class Backend(Protocol):
    """Protocol for package backend implementations."""

    descriptor: BackendDescriptor

    def is_available(self) -> bool:
        """Probe for the backend's executable. Cheap, no network."""
        ...

    async def search(self, query: str, cancel: CancelToken | None = None) -> list[PackageRecord]:
        """Search packages matching ``query``."""
        ...

    async def install(self, names: Sequence[str]) -> ExecutionResult:
        """Install packages by name."""
        ...

    async def info(self, name: str) -> PackageRecord:
        """Describe one package; raises PackageNotFoundError."""
        ...

    async def update(self) -> ExecutionResult:
        """Upgrade everything this backend manages."""
        ...

    async def list(self) -> list[PackageRecord]:
        """List installed packages."""
        ...


class CommandBackend:
    """Backend driven entirely by a CommandSpec table.

    Subclasses declare ``descriptor`` and ``commands`` and implement the
    parser hooks for the operations they support.
    """

    descriptor: ClassVar[BackendDescriptor]
    commands: ClassVar[CommandSpec]

    def __init__(self, executor: ProcessExecutor, settings: Settings | None = None) -> None:
        self.executor = executor
        self.settings = settings or Settings()

    @property
    def id(self) -> BackendId:
        return self.descriptor.id

    @property
    def name(self) -> str:
        return self.descriptor.name

    def executable(self) -> str | None:
        """First of the descriptor's executables found on PATH."""
        for candidate in self.descriptor.executables:
            if self.executor.which(candidate):
                return candidate
        return None

    def is_available(self) -> bool:
        return self.executable() is not None

    def supports(self, operation: Operation) -> bool:
        return self.commands.template(operation) is not None

    def _require(self, operation: Operation) -> None:
        if not self.supports(operation):
            log.warning("operation_unsupported", backend=self.id.value, operation=operation)
            raise UnsupportedOperationError(backend=self.name, operation=operation)

    def argv(self, operation: Operation, **values: str | Sequence[str]) -> list[str]:
        """Render the command line for an operation, with sudo if needed."""
        self._require(operation)
        exe = self.executable() or self.descriptor.executables[0]
        argv = self.commands.render(operation, exe, **values)
        if operation in self.commands.privileged and self.settings.use_sudo:
            argv = self.executor.elevate(argv)
        return argv

    def _quiet_codes(self, operation: Operation) -> frozenset[int]:
        """Exit codes that mean an empty answer rather than a failure."""
        if operation == "search":
            return self.commands.no_results_codes
        if operation == "info":
            return self.commands.not_found_codes
        return frozenset()

    async def _capture(
        self, operation: Operation, cancel: CancelToken | None = None, **values: str
    ) -> ExecutionResult:
        result = await self.executor.run(self.argv(operation, **values), cancel=cancel)
        if result.cancelled or result.returncode == 0:
            return result
        if result.returncode in self._quiet_codes(operation):
            return result
        log.error(
            "command_failed",
            backend=self.id.value,
            command=result.command,
            returncode=result.returncode,
            error=result.error or result.output,
        )
        raise ProcessExecutionError(
            command=result.command,
            returncode=result.returncode,
            error=result.error or result.output,
        )

    async def search(self, query: str, cancel: CancelToken | None = None) -> list[PackageRecord]:
        self._require("search")
        start = time.perf_counter()
        result = await self._capture(
            "search", cancel=cancel, query=query, limit=str(self.settings.search_limit)
        )
        if result.cancelled:
            return []
        if result.returncode != 0:
            records = []
        else:
            records = self.parse_search(result.output)[: self.settings.search_limit]
        log.info(
            "search_complete",
            backend=self.id.value,
            query=query,
            count=len(records),
            duration_ms=int((time.perf_counter() - start) * 1000),
        )
        return records

    async def info(self, name: str) -> PackageRecord:
        self._require("info")
        result = await self._capture("info", name=name)
        record = self.parse_info(result.output, name) if result.returncode == 0 else None
        if record is None:
            log.info("package_not_found", backend=self.id.value, package=name)
            raise PackageNotFoundError(package=name, backend=self.name)
        return record

    async def install(self, names: Sequence[str]) -> ExecutionResult:
        self._require("install")
        names = list(names)
        log.info("install_start", backend=self.id.value, packages=names)
        if self.commands.batch_install:
            return await self.executor.run(self.argv("install", names=names), stream=True)

        result = ExecutionResult(argv=[], returncode=0)
        for name in names:
            result = await self.executor.run(
                self.argv("install", name=name, names=[name]), stream=True
            )
            if result.returncode != 0:
                log.error("install_failed", backend=self.id.value, package=name,
                          returncode=result.returncode)
                break
        return result

    async def update(self) -> ExecutionResult:
        self._require("update")
        if self.supports("refresh"):
            refreshed = await self.executor.run(self.argv("refresh"), stream=True)
            if refreshed.returncode != 0:
                return refreshed
        return await self.executor.run(self.argv("update"), stream=True)

    async def list(self) -> list[PackageRecord]:
        self._require("list")
        result = await self._capture("list")
        return self.parse_list(result.output)

    # Parser hooks

    def record(self, name: str, version: str | None = None, description: str = "") -> PackageRecord:
        return PackageRecord(
            name=name,
            source=self.id,
            version=version or None,
            description=description or "",
        )

    def parse_search(self, output: str) -> list[PackageRecord]:
        raise NotImplementedError

    def parse_info(self, output: str, name: str) -> PackageRecord | None:
        raise NotImplementedError

    def parse_list(self, output: str) -> list[PackageRecord]:
        raise NotImplementedError
