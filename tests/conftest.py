from __future__ import annotations

import asyncio
from typing import Callable, Iterable, Sequence

import pytest

from zap.backends.base import BackendDescriptor
from zap.core.logging import configure_logging
from zap.core.models import BackendId, Category, ExecutionResult, PackageRecord
from zap.core.shell import CancelToken, ProcessExecutor


@pytest.fixture(autouse=True, scope="session")
def _logging(tmp_path_factory):
    configure_logging(level="DEBUG", log_file=tmp_path_factory.mktemp("logs") / "zap.log")


@pytest.fixture(autouse=True)
def _zap_env(monkeypatch, tmp_path):
    monkeypatch.setenv("ZAP_HOME", str(tmp_path / "zap-home"))
    monkeypatch.setenv("ZAP_DISABLE_UPDATE_CHECK", "1")
    monkeypatch.delenv("ZAP_AUTO_YES", raising=False)
    monkeypatch.delenv("ZAP_LOG_LEVEL", raising=False)
    monkeypatch.delenv("ZAP_BACKEND", raising=False)


class FakeExecutor(ProcessExecutor):
    """Executor that records commands instead of spawning them.

    ``responses`` maps a full command line to ``(returncode, stdout)`` or
    ``(returncode, stdout, stderr)``; anything else succeeds with no output.
    Every call records the cancel token it was given, and ``hold`` keeps a
    command running until the test releases it or its token fires.
    ``on_run`` lets a test react to a command, e.g. make a tool appear
    after its installer ran.
    """

    def __init__(
        self,
        available: Iterable[str] = (),
        responses: dict[str, tuple[int, ...]] | None = None,
        root: bool = False,
        on_run: Callable[[list[str]], None] | None = None,
    ) -> None:
        super().__init__(env={"PATH": ""})
        self.available = set(available)
        self.responses = responses or {}
        self.root = root
        self.on_run = on_run
        self.runs: list[list[str]] = []
        self.streamed: list[bool] = []
        self.tokens: list[CancelToken | None] = []
        self.gates: dict[str, asyncio.Event] = {}

    def hold(self, cmdline: str) -> asyncio.Event:
        gate = asyncio.Event()
        self.gates[cmdline] = gate
        return gate

    def which(self, name: str) -> str | None:
        return f"/usr/bin/{name}" if name in self.available else None

    def elevate(self, argv: Sequence[str]) -> list[str]:
        if self.root or "sudo" not in self.available:
            return list(argv)
        return ["sudo", *argv]

    async def run(self, argv, *, cancel=None, stream=False) -> ExecutionResult:
        argv = list(argv)
        self.runs.append(argv)
        self.streamed.append(stream)
        self.tokens.append(cancel)
        if self.on_run is not None:
            self.on_run(argv)
        cmdline = " ".join(argv)

        gate = self.gates.get(cmdline)
        if gate is not None:
            waiters = {asyncio.ensure_future(gate.wait())}
            if cancel is not None:
                waiters.add(asyncio.ensure_future(cancel.wait()))
            _, pending = await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
            for task in pending:
                task.cancel()
            if cancel is not None and cancel.cancelled:
                return ExecutionResult(argv=argv, returncode=-1, cancelled=True)

        returncode, output, *error = self.responses.get(cmdline, (0, ""))
        return ExecutionResult(
            argv=argv, returncode=returncode, output=output, error="".join(error)
        )


class FakeBackend:
    """In-memory backend whose searches can be held open by the test."""

    descriptor = BackendDescriptor(
        id=BackendId.APT,
        name="Fake",
        executables=("fake",),
        category=Category.SYSTEM,
    )

    def __init__(self, results: dict[str, list[str]] | None = None) -> None:
        self.results = results or {}
        self.gates: dict[str, asyncio.Event] = {}
        self.ignore_cancel: set[str] = set()
        self.failures: dict[str, Exception] = {}
        self.tokens: dict[str, CancelToken] = {}
        self.events: list[str] = []
        self.installs: list[list[str]] = []

    def hold(self, query: str, ignore_cancel: bool = False) -> asyncio.Event:
        gate = asyncio.Event()
        self.gates[query] = gate
        if ignore_cancel:
            self.ignore_cancel.add(query)
        return gate

    def is_available(self) -> bool:
        return True

    async def search(self, query: str, cancel: CancelToken | None = None) -> list[PackageRecord]:
        cancel = cancel or CancelToken()
        self.tokens[query] = cancel
        self.events.append(f"start:{query}")

        gate = self.gates.get(query)
        if gate is not None:
            if query in self.ignore_cancel:
                await gate.wait()
            else:
                released = asyncio.ensure_future(gate.wait())
                cancelled = asyncio.ensure_future(cancel.wait())
                _, pending = await asyncio.wait(
                    {released, cancelled}, return_when=asyncio.FIRST_COMPLETED
                )
                for task in pending:
                    task.cancel()
                if cancel.cancelled:
                    self.events.append(f"cancel:{query}")
                    return []

        if query in self.failures:
            raise self.failures[query]
        self.events.append(f"done:{query}")
        return [PackageRecord(name, BackendId.APT) for name in self.results.get(query, [])]

    async def install(self, names: Sequence[str]) -> ExecutionResult:
        self.installs.append(list(names))
        return ExecutionResult(argv=["fake", "install", *names], returncode=0)


async def until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll the event loop until ``predicate`` holds."""

    async def poll() -> None:
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(poll(), timeout)


@pytest.fixture
def fake_executor() -> FakeExecutor:
    return FakeExecutor()
