import asyncio
import os
import sys
import time

import pytest

from zap.core.errors import ProcessExecutionError
from zap.core.shell import CancelToken, ProcessExecutor

PY = sys.executable


async def test_run_captures_stdout_and_stderr():
    executor = ProcessExecutor()

    result = await executor.run(
        [PY, "-c", "import sys; print('hello'); print('oops', file=sys.stderr)"]
    )

    assert result.ok
    assert result.output == "hello"
    assert result.error == "oops"
    assert result.combined == "hello\noops"


async def test_run_reports_nonzero_exit_without_raising():
    executor = ProcessExecutor()

    result = await executor.run([PY, "-c", "import sys; sys.exit(3)"])

    assert result.returncode == 3
    assert not result.ok
    assert not result.cancelled


async def test_child_sees_plain_locale_and_no_colour():
    executor = ProcessExecutor()

    result = await executor.run([PY, "-c", "import os; print(os.environ['NO_COLOR'], os.environ['LC_ALL'])"])

    assert result.output == "1 C"


async def test_cancel_kills_running_child():
    executor = ProcessExecutor()
    token = CancelToken()

    async def cancel_soon():
        await asyncio.sleep(0.2)
        token.cancel()

    start = time.perf_counter()
    canceller = asyncio.ensure_future(cancel_soon())
    result = await executor.run([PY, "-c", "import time; time.sleep(30)"], cancel=token)
    await canceller

    assert result.cancelled
    assert not result.ok
    assert time.perf_counter() - start < 10


async def test_already_cancelled_token_spawns_nothing(monkeypatch):
    executor = ProcessExecutor()
    token = CancelToken()
    token.cancel()

    async def fail(*args, **kwargs):
        raise AssertionError("process spawned")

    monkeypatch.setattr(asyncio, "create_subprocess_exec", fail)

    result = await executor.run(["anything"], cancel=token)

    assert result.cancelled
    assert result.returncode == -1


async def test_missing_executable_raises():
    executor = ProcessExecutor()

    with pytest.raises(ProcessExecutionError) as excinfo:
        await executor.run(["zap-definitely-not-installed-xyz"])

    assert excinfo.value.returncode == 127


async def test_token_sleep_returns_early_when_cancelled():
    token = CancelToken()
    asyncio.get_running_loop().call_later(0.05, token.cancel)

    start = time.perf_counter()
    assert await token.sleep(5) is True
    assert time.perf_counter() - start < 2
    assert await CancelToken().sleep(0.01) is False


def test_elevate_prefixes_sudo_for_regular_user(monkeypatch):
    executor = ProcessExecutor()
    monkeypatch.setattr(os, "geteuid", lambda: 1000, raising=False)
    monkeypatch.setattr(executor, "which", lambda name: "/usr/bin/sudo")

    assert executor.elevate(["apt-get", "install", "vim"]) == ["sudo", "apt-get", "install", "vim"]


def test_elevate_leaves_root_alone(monkeypatch):
    executor = ProcessExecutor()
    monkeypatch.setattr(os, "geteuid", lambda: 0, raising=False)
    monkeypatch.setattr(executor, "which", lambda name: "/usr/bin/sudo")

    assert executor.elevate(["apt-get", "update"]) == ["apt-get", "update"]


def test_elevate_without_sudo_binary(monkeypatch):
    executor = ProcessExecutor()
    monkeypatch.setattr(os, "geteuid", lambda: 1000, raising=False)
    monkeypatch.setattr(executor, "which", lambda name: None)

    assert executor.elevate(["pkg", "upgrade"]) == ["pkg", "upgrade"]
