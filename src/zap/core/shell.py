"""Asynchronous process execution with cooperative cancellation."""

from __future__ import annotations

import asyncio
import os
import shutil
import time
from typing import Mapping, Optional, Sequence

from zap.core.errors import ProcessExecutionError
from zap.core.logging import get_logger
from zap.core.models import ExecutionResult

log = get_logger(__name__)

ENV_OVERRIDES = {
    "LANG": "C",
    "LC_ALL": "C",
    "NO_COLOR": "1",
    "HOMEBREW_NO_COLOR": "1",
    "HOMEBREW_NO_AUTO_UPDATE": "1",
    "HOMEBREW_NO_ENV_HINTS": "1",
}


class CancelToken:
    """Cancellation signal handed to a process call.

    The executor watches the token while it waits for the child to exit
    and kills the child as soon as the token fires.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    async def sleep(self, delay: float) -> bool:
        """Sleep for ``delay`` seconds unless cancelled first.

        Returns:
            True if the token was cancelled during the wait.
        """
        if self.cancelled:
            return True
        try:
            await asyncio.wait_for(self._event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return False
        return True


class ProcessExecutor:
    """Runs external commands for backends.

    Captured runs return stdout and stderr separately; streaming runs
    inherit the terminal so interactive tools (sudo, installers) can talk
    to the user. Neither mode imposes a timeout.
    """

    def __init__(self, env: Optional[Mapping[str, str]] = None) -> None:
        self.env = {**os.environ, **ENV_OVERRIDES, **(env or {})}

    def which(self, name: str) -> str | None:
        """Locate an executable on PATH without spawning anything."""
        return shutil.which(name, path=self.env.get("PATH"))

    def elevate(self, argv: Sequence[str]) -> list[str]:
        """Prefix ``sudo`` when running as a regular POSIX user.

        Root, Windows and hosts without sudo get the command unchanged.
        """
        geteuid = getattr(os, "geteuid", None)
        if geteuid is None or geteuid() == 0 or self.which("sudo") is None:
            return list(argv)
        return ["sudo", *argv]

    async def run(
        self,
        argv: Sequence[str],
        *,
        cancel: CancelToken | None = None,
        stream: bool = False,
    ) -> ExecutionResult:
        """Run a command and wait for it to finish or be cancelled.

        Args:
            argv: Command and its arguments.
            cancel: Optional token; firing it kills the child.
            stream: Inherit stdio instead of capturing output.

        Returns:
            The ExecutionResult for the child.

        Raises:
            ProcessExecutionError: If the executable cannot be started.
        """
        argv = list(argv)
        command = " ".join(argv)
        start = time.perf_counter()
        log.debug("command_start", command=command, stream=stream)

        if cancel is not None and cancel.cancelled:
            log.debug("command_skipped_cancelled", command=command)
            return ExecutionResult(argv=argv, returncode=-1, cancelled=True)

        pipe = None if stream else asyncio.subprocess.PIPE
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdout=pipe,
                stderr=pipe,
                env=self.env,
            )
        except (FileNotFoundError, PermissionError) as e:
            log.error("command_spawn_failed", command=command, error=str(e))
            raise ProcessExecutionError(
                f"Could not start '{argv[0]}'",
                command=command,
                returncode=127,
                error=str(e),
            ) from e

        communicate = asyncio.ensure_future(process.communicate())
        cancelled = False

        if cancel is None:
            out, err = await communicate
        else:
            waiter = asyncio.ensure_future(cancel.wait())
            done, _ = await asyncio.wait(
                {communicate, waiter}, return_when=asyncio.FIRST_COMPLETED
            )
            if communicate in done:
                waiter.cancel()
            else:
                cancelled = True
                try:
                    process.kill()
                except ProcessLookupError:
                    pass
            out, err = await communicate

        duration_ms = int((time.perf_counter() - start) * 1000)
        if cancelled:
            log.info("command_cancelled", command=command, duration_ms=duration_ms)
        else:
            log.info(
                "command_complete",
                command=command,
                returncode=process.returncode,
                duration_ms=duration_ms
            )

        return ExecutionResult(
            argv=argv,
            returncode=process.returncode if process.returncode is not None else -1,
            output=(out or b"").decode(errors="replace").strip(),
            error=(err or b"").decode(errors="replace").strip(),
            cancelled=cancelled,
        )
