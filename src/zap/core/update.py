"""Release check: reports a newer zap release, never installs it."""

from __future__ import annotations

import re
from dataclasses import dataclass
from importlib import metadata

from zap.backends.language import PIP_INDEX_RE
from zap.core.errors import ProcessExecutionError
from zap.core.logging import get_logger
from zap.core.shell import ProcessExecutor

log = get_logger(__name__)

DISTRIBUTION = "zap-pm"
UPGRADE_HINT = f"pip install --upgrade {DISTRIBUTION}"


def installed_version() -> str:
    try:
        return metadata.version(DISTRIBUTION)
    except metadata.PackageNotFoundError:
        return "0.0.0"


def version_key(version: str) -> tuple[int, ...]:
    """Numeric key for dotted versions; non-numeric tails are ignored."""
    parts = []
    for piece in version.strip().lstrip("v").split("."):
        digits = re.match(r"\d+", piece)
        if digits is None:
            break
        parts.append(int(digits.group()))
    return tuple(parts)


def is_newer(latest: str, current: str) -> bool:
    latest_key, current_key = version_key(latest), version_key(current)
    if latest_key and current_key:
        return latest_key > current_key
    return latest != current


@dataclass(frozen=True)
class ReleaseInfo:
    current: str
    latest: str | None = None

    @property
    def newer(self) -> bool:
        return self.latest is not None and is_newer(self.latest, self.current)


class ReleaseChecker:
    """Asks the package index, through pip, for the latest zap version."""

    def __init__(self, executor: ProcessExecutor, current: str | None = None) -> None:
        self.executor = executor
        self.current = current or installed_version()

    async def check(self) -> ReleaseInfo:
        """Look up the latest release.

        An unreachable index or missing pip yields ``latest=None``.
        """
        pip = self.executor.which("pip3") or self.executor.which("pip")
        if pip is None:
            log.debug("release_check_skipped", reason="pip not found")
            return ReleaseInfo(self.current)

        try:
            result = await self.executor.run([pip, "index", "versions", DISTRIBUTION])
        except ProcessExecutionError as e:
            log.warning("release_check_failed", error=str(e))
            return ReleaseInfo(self.current)

        if result.returncode != 0:
            log.warning("release_check_failed", returncode=result.returncode, error=result.error)
            return ReleaseInfo(self.current)

        for line in result.output.splitlines():
            match = PIP_INDEX_RE.match(line.strip())
            if match:
                info = ReleaseInfo(self.current, match.group(2))
                log.info("release_check_complete", current=info.current, latest=info.latest)
                return info

        return ReleaseInfo(self.current)
