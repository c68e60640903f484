"""Host detection and backend ranking."""

from __future__ import annotations

import os
import platform
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from zap.backends.base import BackendDescriptor
from zap.backends.registry import DESCRIPTORS
from zap.core.logging import get_logger
from zap.core.models import BackendId, Category

log = get_logger(__name__)

OS_RELEASE = Path("/etc/os-release")

# Score for system backends found only through the search path.
PATH_FALLBACK_SCORE = 1_000


@dataclass(frozen=True)
class OSInfo:
    """Identification of the running host."""

    id: str
    like: tuple[str, ...] = ()
    system: str = "linux"
    pretty_name: str = ""


def parse_os_release(text: str) -> dict[str, str]:
    """Parse os-release ``KEY=value`` lines, unquoting values."""
    data = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        data[key.strip()] = value.strip().strip('"').strip("'")
    return data


def os_info_from_release(data: Mapping[str, str], system: str = "linux") -> OSInfo:
    return OSInfo(
        id=data.get("ID", "").lower() or system,
        like=tuple(data.get("ID_LIKE", "").lower().split()),
        system=system,
        pretty_name=data.get("PRETTY_NAME", ""),
    )


def read_os_info(path: Path = OS_RELEASE, system: str | None = None) -> OSInfo:
    """Identify the host from platform.system() and os-release.

    Non-Linux systems get a synthetic id: ``macos``, ``windows`` or the
    lower-cased kernel name (``freebsd``).
    """
    system = (system or platform.system()).lower()
    if system == "darwin":
        return OSInfo(id="macos", system=system, pretty_name=f"macOS {platform.mac_ver()[0]}".strip())
    if system == "windows":
        return OSInfo(id="windows", system=system, pretty_name=f"Windows {platform.release()}")
    if system != "linux":
        return OSInfo(id=system, system=system, pretty_name=platform.platform())

    try:
        data = parse_os_release(path.read_text())
    except OSError:
        log.warning("os_release_unreadable", path=str(path))
        data = {}
    return os_info_from_release(data, system)


def _os_score(descriptor: BackendDescriptor, os_info: OSInfo) -> int | None:
    """0 for an exact distro match, 1 + i for the i-th ID_LIKE family."""
    if os_info.id in descriptor.os_families:
        return 0
    for index, family in enumerate(os_info.like):
        if family in descriptor.os_families:
            return 1 + index
    return None


def rank_backends(
    os_info: OSInfo,
    search_path: str | None = None,
    descriptors: Mapping[BackendId, BackendDescriptor] = DESCRIPTORS,
) -> list[BackendId]:
    """Order backends from most to least likely correct for this host.

    System backends matching the OS come first (exact id before family,
    then descriptor priority, then declaration order), followed by system
    backends whose executable is on ``search_path``, then every universal
    and every language backend.

    Args:
        os_info: Host identification.
        search_path: PATH-style string used for the executable fallback.
            Defaults to the process PATH.
        descriptors: Backend table, in declaration order.

    Returns:
        Ranked BackendIds. Identical input always yields identical output.
    """
    if search_path is None:
        search_path = os.environ.get("PATH", "")

    scored: list[tuple[int, int, int, BackendId]] = []
    for order, (backend_id, descriptor) in enumerate(descriptors.items()):
        if descriptor.category is not Category.SYSTEM:
            continue
        score = _os_score(descriptor, os_info)
        if score is None and any(
            shutil.which(exe, path=search_path) for exe in descriptor.executables
        ):
            score = PATH_FALLBACK_SCORE
        if score is not None:
            scored.append((score, descriptor.priority, order, backend_id))

    ranked = [backend_id for *_, backend_id in sorted(scored)]
    for category in (Category.UNIVERSAL, Category.LANGUAGE):
        ranked.extend(b for b, d in descriptors.items() if d.category is category)

    log.debug("backends_ranked", os_id=os_info.id, ranked=[b.value for b in ranked])
    return ranked


def detect_candidates(search_path: str | None = None) -> tuple[OSInfo, list[BackendId]]:
    """Read the host identity and rank backends for it."""
    os_info = read_os_info()
    return os_info, rank_backends(os_info, search_path)
