"""Registry of every backend, keyed by BackendId."""

from __future__ import annotations

from zap.backends.base import BackendDescriptor, CommandBackend
from zap.backends.brew import BrewBackend
from zap.backends.language import CargoBackend, GoBackend, NpmBackend, PipBackend
from zap.backends.linux import (
    AptBackend,
    AurBackend,
    DnfBackend,
    PacmanBackend,
    PkgBackend,
    ZypperBackend,
)
from zap.backends.universal import FlatpakBackend, SnapBackend
from zap.backends.windows import ChocoBackend, ScoopBackend, WingetBackend
from zap.core.config import Settings
from zap.core.errors import UnknownBackendError
from zap.core.models import BackendId, Category
from zap.core.shell import ProcessExecutor

# Declaration order is the final tie-break in detection.
BACKENDS: dict[BackendId, type[CommandBackend]] = {
    cls.descriptor.id: cls
    for cls in (
        AptBackend,
        AurBackend,
        PacmanBackend,
        DnfBackend,
        ZypperBackend,
        PkgBackend,
        BrewBackend,
        WingetBackend,
        ScoopBackend,
        ChocoBackend,
        FlatpakBackend,
        SnapBackend,
        PipBackend,
        NpmBackend,
        CargoBackend,
        GoBackend,
    )
}

DESCRIPTORS: dict[BackendId, BackendDescriptor] = {
    backend_id: cls.descriptor for backend_id, cls in BACKENDS.items()
}


def parse_backend_id(value: str) -> BackendId:
    """Turn a user-supplied identifier into a BackendId.

    Raises:
        UnknownBackendError: If the identifier is not in the table.
    """
    try:
        return BackendId(value.strip().lower())
    except ValueError:
        raise UnknownBackendError(
            backend=value, known=[b.value for b in BACKENDS]
        ) from None


def create_backend(
    backend_id: BackendId, executor: ProcessExecutor, settings: Settings | None = None
) -> CommandBackend:
    """Instantiate the backend registered for ``backend_id``."""
    return BACKENDS[backend_id](executor, settings)


def by_category(category: Category) -> list[BackendId]:
    return [b for b, d in DESCRIPTORS.items() if d.category is category]
