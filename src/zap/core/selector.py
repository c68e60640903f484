"""Resolution of the single active backend for an invocation."""

from __future__ import annotations

from typing import Callable, Sequence

from zap.backends.base import CommandBackend
from zap.backends.registry import create_backend, parse_backend_id
from zap.core.bootstrap import BootstrapManager
from zap.core.config import Settings
from zap.core.errors import BootstrapDeclinedError, NoBackendAvailableError
from zap.core.logging import get_logger
from zap.core.models import BackendId
from zap.core.shell import ProcessExecutor

log = get_logger(__name__)


class BackendSelector:
    """Picks the backend: explicit override, else first available candidate.

    Only one bootstrap attempt is made per selection: on the overridden
    backend, or on the top-ranked candidate when nothing is available.
    """

    def __init__(
        self,
        executor: ProcessExecutor,
        bootstrap: BootstrapManager,
        candidates: Callable[[], Sequence[BackendId]],
        settings: Settings | None = None,
    ) -> None:
        self.executor = executor
        self.bootstrap = bootstrap
        self.candidates = candidates
        self.settings = settings or Settings()

    def _create(self, backend_id: BackendId) -> CommandBackend:
        return create_backend(backend_id, self.executor, self.settings)

    async def _bootstrap_or_fail(
        self, backend: CommandBackend, tried: Sequence[BackendId]
    ) -> CommandBackend:
        tried_names = [b.value for b in tried]
        if not self.bootstrap.has_recipe(backend.id):
            log.error("no_backend_available", candidates=tried_names, bootstrap="no_recipe")
            raise NoBackendAvailableError(candidates=tried_names)
        try:
            await self.bootstrap.ensure(backend)
        except BootstrapDeclinedError as e:
            log.error("no_backend_available", candidates=tried_names, bootstrap="declined")
            raise NoBackendAvailableError(
                f"No usable package manager: installation of {backend.name} was declined",
                candidates=tried_names,
            ) from e
        if not backend.is_available():
            raise NoBackendAvailableError(candidates=tried_names)
        return backend

    async def select(self, override: str | None = None) -> CommandBackend:
        """Resolve the active backend.

        Args:
            override: Backend identifier given by the user, if any.

        Raises:
            UnknownBackendError: The override is not a known identifier.
            NoBackendAvailableError: Nothing usable, even after bootstrap.
            BootstrapFailedError: The bootstrap recipe ran and failed.
        """
        override = override if override is not None else self.settings.backend
        if override and override.lower() != "auto":
            backend = self._create(parse_backend_id(override))
            log.info("backend_override", backend=backend.id.value)
            if backend.is_available():
                return backend
            return await self._bootstrap_or_fail(backend, [backend.id])

        candidates = list(self.candidates())
        for backend_id in candidates:
            backend = self._create(backend_id)
            if backend.is_available():
                log.info("backend_selected", backend=backend_id.value,
                         rank=candidates.index(backend_id))
                return backend

        if not candidates:
            raise NoBackendAvailableError(candidates=[])

        log.warning("no_backend_detected", candidates=[b.value for b in candidates])
        return await self._bootstrap_or_fail(self._create(candidates[0]), candidates)
