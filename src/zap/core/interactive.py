"""Live, debounced search engine behind interactive mode."""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Callable

from zap.backends.base import Backend
from zap.core.config import Settings
from zap.core.errors import ZapError
from zap.core.logging import get_logger
from zap.core.models import ExecutionResult, SelectionState
from zap.core.shell import CancelToken

log = get_logger(__name__)

Listener = Callable[["SearchEngine"], None]


class EngineStatus(Enum):
    """States of an interactive session."""

    IDLE = "idle"
    TYPING = "typing"
    SEARCHING = "searching"
    DISPLAYING = "displaying"
    CANCELLED = "cancelled"
    CONFIRMED = "confirmed"
    EXITED = "exited"


class SearchEngine:
    """Issues at most one search at a time and never shows stale results.

    Every query change bumps ``state.sequence`` and cancels the previous
    search through its CancelToken, which kills the backend process. A
    completed search is applied only if its sequence number is still the
    current one.
    """

    def __init__(self, backend: Backend, *, debounce: float = 0.3, min_length: int = 2) -> None:
        self.backend = backend
        self.debounce = debounce
        self.min_length = min_length
        self.state = SelectionState()
        self.status = EngineStatus.IDLE
        self._listeners: list[Listener] = []
        self._task: asyncio.Task | None = None
        self._token: CancelToken | None = None
        self._pending: set[asyncio.Task] = set()
        self._confirmed = False
        self._install_result: ExecutionResult | None = None

    @classmethod
    def from_settings(cls, backend: Backend, settings: Settings) -> SearchEngine:
        return cls(backend, debounce=settings.debounce, min_length=settings.min_query_length)

    def on_change(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def _notify(self) -> None:
        for listener in self._listeners:
            listener(self)

    @property
    def finished(self) -> bool:
        return self.status in (EngineStatus.CONFIRMED, EngineStatus.EXITED)

    def _cancel_inflight(self) -> None:
        if self._token is not None and self._task is not None and not self._task.done():
            self._token.cancel()
            self.status = EngineStatus.CANCELLED
            log.debug("search_cancelled", sequence=self.state.sequence)
        self._token = None
        self._task = None

    def set_query(self, query: str) -> None:
        """Handle an edit of the query text."""
        if self.finished or query == self.state.query:
            return

        self.state.query = query
        self.state.sequence += 1
        self._cancel_inflight()

        if len(query.strip()) < self.min_length:
            self.state.records = []
            self.state.error = None
            self.status = EngineStatus.IDLE
            self._notify()
            return

        self.status = EngineStatus.TYPING
        token = CancelToken()
        task = asyncio.get_running_loop().create_task(
            self._search(self.state.sequence, query.strip(), token)
        )
        self._token, self._task = token, task
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        self._notify()

    def _is_current(self, sequence: int, token: CancelToken) -> bool:
        return sequence == self.state.sequence and not token.cancelled and not self.finished

    async def _search(self, sequence: int, query: str, token: CancelToken) -> None:
        if await token.sleep(self.debounce):
            return

        self.status = EngineStatus.SEARCHING
        self._notify()
        log.debug("search_dispatched", query=query, sequence=sequence)

        try:
            records = await self.backend.search(query, cancel=token)
        except ZapError as e:
            log.warning("interactive_search_failed", query=query, error=str(e))
            if self._is_current(sequence, token):
                self.state.records = []
                self.state.error = e.message
                self.status = EngineStatus.DISPLAYING
                self._notify()
            return

        if not self._is_current(sequence, token):
            log.debug(
                "search_result_discarded",
                query=query,
                sequence=sequence,
                current=self.state.sequence,
            )
            return

        self.state.records = list(records)
        self.state.error = None
        self.status = EngineStatus.DISPLAYING
        self._notify()

    async def wait_idle(self) -> None:
        """Wait until every outstanding search task has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    def displayed_names(self) -> list[str]:
        return [record.name for record in self.state.records]

    def toggle(self, name: str) -> bool:
        """Flip selection of a displayed record.

        Returns:
            Whether ``name`` is selected afterwards.
        """
        if self.state.is_selected(name):
            del self.state.selected[name]
        elif name in self.displayed_names():
            self.state.selected[name] = None
        self._notify()
        return self.state.is_selected(name)

    def select(self, name: str) -> None:
        if not self.state.is_selected(name):
            self.toggle(name)

    def deselect(self, name: str) -> None:
        if self.state.is_selected(name):
            self.toggle(name)

    async def confirm(self) -> ExecutionResult | None:
        """Install the selection; only the first call has an effect."""
        if self.status is EngineStatus.EXITED:
            return None
        if self._confirmed:
            return self._install_result

        self._confirmed = True
        self._cancel_inflight()
        self.status = EngineStatus.CONFIRMED
        self._notify()

        names = self.state.selected_names
        if names:
            log.info("interactive_install", packages=names)
            self._install_result = await self.backend.install(names)
        return self._install_result

    def quit(self) -> None:
        """Leave without side effects."""
        if self.finished:
            return
        self._cancel_inflight()
        self.status = EngineStatus.EXITED
        self._notify()
