"""Public facade: one query, its lifecycle, and three operations."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from querycycle._coordinator import RequestCoordinator
from querycycle._transport import Transport
from querycycle.config import QueryConfig
from querycycle.models.options import QueryOptions
from querycycle.models.state import QuerySnapshot, QueryStatus

_logger = logging.getLogger(__name__)


class QueryManager:
    """Drive a primary fetch and an optional hydration fetch.

    Usage::

        async def fetch_projects(request, declare_hydration):
            ...

        async with QueryManager(fetch_projects, {"query": {"page": 1}, "hydrate": {}}) as projects:
            print(projects.snapshot.status)
            await projects.request({"query": {"page": 2}})

    The initial request is not sent by the constructor: it needs
    ``async with`` or an explicit :meth:`start`, and is skipped when the
    options set ``pause`` or when :meth:`request` already ran. Leaving the
    ``async with`` block tears the manager down: in-flight calls are
    aborted and their late results are discarded.

    Transport failures never raise out of :meth:`request`; they show up as
    ``QueryStatus.ERROR`` with the message in ``snapshot.error``.
    """

    def __init__(
        self,
        transport: Transport,
        options: QueryOptions | Mapping[str, Any] | None = None,
        *,
        config: QueryConfig | None = None,
        on_change: Callable[[QuerySnapshot], None] | None = None,
    ) -> None:
        self._config = config or QueryConfig()
        self._coordinator = RequestCoordinator(
            transport,
            options,
            config=self._config,
            on_change=on_change,
        )
        self._started = False

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> QueryManager:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def start(self) -> None:
        """Run the initial request, once per manager, unless paused."""
        if self._started:
            return
        self._started = True
        if self._coordinator.options.pause:
            _logger.debug("Initial request skipped (paused)")
            return
        await self._coordinator.request()

    async def close(self) -> None:
        """Tear down; no state changes happen afterwards."""
        self._coordinator.teardown()

    @property
    def closed(self) -> bool:
        return self._coordinator.torn_down

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> QuerySnapshot:
        return self._coordinator.snapshot()

    @property
    def status(self) -> QueryStatus:
        return self._coordinator.state.status

    @property
    def options(self) -> QueryOptions:
        return self._coordinator.options

    @property
    def config(self) -> QueryConfig:
        return self._config

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def request(self, options: QueryOptions | Mapping[str, Any] | None = None) -> None:
        """Merge *options* into the stored options and run a fetch cycle.

        Raises
        ------
        QueryConfigError
            If *options* do not validate.  Nothing is merged in that case.
        """
        self._started = True
        await self._coordinator.request(options)

    def update_options(self, options: QueryOptions | Mapping[str, Any] | None) -> QueryOptions:
        """Merge *options* without fetching; returns the merged options."""
        return self._coordinator.update_options(options)

    def abort(self, reason: str | None = None) -> None:
        """Signal the in-flight call, if any.  Status is left as is."""
        self._coordinator.abort(reason)

    def reset(self) -> None:
        """Abort, then return to IDLE with no data, error or fetch history."""
        self._coordinator.reset()
