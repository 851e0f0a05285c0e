"""Two-phase request orchestration behind :class:`~querycycle.manager.QueryManager`.

Owns:
- the stored options and the current query state
- the cancellation controller (one token per transport call)
- the teardown flag checked before every state mutation
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from typing import Any

from querycycle._cancellation import CancellationController, CancellationToken
from querycycle._redact import redact_for_log
from querycycle._transport import DeclareHydration, Transport, TransportRequest
from querycycle.config import OverlapPolicy, QueryConfig
from querycycle.exceptions import QueryPayloadError
from querycycle.models.options import HydrateOptions, QueryOptions
from querycycle.models.state import INITIAL_STATE, QuerySnapshot, QueryState, QueryStatus
from querycycle.state.machine import QueryAction, QueryEvent, transition
from querycycle.state.merge import merge_hydrate, merge_options

_logger = logging.getLogger(__name__)


def error_message(exc: BaseException) -> str:
    """Reduce an exception to the message stored in ``QueryState.error``."""
    text = str(exc).strip()
    return text or type(exc).__name__


def payload_error(payload: Any, error_field: str) -> QueryPayloadError | None:
    """Return the error embedded in *payload*, if any."""
    if not error_field or not isinstance(payload, Mapping):
        return None
    value = payload.get(error_field)
    if not value:
        return None
    if isinstance(value, Mapping):
        detail = value.get("message") or value.get("detail")
        return QueryPayloadError(str(detail) if detail else str(dict(value)), payload=payload)
    return QueryPayloadError(str(value), payload=payload)


class RequestCoordinator:
    def __init__(
        self,
        transport: Transport,
        options: QueryOptions | Mapping[str, Any] | None,
        *,
        config: QueryConfig,
        on_change: Callable[[QuerySnapshot], None] | None = None,
    ) -> None:
        self._transport = transport
        self._config = config
        self._options = QueryOptions.coerce(options)
        self._state: QueryState = INITIAL_STATE
        self._has_fetched = False
        self._cancellation = CancellationController()
        self._torn_down = False
        self._on_change = on_change

    @property
    def state(self) -> QueryState:
        return self._state

    @property
    def options(self) -> QueryOptions:
        return self._options

    @property
    def has_fetched(self) -> bool:
        return self._has_fetched

    @property
    def torn_down(self) -> bool:
        return self._torn_down

    @property
    def current_token(self) -> CancellationToken | None:
        return self._cancellation.current

    def snapshot(self) -> QuerySnapshot:
        return QuerySnapshot(
            status=self._state.status,
            data=self._state.data,
            error=self._state.error,
            has_fetched=self._has_fetched,
            options=self._options,
        )

    # ------------------------------------------------------------------
    # Options
    # ------------------------------------------------------------------

    def update_options(self, incoming: QueryOptions | Mapping[str, Any] | None) -> QueryOptions:
        if self._torn_down:
            _logger.debug("update_options() after teardown ignored")
            return self._options
        self._options = merge_options(self._options, incoming)
        return self._options

    def _declare_for(self, token: CancellationToken) -> DeclareHydration:
        def declare_hydration(spec: HydrateOptions | Mapping[str, Any]) -> None:
            if not self._is_live(token):
                _logger.debug("Ignoring hydration declared by stale generation %d", token.generation)
                return
            hydrate = merge_hydrate(self._options.hydrate, spec)
            self._options = self._options.model_copy(update={"hydrate": hydrate})

        return declare_hydration

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def _is_live(self, token: CancellationToken) -> bool:
        return not self._torn_down and self._cancellation.is_current(token)

    def _dispatch(self, event: QueryEvent, payload: Any = None) -> bool:
        """Apply *event*; returns whether the state changed."""
        if self._torn_down:
            _logger.debug("Dropping %s after teardown", event)
            return False
        previous = self._state
        new_state = transition(previous, QueryAction(event=event, payload=payload))
        if new_state is previous:
            return False
        self._state = new_state
        if event == QueryEvent.SUCCESS:
            self._has_fetched = True
        _logger.debug("%s: %s -> %s", event, previous.status, new_state.status)
        self._notify()
        return True

    def _notify(self) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change(self.snapshot())
        except Exception:
            _logger.debug("on_change callback failed", exc_info=True)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def request(self, options: QueryOptions | Mapping[str, Any] | None = None) -> None:
        if self._torn_down:
            _logger.debug("request() after teardown ignored")
            return

        self.update_options(options)

        match self._state.status:
            case QueryStatus.IDLE | QueryStatus.LOADED | QueryStatus.HYDRATED | QueryStatus.ERROR:
                pass
            case QueryStatus.LOADING | QueryStatus.HYDRATING:
                match self._config.overlap_policy:
                    case OverlapPolicy.REJECT:
                        _logger.debug("request() rejected while %s", self._state.status)
                        return
                    case OverlapPolicy.SUPERSEDE:
                        self._cancellation.abort("Superseded by a newer request")

        await self._run_cycle()

    async def _run_cycle(self) -> None:
        self._dispatch(QueryEvent.START)
        if not await self._call(self._cancellation.issue(), hydrate=False):
            return

        if not self._options.wants_hydration:
            return

        if not self._dispatch(QueryEvent.START_HYDRATE):
            return
        await self._call(self._cancellation.issue(), hydrate=True)

    def _query_for(self, *, hydrate: bool) -> dict[str, Any]:
        if not hydrate:
            return dict(self._options.query)
        hydrate_query = self._options.hydrate.query if self._options.hydrate is not None else {}
        if self._config.hydrate_inherits_query:
            return {**self._options.query, **hydrate_query}
        return dict(hydrate_query)

    async def _call(self, token: CancellationToken, *, hydrate: bool) -> bool:
        """Run one transport call; returns whether its SUCCESS was applied."""
        request = TransportRequest(query=self._query_for(hydrate=hydrate), token=token, hydrate=hydrate)
        if self._config.trace_enabled:
            _logger.debug(
                "Transport call gen=%d hydrate=%s query=%s",
                token.generation,
                hydrate,
                redact_for_log(request.query),
            )

        try:
            payload = await self._transport(request, self._declare_for(token))
        except asyncio.CancelledError:
            # The awaiting task went away; a live call must not leave the
            # manager parked in LOADING/HYDRATING.
            if self._is_live(token):
                self._cancellation.abort("Request task cancelled")
                self._cancellation.retire()
                self._dispatch(QueryEvent.FAIL, "Request task cancelled")
            raise
        except Exception as exc:
            if not self._is_live(token):
                _logger.debug("Discarding failure of stale generation %d: %s", token.generation, exc)
                return False
            _logger.debug("Transport call gen=%d failed", token.generation, exc_info=True)
            self._dispatch(QueryEvent.FAIL, error_message(exc))
            return False

        if not self._is_live(token):
            _logger.debug("Discarding result of stale generation %d", token.generation)
            return False

        if self._config.trace_enabled:
            _logger.debug("Transport result gen=%d: %s", token.generation, redact_for_log(payload))

        failure = payload_error(payload, self._config.error_field)
        if failure is not None:
            _logger.debug("Transport call gen=%d returned an error payload: %s", token.generation, failure)
            self._dispatch(QueryEvent.FAIL, error_message(failure))
            return False

        return self._dispatch(QueryEvent.SUCCESS, payload)

    def abort(self, reason: str | None = None) -> bool:
        return self._cancellation.abort(reason or "Aborted")

    def reset(self) -> None:
        self.abort("Reset")
        self._cancellation.retire()
        if self._torn_down:
            return
        self._has_fetched = False
        self._dispatch(QueryEvent.RESET)

    def teardown(self) -> None:
        if self._torn_down:
            return
        self._torn_down = True
        self._cancellation.abort("Torn down")
        self._cancellation.retire()
