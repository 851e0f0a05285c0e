"""Transport contract and an aiohttp-backed reference transport."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

import aiohttp

from querycycle._cancellation import CancellationToken
from querycycle._redact import redact_for_log
from querycycle.config import QueryConfig
from querycycle.exceptions import QueryCancelledError, QueryTransportError
from querycycle.models.options import HydrateOptions

_logger = logging.getLogger(__name__)

DeclareHydration = Callable[[HydrateOptions | Mapping[str, Any]], None]
"""Callback a transport may use mid-call to register hydration parameters."""


@dataclass(frozen=True)
class TransportRequest:
    """Arguments of one transport call."""

    query: Mapping[str, Any]
    token: CancellationToken
    hydrate: bool = False
    generation: int = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "generation", self.token.generation)


class Transport(Protocol):
    """Structural transport interface used by the coordinator.

    Any async callable with this signature works, which keeps tests free to
    pass plain ``async def`` functions.  Implementations resolve with the
    payload, or raise on failure.  They should honour ``request.token``.
    """

    async def __call__(self, request: TransportRequest, declare_hydration: DeclareHydration) -> Any:
        ...


def encode_params(query: Mapping[str, Any]) -> dict[str, str | int | float]:
    """Flatten a query into URL parameters.

    ``None`` values are dropped, booleans become ``true``/``false`` and
    sequences are joined with commas (``ids=1,2,3``).
    """
    params: dict[str, str | int | float] = {}
    for key, value in query.items():
        if value is None:
            continue
        if isinstance(value, bool):
            params[key] = "true" if value else "false"
        elif isinstance(value, (str, int, float)):
            params[key] = value
        elif isinstance(value, (list, tuple, set, frozenset)):
            params[key] = ",".join(str(v) for v in value)
        else:
            params[key] = str(value)
    return params


class HttpTransport:
    """Fetch a JSON endpoint with the query as URL parameters.

    Parameters
    ----------
    session : aiohttp.ClientSession
        Session used for all calls.  Not closed by the transport.
    url : str
        Endpoint URL.
    config : QueryConfig or None
        Supplies ``request_timeout`` and ``trace_enabled``.
    hydrate_params : mapping or None
        Extra parameters sent on hydration calls only (for example an
        ``include`` list of expensive fields).
    discover_hydration : callable or None
        Called with the primary payload; a returned mapping is declared as
        the hydration query, e.g. ``lambda p: {"ids": [r["id"] for r in p["results"]]}``.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        url: str,
        *,
        config: QueryConfig | None = None,
        hydrate_params: Mapping[str, Any] | None = None,
        discover_hydration: Callable[[Any], Mapping[str, Any] | None] | None = None,
    ) -> None:
        self._http = session
        self._url = url
        self._config = config or QueryConfig()
        self._hydrate_params = dict(hydrate_params or {})
        self._discover_hydration = discover_hydration

    async def __call__(self, request: TransportRequest, declare_hydration: DeclareHydration) -> Any:
        request.token.raise_if_cancelled()

        query = dict(request.query)
        if request.hydrate:
            query.update(self._hydrate_params)
        params = encode_params(query)

        fetch = asyncio.ensure_future(self._fetch(params))
        cancelled = asyncio.ensure_future(request.token.wait())
        try:
            await asyncio.wait({fetch, cancelled}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (fetch, cancelled):
                if not task.done():
                    task.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await task

        if not fetch.done() or fetch.cancelled():
            raise QueryCancelledError(request.token.reason)

        payload = fetch.result()

        if not request.hydrate and self._discover_hydration is not None:
            discovered = self._discover_hydration(payload)
            if discovered is not None:
                declare_hydration({"query": dict(discovered)})

        return payload

    async def _fetch(self, params: Mapping[str, Any]) -> Any:
        timeout = aiohttp.ClientTimeout(total=self._config.request_timeout or None)

        _logger.debug("GET %s", self._url)
        if self._config.trace_enabled:
            _logger.debug("GET %s params=%s", self._url, redact_for_log(params))

        try:
            async with self._http.get(self._url, params=params, timeout=timeout) as resp:
                text = await resp.text()
                if not 200 <= resp.status < 300:
                    raise QueryTransportError(
                        f"HTTP {resp.status} from {self._url}: {text[:200]}",
                        status_code=resp.status,
                        url=self._url,
                    )
        except QueryTransportError:
            raise
        except TimeoutError as exc:
            raise QueryTransportError(
                f"Request to {self._url} timed out after {self._config.request_timeout}s",
                url=self._url,
            ) from exc
        except aiohttp.ClientError as exc:
            raise QueryTransportError(
                f"Request to {self._url} failed: {exc}",
                url=self._url,
            ) from exc

        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise QueryTransportError(
                f"Invalid JSON from {self._url}: {text[:200]}",
                url=self._url,
            ) from exc
