"""Manager configuration for querycycle."""

from __future__ import annotations

import dataclasses
import os
from enum import StrEnum
from typing import Any

from querycycle.exceptions import QueryConfigError


class OverlapPolicy(StrEnum):
    """What ``request()`` does while a previous cycle is still in flight."""

    SUPERSEDE = "supersede"
    REJECT = "reject"


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class QueryConfig:
    """Manager configuration.

    Parameters
    ----------
    overlap_policy : OverlapPolicy
        Behaviour of ``request()`` while status is LOADING or HYDRATING.
        ``SUPERSEDE`` aborts the in-flight call and starts a new cycle;
        ``REJECT`` stores the merged options and ignores the call.
    error_field : str
        Key that marks a mapping payload as failed when present and
        non-empty.  Set to ``""`` to disable payload error detection.
    hydrate_inherits_query : bool
        When true, the hydration call receives the outer query merged
        with the hydration query.  By default it receives only the
        hydration query.
    request_timeout : float
        Seconds before :class:`~querycycle._transport.HttpTransport`
        gives up on a call.  ``0`` disables the timeout.
    trace_enabled : bool
        Log (redacted) queries and payloads at DEBUG level.
    """

    overlap_policy: OverlapPolicy = OverlapPolicy.SUPERSEDE
    error_field: str = "error"
    hydrate_inherits_query: bool = False
    request_timeout: float = 30.0
    trace_enabled: bool = False

    def __post_init__(self) -> None:
        try:
            policy = OverlapPolicy(self.overlap_policy)
        except ValueError as exc:
            raise QueryConfigError(f"Unknown overlap policy: {self.overlap_policy!r}") from exc
        object.__setattr__(self, "overlap_policy", policy)
        if self.request_timeout < 0:
            raise QueryConfigError("request_timeout must be >= 0")

    @classmethod
    def from_env(cls, **overrides: Any) -> QueryConfig:
        """Create configuration from ``QUERYCYCLE_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        policy_env = env.get("QUERYCYCLE_OVERLAP_POLICY")
        if policy_env is not None:
            config_kwargs["overlap_policy"] = policy_env.strip().lower()

        error_field_env = env.get("QUERYCYCLE_ERROR_FIELD")
        if error_field_env is not None:
            config_kwargs["error_field"] = error_field_env.strip()

        config_kwargs["hydrate_inherits_query"] = _env_bool(env.get("QUERYCYCLE_HYDRATE_INHERITS_QUERY"), False)

        timeout_env = env.get("QUERYCYCLE_REQUEST_TIMEOUT")
        if timeout_env is not None and "request_timeout" not in overrides:
            try:
                config_kwargs["request_timeout"] = float(timeout_env)
            except ValueError as exc:
                raise QueryConfigError(f"QUERYCYCLE_REQUEST_TIMEOUT is not a number: {timeout_env!r}") from exc

        config_kwargs["trace_enabled"] = _env_bool(env.get("QUERYCYCLE_TRACE_ENABLED"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
