"""Query state and the read-only snapshot handed to callers."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import Field

from querycycle.models._base import QueryBaseModel
from querycycle.models.options import QueryOptions


class QueryStatus(StrEnum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    HYDRATING = "hydrating"
    HYDRATED = "hydrated"
    ERROR = "error"


class QueryState(QueryBaseModel):
    """State owned by the state machine.  Exactly one status holds."""

    status: QueryStatus = QueryStatus.IDLE
    data: Any = None
    error: str | None = None


INITIAL_STATE = QueryState()


class QuerySnapshot(QueryBaseModel):
    """Point-in-time view of a manager, safe to keep around."""

    status: QueryStatus
    data: Any = None
    error: str | None = None
    has_fetched: bool = False
    options: QueryOptions = Field(default_factory=QueryOptions)

    @property
    def loading(self) -> bool:
        return self.status in (QueryStatus.LOADING, QueryStatus.HYDRATING)

    @property
    def loaded(self) -> bool:
        return self.status == QueryStatus.LOADED

    @property
    def hydrated(self) -> bool:
        """True once the cycle has all the data it asked for.

        That is HYDRATED, or LOADED when no hydration was requested.
        """
        if self.status == QueryStatus.HYDRATED:
            return True
        return self.status == QueryStatus.LOADED and not self.options.wants_hydration
