"""Pure transition function for the query lifecycle."""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict

from querycycle.models.state import INITIAL_STATE, QueryState, QueryStatus

_logger = logging.getLogger(__name__)


class QueryEvent(StrEnum):
    START = "start"
    START_HYDRATE = "start_hydrate"
    SUCCESS = "success"
    FAIL = "fail"
    RESET = "reset"


class QueryAction(BaseModel):
    """An event plus its payload (data for SUCCESS, message for FAIL)."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    event: QueryEvent
    payload: Any = None


def transition(state: QueryState, action: Any) -> QueryState:
    """Return the state that follows *state* under *action*.

    Pairs with no row in the transition table, and anything that is not a
    :class:`QueryAction`, return *state* itself unchanged.
    """
    if not isinstance(action, QueryAction):
        _logger.debug("Ignoring unrecognized action %r in %s", action, state.status)
        return state

    match (action.event, state.status):
        case (
            QueryEvent.START,
            QueryStatus.IDLE | QueryStatus.LOADED | QueryStatus.HYDRATED | QueryStatus.ERROR | QueryStatus.HYDRATING,
        ):
            # Previous data stays visible while the next cycle loads.
            # HYDRATING is accepted so a superseding request restarts the cycle.
            return state.model_copy(update={"status": QueryStatus.LOADING, "error": None})
        case (QueryEvent.START_HYDRATE, QueryStatus.LOADING | QueryStatus.LOADED | QueryStatus.HYDRATING):
            return state.model_copy(update={"status": QueryStatus.HYDRATING})
        case (QueryEvent.SUCCESS, QueryStatus.LOADING):
            return state.model_copy(update={"status": QueryStatus.LOADED, "data": action.payload})
        case (QueryEvent.SUCCESS, QueryStatus.HYDRATING):
            return state.model_copy(update={"status": QueryStatus.HYDRATED, "data": action.payload})
        case (QueryEvent.FAIL, _):
            message = action.payload if action.payload is not None else "Unknown error"
            return state.model_copy(update={"status": QueryStatus.ERROR, "error": str(message)})
        case (QueryEvent.RESET, _):
            return INITIAL_STATE
        case _:
            _logger.debug("No transition for %s in %s", action.event, state.status)
            return state
