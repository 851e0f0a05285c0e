from __future__ import annotations

import itertools

import pytest

from querycycle.models.state import INITIAL_STATE, QueryState, QueryStatus
from querycycle.state.machine import QueryAction, QueryEvent, transition


def _state(status: QueryStatus, data: object = None, error: str | None = None) -> QueryState:
    return QueryState(status=status, data=data, error=error)


@pytest.mark.parametrize(
    "status",
    [QueryStatus.IDLE, QueryStatus.LOADED, QueryStatus.HYDRATING, QueryStatus.HYDRATED, QueryStatus.ERROR],
)
def test_start_moves_to_loading_and_keeps_data(status: QueryStatus) -> None:
    state = _state(status, data={"count": 3})

    new_state = transition(state, QueryAction(event=QueryEvent.START))

    assert new_state.status == QueryStatus.LOADING
    assert new_state.data == {"count": 3}


def test_start_clears_previous_error() -> None:
    state = _state(QueryStatus.ERROR, error="boom")

    new_state = transition(state, QueryAction(event=QueryEvent.START))

    assert new_state.error is None


def test_start_while_loading_is_a_noop() -> None:
    state = _state(QueryStatus.LOADING)

    assert transition(state, QueryAction(event=QueryEvent.START)) is state


def test_start_during_hydration_restarts_the_cycle() -> None:
    state = _state(QueryStatus.HYDRATING, data={"results": [1, 2]})

    new_state = transition(state, QueryAction(event=QueryEvent.START))

    assert new_state is not state
    assert new_state.status == QueryStatus.LOADING
    assert new_state.data == {"results": [1, 2]}
    assert new_state.error is None


@pytest.mark.parametrize("status", [QueryStatus.LOADING, QueryStatus.LOADED, QueryStatus.HYDRATING])
def test_start_hydrate_moves_to_hydrating(status: QueryStatus) -> None:
    new_state = transition(_state(status), QueryAction(event=QueryEvent.START_HYDRATE))
    assert new_state.status == QueryStatus.HYDRATING


@pytest.mark.parametrize("status", [QueryStatus.IDLE, QueryStatus.HYDRATED, QueryStatus.ERROR])
def test_start_hydrate_outside_a_cycle_is_a_noop(status: QueryStatus) -> None:
    state = _state(status)
    assert transition(state, QueryAction(event=QueryEvent.START_HYDRATE)) is state


def test_success_while_loading_sets_loaded_data() -> None:
    new_state = transition(_state(QueryStatus.LOADING), QueryAction(event=QueryEvent.SUCCESS, payload=[1, 2]))
    assert new_state.status == QueryStatus.LOADED
    assert new_state.data == [1, 2]


def test_success_while_hydrating_replaces_data() -> None:
    state = _state(QueryStatus.HYDRATING, data={"primary": True})

    new_state = transition(state, QueryAction(event=QueryEvent.SUCCESS, payload={"hydrated": True}))

    assert new_state.status == QueryStatus.HYDRATED
    assert new_state.data == {"hydrated": True}


@pytest.mark.parametrize("status", [QueryStatus.IDLE, QueryStatus.LOADED, QueryStatus.HYDRATED, QueryStatus.ERROR])
def test_success_outside_a_fetch_is_a_noop(status: QueryStatus) -> None:
    state = _state(status, data="kept")
    assert transition(state, QueryAction(event=QueryEvent.SUCCESS, payload="new")) is state


@pytest.mark.parametrize("status", list(QueryStatus))
def test_fail_from_any_status(status: QueryStatus) -> None:
    new_state = transition(_state(status, data="kept"), QueryAction(event=QueryEvent.FAIL, payload="timeout"))
    assert new_state.status == QueryStatus.ERROR
    assert new_state.error == "timeout"
    assert new_state.data == "kept"


def test_fail_without_message_still_records_an_error() -> None:
    new_state = transition(_state(QueryStatus.LOADING), QueryAction(event=QueryEvent.FAIL))
    assert new_state.error


@pytest.mark.parametrize("status", list(QueryStatus))
def test_reset_always_yields_initial_state(status: QueryStatus) -> None:
    state = _state(status, data={"x": 1}, error="old")
    assert transition(state, QueryAction(event=QueryEvent.RESET)) == INITIAL_STATE


def test_reset_twice_equals_reset_once() -> None:
    state = _state(QueryStatus.HYDRATED, data=[1])
    reset = QueryAction(event=QueryEvent.RESET)

    once = transition(state, reset)
    twice = transition(once, reset)

    assert once == twice == INITIAL_STATE


@pytest.mark.parametrize("action", ["SUCCESS", None, 42, {"event": "start"}])
def test_unrecognized_action_returns_state_unchanged(action: object) -> None:
    state = _state(QueryStatus.LOADING, data="kept")
    assert transition(state, action) is state


def test_unknown_event_cannot_be_constructed() -> None:
    with pytest.raises(ValueError):
        QueryAction(event="explode")  # type: ignore[arg-type]


def test_every_event_sequence_stays_inside_the_enumeration() -> None:
    events = list(QueryEvent)
    for sequence in itertools.product(events, repeat=4):
        state = INITIAL_STATE
        for event in sequence:
            state = transition(state, QueryAction(event=event, payload="p"))
            assert state.status in set(QueryStatus)
