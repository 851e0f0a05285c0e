"""Data models for query options and state."""

from querycycle.models.options import HydrateOptions, QueryOptions
from querycycle.models.state import INITIAL_STATE, QuerySnapshot, QueryState, QueryStatus

__all__ = [
    "INITIAL_STATE",
    "HydrateOptions",
    "QueryOptions",
    "QuerySnapshot",
    "QueryState",
    "QueryStatus",
]
