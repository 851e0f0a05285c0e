"""querycycle - Async two-phase query lifecycle manager."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("querycycle")
except PackageNotFoundError:
    __version__ = "0+local"
from querycycle._cancellation import CancellationController, CancellationToken
from querycycle._transport import DeclareHydration, HttpTransport, Transport, TransportRequest
from querycycle.config import OverlapPolicy, QueryConfig
from querycycle.exceptions import (
    QueryCancelledError,
    QueryConfigError,
    QueryCycleError,
    QueryPayloadError,
    QueryTransportError,
)
from querycycle.manager import QueryManager
from querycycle.models import (
    INITIAL_STATE,
    HydrateOptions,
    QueryOptions,
    QuerySnapshot,
    QueryState,
    QueryStatus,
)
from querycycle.state.machine import QueryAction, QueryEvent, transition
from querycycle.state.merge import merge_options

__all__ = [
    "__version__",
    "CancellationController",
    "CancellationToken",
    "DeclareHydration",
    "HttpTransport",
    "HydrateOptions",
    "INITIAL_STATE",
    "OverlapPolicy",
    "QueryAction",
    "QueryCancelledError",
    "QueryConfig",
    "QueryConfigError",
    "QueryCycleError",
    "QueryEvent",
    "QueryManager",
    "QueryOptions",
    "QueryPayloadError",
    "QuerySnapshot",
    "QueryState",
    "QueryStatus",
    "QueryTransportError",
    "Transport",
    "TransportRequest",
    "merge_options",
]
