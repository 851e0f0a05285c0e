"""Deterministic merge policy for stored query options.

Incoming values win on conflict.  ``query`` maps merge one level deep
only: a nested dict in the incoming query replaces the stored one whole.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from querycycle.models.options import HydrateOptions, QueryOptions


def _merge_query(stored: Mapping[str, Any], incoming: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(stored)
    merged.update(incoming)
    return merged


def merge_hydrate(
    stored: HydrateOptions | None,
    incoming: HydrateOptions | Mapping[str, Any] | None,
) -> HydrateOptions | None:
    """Merge hydration options; ``None`` on both sides stays ``None``."""
    if incoming is None:
        return stored
    incoming_opts = HydrateOptions.coerce(incoming)
    if stored is None:
        return incoming_opts
    return HydrateOptions(query=_merge_query(stored.query, incoming_opts.query))


def merge_options(
    stored: QueryOptions | Mapping[str, Any] | None,
    incoming: QueryOptions | Mapping[str, Any] | None,
) -> QueryOptions:
    """Fold *incoming* into *stored* and return the new options.

    Not commutative, but idempotent for a repeated *incoming*:
    ``merge_options(merge_options(a, b), b) == merge_options(a, b)``.

    Raises
    ------
    QueryConfigError
        If either side does not validate as :class:`QueryOptions`.
    """
    stored_opts = QueryOptions.coerce(stored)
    incoming_opts = QueryOptions.coerce(incoming)

    return QueryOptions(
        query=_merge_query(stored_opts.query, incoming_opts.query),
        hydrate=merge_hydrate(stored_opts.hydrate, incoming_opts.hydrate),
        pause=incoming_opts.pause if incoming_opts.pause is not None else stored_opts.pause,
    )
