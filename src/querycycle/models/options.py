"""Query options: the caller-supplied description of what to fetch."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import Field, StrictBool, ValidationError

from querycycle.exceptions import QueryConfigError
from querycycle.models._base import QueryBaseModel


def _describe(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "<root>"
        parts.append(f"{loc}: {err.get('msg', 'invalid')}")
    return "; ".join(parts)


class HydrateOptions(QueryBaseModel):
    """Parameters of the hydration fetch.

    Only ``query`` is allowed here: hydration cannot itself be hydrated
    or paused.
    """

    query: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def coerce(cls, value: HydrateOptions | Mapping[str, Any] | None) -> HydrateOptions:
        if isinstance(value, HydrateOptions):
            return value
        if value is None:
            return cls()
        if not isinstance(value, Mapping):
            raise QueryConfigError(f"Hydrate options must be a mapping, got {type(value).__name__}")
        try:
            return cls.model_validate(dict(value))
        except ValidationError as exc:
            raise QueryConfigError(f"Invalid hydrate options: {_describe(exc)}") from exc


class QueryOptions(QueryBaseModel):
    """Options for one manager.

    ``hydrate`` set (even to an empty :class:`HydrateOptions`) requests a
    second, hydration fetch after the primary one; ``None`` means a
    single-phase fetch.  ``pause=True`` suppresses the automatic initial
    request.
    """

    query: dict[str, Any] = Field(default_factory=dict)
    hydrate: HydrateOptions | None = None
    pause: StrictBool | None = None

    @classmethod
    def coerce(cls, value: QueryOptions | Mapping[str, Any] | None) -> QueryOptions:
        """Validate *value* into :class:`QueryOptions`.

        Raises
        ------
        QueryConfigError
            If *value* is not a mapping or does not validate.
        """
        if isinstance(value, QueryOptions):
            return value
        if value is None:
            return cls()
        if not isinstance(value, Mapping):
            raise QueryConfigError(f"Query options must be a mapping, got {type(value).__name__}")
        try:
            return cls.model_validate(dict(value))
        except ValidationError as exc:
            raise QueryConfigError(f"Invalid query options: {_describe(exc)}") from exc

    @property
    def wants_hydration(self) -> bool:
        return self.hydrate is not None
