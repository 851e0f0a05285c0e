"""Base model shared by querycycle's data types.

Every model is frozen: transitions and merges always build a new object,
so a snapshot handed to a caller can never change underneath it.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class QueryBaseModel(BaseModel):
    """Frozen, strict-keyed base model."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_default=True,
    )
