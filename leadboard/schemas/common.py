"""Shared record configuration."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class Record(BaseModel):
    """Immutable snapshot of a stored row.

    Records are replaced, never mutated; use `model_copy(update=...)` to
    derive a patched snapshot.
    """

    model_config = ConfigDict(from_attributes=True, frozen=True)
