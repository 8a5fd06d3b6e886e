"""Pydantic schemas for object API endpoints."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class ObjectOut(BaseModel):
    """Response model for a stored object."""

    model_config = ConfigDict(from_attributes=True)

    key: str
    size_bytes: int
