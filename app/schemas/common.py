"""Shared pydantic base and generic response bodies."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts and emits camelCase keys; snake_case is accepted on input too."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ── Generic ────────────────────────────────────────────────────────
class MessageResponse(BaseModel):
    success: bool = True
    message: str


class LogoutResponse(BaseModel):
    message: str


class DeleteResponse(BaseModel):
    success: bool
    message: str


# ── Health ─────────────────────────────────────────────────────────
class HealthResponse(BaseModel):
    status: str
    db: bool
    version: str
