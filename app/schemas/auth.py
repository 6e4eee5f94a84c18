"""Pydantic schemas for login tokens."""

from __future__ import annotations

from pydantic import BaseModel


class Token(BaseModel):
    """OAuth2 token response; keys stay snake_case as the password flow expects."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RefreshRequest(BaseModel):
    refresh_token: str
