"""Data contracts for the token endpoints."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from ..enums import Role


class TokenRequestBody(BaseModel):
    role: Role = Field(default=Role.GUEST, description="Which room code to exchange")
    user: str | None = Field(default=None, description="User identifier shown to other participants")


class TokenResponse(BaseModel):
    token: str = Field(..., description="Session token for the video SDK")


class TokenErrorResponse(BaseModel):
    error: str
    detail: Any = None
