"""Schemas for the debug endpoints."""
from __future__ import annotations

from pydantic import BaseModel

from ..enums import UpstreamMode


class DebugEnvResponse(BaseModel):
    port: int
    cors_origin: list[str]
    upstream_mode: UpstreamMode
    auth_url: str
    api_base: str | None = None
    api_base_candidates: list[str]
    management_token_set: bool
    host_code_masked: str | None = None
    guest_code_masked: str | None = None


class RoomCodeCheck(BaseModel):
    ok: bool
    status: int
    detail: str | None = None


class RoomCodeChecks(BaseModel):
    host: RoomCodeCheck
    guest: RoomCodeCheck


class RoomCodesResponse(BaseModel):
    host_code_masked: str | None = None
    guest_code_masked: str | None = None
    checks: RoomCodeChecks
