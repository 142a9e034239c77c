"""Operational visibility into configuration and room code health."""
from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, HTTPException

from ..core.config import settings
from ..schemas import debug as debug_schema
from ..services.exchange import TokenExchangeClient, get_exchange_client, mask_code


def require_debug_enabled() -> None:
    if not settings.debug_endpoints_enabled:
        raise HTTPException(status_code=404, detail="Not Found")


router = APIRouter(dependencies=[Depends(require_debug_enabled)])


@router.get("/env", response_model=debug_schema.DebugEnvResponse)
async def debug_env() -> debug_schema.DebugEnvResponse:
    """Report what the server sees, with room codes masked."""

    return debug_schema.DebugEnvResponse(
        port=settings.port,
        cors_origin=settings.cors_origin,
        upstream_mode=settings.hms_upstream_mode,
        auth_url=settings.hms_auth_url,
        api_base=settings.hms_api_base or None,
        api_base_candidates=list(settings.api_base_candidates),
        management_token_set=bool(settings.hms_management_token.strip()),
        host_code_masked=mask_code(settings.hms_room_code_host.strip()),
        guest_code_masked=mask_code(settings.hms_room_code_guest.strip()),
    )


@router.get("/room-codes", response_model=debug_schema.RoomCodesResponse)
async def debug_room_codes(
    client: TokenExchangeClient = Depends(get_exchange_client),
) -> debug_schema.RoomCodesResponse:
    """Ask the auth service whether each configured code is accepted."""

    config = client.config
    host, guest = await asyncio.gather(
        client.probe_room_code(config.host_room_code),
        client.probe_room_code(config.guest_room_code),
    )
    return debug_schema.RoomCodesResponse(
        host_code_masked=mask_code(config.host_room_code),
        guest_code_masked=mask_code(config.guest_room_code),
        checks=debug_schema.RoomCodeChecks(
            host=debug_schema.RoomCodeCheck(ok=host.ok, status=host.status, detail=host.detail),
            guest=debug_schema.RoomCodeCheck(ok=guest.ok, status=guest.status, detail=guest.detail),
        ),
    )
