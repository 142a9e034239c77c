"""Room code to session token endpoints."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..enums import Role
from ..schemas.token import TokenErrorResponse, TokenRequestBody, TokenResponse
from ..services.exchange import TokenExchangeClient, TokenRequest, TokenSuccess, get_exchange_client

logger = logging.getLogger(__name__)

router = APIRouter()

ERROR_RESPONSES = {
    status: {"model": TokenErrorResponse} for status in (400, 500, 502, 504)
}


async def _issue(client: TokenExchangeClient, request: TokenRequest) -> JSONResponse:
    try:
        result = await client.exchange(request)
    except Exception:  # noqa: BLE001
        logger.exception("Unexpected failure exchanging room code for role %s", request.role.value)
        return JSONResponse(status_code=500, content={"error": "Server error"})

    if isinstance(result, TokenSuccess):
        return JSONResponse(status_code=200, content={"token": result.token})
    return JSONResponse(status_code=result.status, content={"error": result.message, "detail": result.detail})


@router.get("/token", response_model=TokenResponse, responses=ERROR_RESPONSES)
async def get_token(
    role: Role = Role.GUEST,
    user: str | None = None,
    client: TokenExchangeClient = Depends(get_exchange_client),
) -> JSONResponse:
    """Exchange the role's room code for a token; handy from a browser."""

    return await _issue(client, TokenRequest(role=role, user=user))


@router.post("/token", response_model=TokenResponse, responses=ERROR_RESPONSES)
async def create_token(
    payload: TokenRequestBody | None = None,
    role: Role = Role.GUEST,
    user: str | None = None,
    client: TokenExchangeClient = Depends(get_exchange_client),
) -> JSONResponse:
    """Exchange the role's room code for a token.

    The JSON body wins; query parameters are used when no body is sent.
    """

    if payload is not None:
        role, user = payload.role, payload.user
    return await _issue(client, TokenRequest(role=role, user=user))
