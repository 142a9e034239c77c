"""FastAPI application exchanging 100ms room codes for session tokens."""
from __future__ import annotations

import logging

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse, Response

from .core.config import settings
from .routers import debug as debug_router
from .routers import token as token_router

logger = logging.getLogger(__name__)

app = FastAPI(title="Room Token Backend", version="0.1.0")

if settings.cors_origin:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(token_router.router, prefix="/api", tags=["token"])
app.include_router(debug_router.router, prefix="/api/debug", tags=["debug"])


@app.get("/", response_class=PlainTextResponse, tags=["meta"])
async def index() -> PlainTextResponse:
    return PlainTextResponse("room-token-backend OK")


@app.head("/", tags=["meta"])
async def index_head() -> Response:
    """Fast health checks issue HEAD /; answer with 200 to avoid noisy 405s."""

    return Response(status_code=200)


@app.get("/healthz", tags=["meta"])
async def health() -> dict[str, str]:
    """Simple liveness probe."""

    return {"status": "ok"}


@app.head("/healthz", tags=["meta"])
async def health_head() -> Response:
    """Allow HEAD for uptime monitors that only need the status code."""

    return Response(status_code=200)


def serve() -> None:
    """Run the API on the configured port."""

    logging.basicConfig(level=settings.log_level.upper())
    logger.info("Starting room token backend on port %s", settings.port)
    uvicorn.run(app, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    serve()
