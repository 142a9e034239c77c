"""Room code to session token exchange against the 100ms APIs.

Each call walks the candidate upstream bases in their configured order and stops
at the first base that issues a token. Failed attempts are collected so callers
can see which bases were tried and why each one failed."""
from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import asdict, dataclass, field
from typing import Any, AsyncIterator
from urllib.parse import quote

import httpx

from ..core.config import ExchangeConfig, settings
from ..enums import Role, UpstreamMode

logger = logging.getLogger(__name__)

TOKEN_FIELDS: tuple[str, ...] = ("token", "authToken", "access_token")
BODY_EXCERPT_LIMIT = 512


@dataclass(slots=True)
class TokenRequest:
    role: Role = Role.GUEST
    user: str | None = None


@dataclass(frozen=True, slots=True)
class ExchangeAttempt:
    """Outcome of one failed call against a candidate base."""

    base: str
    status: int | None
    error: str
    body: str = ""

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class TokenSuccess:
    token: str


@dataclass(frozen=True, slots=True)
class TokenFailure:
    status: int
    message: str
    detail: Any = None


TokenResult = TokenSuccess | TokenFailure


@dataclass(frozen=True, slots=True)
class RoomCodeCheck:
    ok: bool
    status: int
    detail: str | None = None


class TokenExchangeError(Exception):
    """Base class for exchange failures; ``status`` is the HTTP status to surface."""

    status: int = 502
    kind: str = "upstream_error"

    def __init__(self, message: str, *, status: int | None = None, detail: Any = None) -> None:
        super().__init__(message)
        self.message = message
        if status is not None:
            self.status = status
        self.detail = detail

    def to_failure(self) -> TokenFailure:
        return TokenFailure(status=self.status, message=self.message, detail=self.detail)


class ConfigurationError(TokenExchangeError):
    status = 400
    kind = "configuration"


class UpstreamRejected(TokenExchangeError):
    kind = "rejected"


class UpstreamUnparseable(UpstreamRejected):
    kind = "unparseable"


class UpstreamTimeout(TokenExchangeError):
    status = 504
    kind = "timeout"


class UpstreamUnreachable(TokenExchangeError):
    kind = "unreachable"


class AllBasesExhausted(TokenExchangeError):
    """Every candidate failed; ``attempts`` keeps them in the order they were tried."""

    def __init__(self, attempts: list[ExchangeAttempt], *, role: Role, status: int | None = None) -> None:
        self.attempts = attempts
        timed_out = bool(attempts) and all(attempt.error == UpstreamTimeout.kind for attempt in attempts)
        super().__init__(
            "upstream timed out on every base" if timed_out else "all upstream bases failed",
            status=status or (504 if timed_out else 502),
            detail={"role": role.value, "attempts": [attempt.as_dict() for attempt in attempts]},
        )


@dataclass(frozen=True, slots=True)
class _PlannedCall:
    base: str
    url: str
    body: dict[str, str]
    headers: dict[str, str] = field(default_factory=dict)

    def failed(self, error: str, status: int | None = None, body: str = "") -> ExchangeAttempt:
        # base only; the full url carries the room code in management mode
        return ExchangeAttempt(
            base=self.base,
            status=status,
            error=error,
            body=body[:BODY_EXCERPT_LIMIT],
        )


def extract_token(payload: Any) -> str | None:
    """Return the first non-empty token-like field from an upstream body."""

    if not isinstance(payload, dict):
        return None
    for name in TOKEN_FIELDS:
        value = payload.get(name)
        if isinstance(value, str) and value.strip():
            return value
    return None


def mask_code(code: str | None) -> str | None:
    """Hide everything but the last four characters of a room code."""

    if not code:
        return None
    if len(code) <= 4:
        return code
    return "*" * (len(code) - 4) + code[-4:]


class TokenExchangeClient:
    """Exchange a role's room code for a session token.

    An injected ``http_client`` is reused as-is and never closed here; without one,
    a client is opened for the duration of each call.
    """

    def __init__(self, config: ExchangeConfig, http_client: httpx.AsyncClient | None = None) -> None:
        self._config = config
        self._http = http_client

    @property
    def config(self) -> ExchangeConfig:
        return self._config

    async def exchange(self, request: TokenRequest) -> TokenResult:
        try:
            token = await self._exchange(request)
        except TokenExchangeError as exc:
            return exc.to_failure()
        return TokenSuccess(token=token)

    async def probe_room_code(self, code: str | None) -> RoomCodeCheck:
        """Check that the auth service accepts ``code`` without keeping the token."""

        if not code:
            return RoomCodeCheck(ok=False, status=400, detail="missing_code")

        call = _PlannedCall(base=self._config.auth_url, url=self._config.auth_url, body={"code": code})
        async with self._session() as client:
            try:
                response = await self._send(client, call)
            except UpstreamTimeout:
                return RoomCodeCheck(ok=False, status=504, detail="timeout")
            except UpstreamUnreachable:
                return RoomCodeCheck(ok=False, status=502, detail="upstream_unreachable")
        return RoomCodeCheck(ok=response.is_success, status=response.status_code)

    async def _exchange(self, request: TokenRequest) -> str:
        code = self._config.room_code(request.role)
        if not code:
            raise ConfigurationError("missing room code for role", detail={"role": request.role.value})

        user = self._resolve_user(request)
        calls = self._plan(request.role, code, user)
        attempts: list[ExchangeAttempt] = []

        async with self._session() as client:
            for call in calls:
                try:
                    return await self._attempt(client, call)
                except (UpstreamRejected, UpstreamTimeout, UpstreamUnreachable) as exc:
                    logger.warning("Token request against %s failed (%s)", call.base, exc.kind)
                    attempts.append(exc.detail)

        raise AllBasesExhausted(attempts, role=request.role, status=self._passthrough_status(attempts))

    def _passthrough_status(self, attempts: list[ExchangeAttempt]) -> int | None:
        """The auth service's 4xx verdict on a code is relayed as-is."""

        if self._config.upstream_mode is not UpstreamMode.AUTH or len(attempts) != 1:
            return None
        attempt = attempts[0]
        if attempt.error == UpstreamRejected.kind and attempt.status is not None and 400 <= attempt.status < 500:
            return attempt.status
        return None

    def _resolve_user(self, request: TokenRequest) -> str:
        user = (request.user or "").strip()
        if user:
            return user
        return self._config.default_user(request.role) or f"anon-{int(time.time() * 1000)}"

    def _plan(self, role: Role, code: str, user: str) -> list[_PlannedCall]:
        config = self._config
        if config.upstream_mode is UpstreamMode.AUTH:
            return [_PlannedCall(base=config.auth_url, url=config.auth_url, body={"code": code, "user_id": user})]

        if not config.management_token:
            raise ConfigurationError("management token not configured", status=500)
        if not config.api_bases:
            raise ConfigurationError("no upstream bases configured", status=500)

        path = config.token_path.format(code=quote(code, safe=""))
        headers = {"Authorization": f"Bearer {config.management_token}"}
        body = {"user_id": user, "role": role.value}
        return [
            _PlannedCall(base=base, url=f"{base}{path}", body=body, headers=headers)
            for base in config.api_bases
        ]

    async def _attempt(self, client: httpx.AsyncClient, call: _PlannedCall) -> str:
        response = await self._send(client, call)
        if not response.is_success:
            raise UpstreamRejected(
                f"upstream returned {response.status_code}",
                detail=call.failed(UpstreamRejected.kind, response.status_code, response.text),
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamUnparseable(
                "upstream body was not JSON",
                detail=call.failed(UpstreamUnparseable.kind, response.status_code, response.text),
            ) from exc

        token = extract_token(payload)
        if token is None:
            raise UpstreamUnparseable(
                "no token in upstream response",
                detail=call.failed(UpstreamUnparseable.kind, response.status_code, response.text),
            )
        return token

    async def _send(self, client: httpx.AsyncClient, call: _PlannedCall) -> httpx.Response:
        # wait_for cancels the pending request on expiry, closing its connection.
        try:
            return await asyncio.wait_for(
                client.post(call.url, json=call.body, headers=call.headers),
                timeout=self._config.timeout_seconds,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise UpstreamTimeout("upstream timed out", detail=call.failed(UpstreamTimeout.kind)) from exc
        except httpx.HTTPError as exc:
            raise UpstreamUnreachable(
                "upstream unreachable",
                detail=call.failed(UpstreamUnreachable.kind, body=str(exc)),
            ) from exc

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http is not None:
            yield self._http
            return
        async with httpx.AsyncClient(timeout=self._config.timeout_seconds) as client:
            yield client


def get_exchange_client() -> TokenExchangeClient:
    """FastAPI dependency building a client from the process settings."""

    return TokenExchangeClient(settings.exchange_config())
