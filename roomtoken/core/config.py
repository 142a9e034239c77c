"""Application configuration for the room token backend."""
from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from ..enums import Role, UpstreamMode

DEFAULT_API_BASE_FALLBACKS: tuple[str, ...] = (
    "https://prod-in2.100ms.live",
    "https://api.100ms.live",
)


@dataclass(frozen=True, slots=True)
class ExchangeConfig:
    """Read-only inputs for the token exchange client."""

    host_room_code: str = ""
    guest_room_code: str = ""
    management_token: str = ""
    api_bases: tuple[str, ...] = DEFAULT_API_BASE_FALLBACKS
    upstream_mode: UpstreamMode = UpstreamMode.MANAGEMENT
    auth_url: str = "https://auth.100ms.live/v2/token"
    token_path: str = "/v2/room-codes/code/{code}/token"
    timeout_seconds: float = 10.0
    default_host_user: str = "teacher"
    default_guest_user: str = "student"

    def room_code(self, role: Role) -> str:
        return self.host_room_code if role is Role.HOST else self.guest_room_code

    def default_user(self, role: Role) -> str:
        return self.default_host_user if role is Role.HOST else self.default_guest_user


class Settings(BaseSettings):
    """Runtime configuration."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    port: int = Field(default=3000)
    cors_origin: Annotated[list[str], NoDecode] = Field(default_factory=lambda: ["*"])
    log_level: str = Field(default="INFO")
    debug_endpoints_enabled: bool = Field(default=True)

    hms_room_code_host: str = Field(default="")
    hms_room_code_guest: str = Field(default="")
    hms_management_token: str = Field(default="")
    hms_api_base: str = Field(default="")
    hms_api_base_fallbacks: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_API_BASE_FALLBACKS)
    )
    hms_upstream_mode: UpstreamMode = Field(default=UpstreamMode.MANAGEMENT)
    hms_auth_url: str = Field(default="https://auth.100ms.live/v2/token")
    hms_token_path: str = Field(default="/v2/room-codes/code/{code}/token")
    hms_timeout_seconds: float = Field(default=10.0, gt=0)

    default_host_user: str = Field(default="teacher")
    default_guest_user: str = Field(default="student")

    @field_validator("cors_origin", "hms_api_base_fallbacks", mode="before")
    @classmethod
    def _split_csv(cls, value: object) -> object:
        """Allow comma-separated env values for list settings."""

        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("hms_upstream_mode", mode="before")
    @classmethod
    def _normalize_mode(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @property
    def api_base_candidates(self) -> tuple[str, ...]:
        """Explicit base first, then the fixed fallback hosts."""

        bases = [self.hms_api_base.strip()] if self.hms_api_base.strip() else []
        bases.extend(self.hms_api_base_fallbacks)
        return tuple(base.rstrip("/") for base in bases)

    def exchange_config(self) -> ExchangeConfig:
        """Snapshot the settings the exchange client depends on."""

        return ExchangeConfig(
            host_room_code=self.hms_room_code_host.strip(),
            guest_room_code=self.hms_room_code_guest.strip(),
            management_token=self.hms_management_token.strip(),
            api_bases=self.api_base_candidates,
            upstream_mode=self.hms_upstream_mode,
            auth_url=self.hms_auth_url,
            token_path=self.hms_token_path,
            timeout_seconds=self.hms_timeout_seconds,
            default_host_user=self.default_host_user,
            default_guest_user=self.default_guest_user,
        )


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


settings = get_settings()
