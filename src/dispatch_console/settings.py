"""
dispatch_console.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for all layers.
- Hide secrets from repr/logging (e.g., JWT secret).
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Single settings object, built once at startup and passed into every factory.
    Nothing below the composition root reads the environment directly.
    """

    model_config = SettingsConfigDict(env_prefix="DISPATCH_", case_sensitive=False)

    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "dispatch-console"
    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "json"

    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Auth (tokens are minted elsewhere; we only verify them)
    jwt_alg: str = "HS256"
    jwt_secret: str = Field(default="dev-secret-change-me", repr=False)
    jwt_issuer: str | None = None
    jwt_audience: str | None = None
    jwt_leeway_seconds: int = 0

    # Persistence
    database_url: str = "sqlite+aiosqlite:///./dispatch.db"

    # Realtime
    cors_allowed_origins: list[str] = Field(default_factory=lambda: ["*"])
    socketio_path: str = "socket.io"
    # Disconnecting the last session of a user flips them to unavailable.
    presence_tracking: bool = True
    initial_snapshot: Literal["self", "dispatch"] = "self"
    error_frames: bool = False


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


# --- Module Notes -----------------------------------------------------------
# `initial_snapshot` and `presence_tracking` select between the deployment variants
# of the protocol; both are read once when the dispatcher is constructed.
