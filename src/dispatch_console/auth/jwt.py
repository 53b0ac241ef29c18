"""
dispatch_console.auth.jwt

JWT issuing and validation helpers.

Responsibilities:
- Decode and validate connection tokens (signature + expiry, optional iss/aud).
- Issue tokens for local/dev scenarios and tests; production tokens come from the
  login service that shares our secret.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from jwt import ExpiredSignatureError, InvalidTokenError

from dispatch_console.settings import Settings

USER_CLAIM = "id"
ADMIN_CLAIM = "isAdmin"


@dataclass(frozen=True, slots=True)
class JwtConfig:
    alg: str
    secret: str
    issuer: str | None = None
    audience: str | None = None
    leeway: int = 0

    @classmethod
    def from_settings(cls, settings: Settings) -> JwtConfig:
        return cls(
            alg=settings.jwt_alg,
            secret=settings.jwt_secret,
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            leeway=settings.jwt_leeway_seconds,
        )


class JwtValidationError(Exception):
    pass


class JwtExpiredError(JwtValidationError):
    pass


def issue_token(
    *,
    cfg: JwtConfig,
    user_id: str,
    is_admin: bool = False,
    ttl: timedelta = timedelta(hours=1),
) -> str:
    now = datetime.now(tz=UTC)
    payload: dict[str, Any] = {
        USER_CLAIM: user_id,
        ADMIN_CLAIM: is_admin,
        "iat": int(now.timestamp()),
        "exp": int((now + ttl).timestamp()),
    }
    if cfg.issuer:
        payload["iss"] = cfg.issuer
    if cfg.audience:
        payload["aud"] = cfg.audience
    return jwt.encode(payload, cfg.secret, algorithm=cfg.alg)


def decode_and_validate(*, cfg: JwtConfig, token: str) -> dict[str, Any]:
    required = ["exp"]
    if cfg.issuer:
        required.append("iss")
    if cfg.audience:
        required.append("aud")
    try:
        return jwt.decode(
            token,
            cfg.secret,
            algorithms=[cfg.alg],
            issuer=cfg.issuer,
            audience=cfg.audience,
            leeway=cfg.leeway,
            options={"require": required},
        )
    except ExpiredSignatureError as e:
        raise JwtExpiredError(str(e)) from e
    except InvalidTokenError as e:
        raise JwtValidationError(str(e)) from e


# --- Module Notes -----------------------------------------------------------
# Claim names (`id`, `isAdmin`) match the tokens the existing web client already holds.
