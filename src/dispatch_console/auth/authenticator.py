"""
dispatch_console.auth.authenticator

Connection-time authentication.

Responsibilities:
- Extract the bearer token from a Socket.IO handshake (auth payload, query string or
  Authorization header; clients differ in which one they use).
- Validate it and normalize its claims into an `Identity`.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import parse_qs

from dispatch_console.auth.jwt import (
    ADMIN_CLAIM,
    USER_CLAIM,
    JwtConfig,
    JwtExpiredError,
    JwtValidationError,
    decode_and_validate,
)
from dispatch_console.auth.models import Identity
from dispatch_console.errors import AuthError


def _scope(environ: Any) -> Any:
    if isinstance(environ, dict) and "asgi.scope" in environ:
        inner = environ.get("asgi.scope")
        if isinstance(inner, dict):
            return inner
    return environ


def _query_token(scope: Any) -> str | None:
    query_string: str | bytes = ""
    if isinstance(scope, dict) and "query_string" in scope:
        query_string = scope.get("query_string", b"")
    elif isinstance(scope, dict) and "QUERY_STRING" in scope:
        query_string = scope.get("QUERY_STRING", "")

    if isinstance(query_string, (bytes, bytearray)):
        query_string = query_string.decode(errors="ignore")

    token = parse_qs(str(query_string)).get("token", [None])[0]
    return token if isinstance(token, str) and token else None


def _header_token(environ: Any) -> str | None:
    value: Any = None
    if isinstance(environ, dict):
        value = environ.get("HTTP_AUTHORIZATION")
        scope = _scope(environ)
        if value is None and isinstance(scope, dict):
            for name, raw in scope.get("headers", []) or []:
                if name.lower() == b"authorization":
                    value = raw
                    break
    if isinstance(value, (bytes, bytearray)):
        value = value.decode(errors="ignore")
    if not isinstance(value, str):
        return None
    scheme, _, credentials = value.strip().partition(" ")
    if scheme.lower() != "bearer" or not credentials.strip():
        return None
    return credentials.strip()


def extract_token(environ: Any, auth: Any | None) -> str | None:
    """Return the first token found in `auth.token`, `?token=`, then the header."""

    if isinstance(auth, dict):
        auth_token = auth.get("token")
        if isinstance(auth_token, str) and auth_token:
            return auth_token

    return _query_token(_scope(environ)) or _header_token(environ)


class Authenticator:
    def __init__(self, cfg: JwtConfig) -> None:
        self._cfg = cfg

    def authenticate(self, token: str | None) -> Identity:
        if not token:
            raise AuthError("unauthorized", "missing token")

        try:
            payload = decode_and_validate(cfg=self._cfg, token=token)
        except JwtExpiredError as e:
            raise AuthError("jwt_expired", str(e)) from e
        except JwtValidationError as e:
            raise AuthError("unauthorized", str(e)) from e

        user_id = payload.get(USER_CLAIM) or payload.get("sub")
        if not isinstance(user_id, str) or not user_id:
            raise AuthError("unauthorized", "token carries no user id")

        return Identity(user_id=user_id, is_admin=payload.get(ADMIN_CLAIM) is True)


# --- Module Notes -----------------------------------------------------------
# `extract_token` copes with both environ shapes python-socketio produces: the
# translated WSGI-style environ and the raw ASGI scope nested under `asgi.scope`.
