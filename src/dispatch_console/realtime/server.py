"""
dispatch_console.realtime.server

Socket.IO server for the dispatch console clients.

Responsibilities:
- Build the `socketio.AsyncServer` from settings.
- Authenticate the handshake and refuse bad tokens before any session exists.
- Forward every known command event to the dispatcher.

Client convention:
- Socket.IO path: /socket.io (configurable)
- Auth: `auth.token`, `query.token` or `Authorization: Bearer <jwt>`
"""

from __future__ import annotations

from typing import Any

import socketio

from dispatch_console.auth.authenticator import Authenticator, extract_token
from dispatch_console.errors import AuthError
from dispatch_console.observability.logging import get_logger
from dispatch_console.services.dispatcher import CommandDispatcher
from dispatch_console.settings import Settings

log = get_logger(__name__)


def create_socket_server(settings: Settings) -> socketio.AsyncServer:
    origins: Any = settings.cors_allowed_origins
    if origins == ["*"]:
        origins = "*"
    return socketio.AsyncServer(
        async_mode="asgi",
        cors_allowed_origins=origins,
        logger=False,
        engineio_logger=False,
    )


def register_handlers(
    sio: socketio.AsyncServer,
    *,
    authenticator: Authenticator,
    dispatcher: CommandDispatcher,
) -> None:
    @sio.event
    async def connect(sid: str, environ: dict[str, Any], auth: Any | None = None) -> None:
        try:
            identity = authenticator.authenticate(extract_token(environ, auth))
        except AuthError as exc:
            log.info("connect_refused", sid=sid, reason=exc.reason, detail=exc.detail)
            raise ConnectionRefusedError(exc.reason) from exc

        await dispatcher.connect(sid, identity)
        # The snapshot goes out after the handshake completes, not from inside it.
        sio.start_background_task(dispatcher.push_snapshot, sid)

    @sio.event
    async def disconnect(sid: str, *_: Any) -> None:
        await dispatcher.disconnect(sid)

    for command in dispatcher.commands:
        sio.on(command, handler=_forward(dispatcher, command))


def _forward(dispatcher: CommandDispatcher, command: str):
    async def handler(sid: str, data: Any = None, *_: Any) -> None:
        await dispatcher.handle(sid, command, data)

    return handler


# --- Module Notes -----------------------------------------------------------
# Events outside `dispatcher.commands` have no handler and are dropped by python-socketio.
