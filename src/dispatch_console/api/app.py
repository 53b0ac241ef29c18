"""
dispatch_console.api.app

Composition root for the dispatch console service.

Responsibilities:
- Build the FastAPI application and register operational routers.
- Construct store, session store, gate, router and dispatcher explicitly, once.
- Mount the Socket.IO server above FastAPI so polling and websocket upgrades reach it.
"""

from __future__ import annotations

import socketio
from fastapi import FastAPI

from dispatch_console import __version__
from dispatch_console.api.routers.dev_auth import router as dev_auth_router
from dispatch_console.api.routers.health import router as health_router
from dispatch_console.auth.authenticator import Authenticator
from dispatch_console.auth.gate import AuthorizationGate
from dispatch_console.auth.jwt import JwtConfig
from dispatch_console.db.session import create_engine, create_schema, create_sessionmaker
from dispatch_console.db.repositories.state import StateRepository
from dispatch_console.observability.logging import configure_logging, get_logger
from dispatch_console.realtime.router import BroadcastRouter, socketio_emitter
from dispatch_console.realtime.server import create_socket_server, register_handlers
from dispatch_console.realtime.sessions import SessionStore
from dispatch_console.services.dispatcher import CommandDispatcher
from dispatch_console.settings import Settings, get_settings

log = get_logger(__name__)


def create_app(*, settings: Settings) -> FastAPI:
    configure_logging(
        service_name=settings.service_name,
        level=settings.log_level,
        fmt=settings.log_format,
    )

    app = FastAPI(
        title="Dispatch Console",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
    )
    app.include_router(health_router, tags=["health"])
    app.include_router(dev_auth_router)

    # The engine is created eagerly so the dispatcher can be wired before startup;
    # no connection is opened until the first query.
    engine = create_engine(settings)
    app.state.settings = settings
    app.state.engine = engine
    app.state.repository = StateRepository(create_sessionmaker(engine))

    @app.on_event("startup")
    async def _startup() -> None:
        log.info("startup", env=settings.env)
        if settings.env in ("dev", "test"):
            await create_schema(engine)

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        await engine.dispose()
        log.info("shutdown")

    return app


def create_dispatcher(
    *,
    settings: Settings,
    app: FastAPI,
    sio: socketio.AsyncServer,
) -> CommandDispatcher:
    sessions = SessionStore()
    app.state.sessions = sessions
    return CommandDispatcher(
        repository=app.state.repository,
        sessions=sessions,
        gate=AuthorizationGate(),
        router=BroadcastRouter(sessions=sessions, emit=socketio_emitter(sio)),
        presence_tracking=settings.presence_tracking,
        initial_snapshot=settings.initial_snapshot,
        error_frames=settings.error_frames,
    )


def create_asgi_app(*, settings: Settings) -> socketio.ASGIApp:
    app = create_app(settings=settings)
    sio = create_socket_server(settings)
    dispatcher = create_dispatcher(settings=settings, app=app, sio=sio)
    register_handlers(
        sio,
        authenticator=Authenticator(JwtConfig.from_settings(settings)),
        dispatcher=dispatcher,
    )
    app.state.sio = sio
    app.state.dispatcher = dispatcher

    # Lifespan events are forwarded to FastAPI since ASGIApp has no hooks of its own.
    return socketio.ASGIApp(sio, other_asgi_app=app, socketio_path=settings.socketio_path)


def asgi_app_from_env() -> socketio.ASGIApp:
    """uvicorn factory: `uvicorn dispatch_console.api.app:asgi_app_from_env --factory`."""

    return create_asgi_app(settings=get_settings())


# --- Module Notes -----------------------------------------------------------
# Tests build a dispatcher directly with a fake emitter; this module is the only
# place the real Socket.IO server is attached.
