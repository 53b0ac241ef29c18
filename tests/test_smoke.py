"""
tests.test_smoke

Minimal smoke tests to validate the service can boot and serve core endpoints.
"""

from __future__ import annotations

import httpx
import pytest
import socketio

from dispatch_console.api.app import create_app, create_asgi_app
from dispatch_console.settings import Settings


@pytest.mark.asyncio
async def test_health_endpoints(settings: Settings) -> None:
    app = create_app(settings=settings)

    # httpx ASGITransport does not manage lifespan automatically; do it explicitly.
    await app.router.startup()
    try:
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            r = await client.get("/healthz")
            assert r.status_code == 200
            assert r.json()["status"] == "ok"

            r = await client.get("/readyz")
            assert r.status_code == 200
            assert r.json() == {"status": "ready", "sessions": 0}
    finally:
        await app.router.shutdown()


@pytest.mark.asyncio
async def test_dev_token_is_refused_in_prod(tmp_path) -> None:
    settings = Settings(env="prod", database_url=f"sqlite+aiosqlite:///{tmp_path / 'p.db'}")
    app = create_app(settings=settings)

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        r = await client.post("/v1/dev/token", json={"userId": "u1"})
        assert r.status_code == 404


@pytest.mark.asyncio
async def test_dev_token_mints_verifiable_token(settings: Settings) -> None:
    from dispatch_console.auth.authenticator import Authenticator
    from dispatch_console.auth.jwt import JwtConfig

    app = create_app(settings=settings)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        r = await client.post("/v1/dev/token", json={"userId": "u1", "isAdmin": True})
        assert r.status_code == 200
        token = r.json()["access_token"]

    identity = Authenticator(JwtConfig.from_settings(settings)).authenticate(token)
    assert identity.user_id == "u1"
    assert identity.is_admin is True


def test_asgi_app_registers_every_command(settings: Settings) -> None:
    asgi = create_asgi_app(settings=settings)
    assert isinstance(asgi, socketio.ASGIApp)

    fastapi_app = asgi.other_asgi_app
    sio = fastapi_app.state.sio
    registered = set(sio.handlers["/"])
    assert {"connect", "disconnect"} <= registered
    assert set(fastapi_app.state.dispatcher.commands) <= registered


@pytest.mark.asyncio
async def test_dev_token_for_stored_user_uses_record(settings: Settings, users) -> None:
    app = create_app(settings=settings)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        r = await client.post("/v1/dev/token", json={"username": "alice"})
        assert r.status_code == 200
        body = r.json()
        assert body["userId"] == users["alice"]["_id"]
        assert body["isAdmin"] is True

        r = await client.post("/v1/dev/token", json={"username": "nobody"})
        assert r.status_code == 404

        r = await client.post("/v1/dev/token", json={"userId": "u1", "username": "alice"})
        assert r.status_code == 422


@pytest.mark.asyncio
async def test_readyz_reports_open_sessions(settings: Settings, users) -> None:
    from dispatch_console.auth.models import Identity

    asgi = create_asgi_app(settings=settings)
    fastapi_app = asgi.other_asgi_app
    await fastapi_app.state.dispatcher.connect("sid-1", Identity(user_id=users["bob"]["_id"]))

    transport = httpx.ASGITransport(app=fastapi_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        r = await client.get("/readyz")
        assert r.status_code == 200
        assert r.json()["sessions"] == 1
    await fastapi_app.state.engine.dispose()
