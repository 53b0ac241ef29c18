"""
tests.conftest

Shared fixtures: a file-backed store per test, a recording emitter in place of the
Socket.IO server, and a fully wired dispatcher.
"""

from __future__ import annotations

from typing import Any

import pytest
import pytest_asyncio

from dispatch_console.auth.gate import AuthorizationGate
from dispatch_console.auth.jwt import JwtConfig
from dispatch_console.db.session import create_engine, create_schema, create_sessionmaker
from dispatch_console.db.repositories.state import StateRepository
from dispatch_console.realtime.router import BroadcastRouter
from dispatch_console.realtime.sessions import SessionStore
from dispatch_console.services.dispatcher import CommandDispatcher
from dispatch_console.settings import Settings


class RecordingEmitter:
    def __init__(self) -> None:
        self.frames: list[tuple[str, Any, str]] = []

    async def __call__(self, event: str, data: Any, handles: list[str]) -> None:
        self.frames.extend((event, data, handle) for handle in handles)

    def to(self, handle: str) -> list[tuple[str, Any]]:
        return [(event, data) for event, data, h in self.frames if h == handle]

    def named(self, event: str) -> list[tuple[Any, str]]:
        return [(data, h) for e, data, h in self.frames if e == event]

    def clear(self) -> None:
        self.frames.clear()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(env="test", database_url=f"sqlite+aiosqlite:///{tmp_path / 'dispatch.db'}")


@pytest.fixture
def jwt_cfg() -> JwtConfig:
    return JwtConfig(alg="HS256", secret="test-secret")


@pytest_asyncio.fixture
async def engine(settings: Settings):
    engine = create_engine(settings)
    await create_schema(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def repository(engine) -> StateRepository:
    return StateRepository(create_sessionmaker(engine))


@pytest.fixture
def sessions() -> SessionStore:
    return SessionStore()


@pytest.fixture
def emitter() -> RecordingEmitter:
    return RecordingEmitter()


@pytest.fixture
def router(sessions: SessionStore, emitter: RecordingEmitter) -> BroadcastRouter:
    return BroadcastRouter(sessions=sessions, emit=emitter)


@pytest.fixture
def dispatcher(
    repository: StateRepository, sessions: SessionStore, router: BroadcastRouter
) -> CommandDispatcher:
    return CommandDispatcher(
        repository=repository,
        sessions=sessions,
        gate=AuthorizationGate(),
        router=router,
    )


@pytest_asyncio.fixture
async def users(repository: StateRepository) -> dict[str, dict[str, Any]]:
    docs = {}
    for name, is_admin in (("alice", True), ("bob", False), ("carol", False), ("dave", False)):
        docs[name] = await repository.users.insert(
            {
                "username": name,
                "password": f"hash-{name}",
                "phone": "0600000000",
                "isAdmin": is_admin,
                "isAvailable": False,
                "note": "",
                "badges": [],
            }
        )
    return docs
