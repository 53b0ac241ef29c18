"""
dispatch_console.api.deps

Accessors for the objects the app factory parks on `app.state`.
"""

from __future__ import annotations

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine

from dispatch_console.db.repositories.state import StateRepository
from dispatch_console.realtime.sessions import SessionStore
from dispatch_console.settings import Settings


def settings_dep(request: Request) -> Settings:
    return request.app.state.settings  # type: ignore[attr-defined]


def engine_dep(request: Request) -> AsyncEngine:
    return request.app.state.engine  # type: ignore[attr-defined]


def repository_dep(request: Request) -> StateRepository:
    return request.app.state.repository  # type: ignore[attr-defined]


def sessions_dep(request: Request) -> SessionStore | None:
    # Only present once the Socket.IO server has been attached.
    return getattr(request.app.state, "sessions", None)
