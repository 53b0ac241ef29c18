"""
dispatch_console.observability.context

Command-scoped logging context.

Responsibilities:
- Bind sid/command/user into structlog contextvars while one command runs.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

import structlog


@contextmanager
def command_context(*, sid: str, command: str, user_id: str | None = None) -> Iterator[None]:
    # Unbind on exit: the snapshot task and inbound events may share a task.
    tokens = structlog.contextvars.bind_contextvars(sid=sid, command=command, user_id=user_id)
    try:
        yield
    finally:
        structlog.contextvars.reset_contextvars(**tokens)


# --- Module Notes -----------------------------------------------------------
# Plays the role an HTTP request-id middleware plays for REST handlers.
