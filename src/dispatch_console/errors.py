"""
dispatch_console.errors

Error taxonomy shared by the realtime core.

Responsibilities:
- Name every failure the command pipeline distinguishes.
- Carry a short machine-readable reason usable in refusal/rejection frames.
"""

from __future__ import annotations

from typing import Any


class DispatchError(Exception):
    reason: str = "error"

    def __init__(self, detail: str = "") -> None:
        super().__init__(detail or self.reason)
        self.detail = detail


class AuthError(DispatchError):
    """
    Token missing, malformed, badly signed or expired.
    The connection is refused before any session exists.
    """

    def __init__(self, reason: str = "unauthorized", detail: str = "") -> None:
        super().__init__(detail or reason)
        self.reason = reason


class AuthorizationDenied(DispatchError):
    reason = "forbidden"

    def __init__(self, operation: str) -> None:
        super().__init__(f"operation {operation!r} denied")
        self.operation = operation


class InvalidCommand(DispatchError):
    reason = "invalid_payload"


class StoreError(DispatchError):
    reason = "store_error"


class NotFound(DispatchError):
    reason = "not_found"

    def __init__(self, collection: str, filter: dict[str, Any]) -> None:
        super().__init__(f"no document in {collection} matches {filter!r}")
        self.collection = collection
        self.filter = filter
