"""
dispatch_console.realtime.router

Broadcast router: who receives which event after a command.

Responsibilities:
- Hold the routing table (command -> audience/event/payload triples).
- Resolve audiences to live handles through the session store.
- Emit to each handle via the injected emitter (Socket.IO in production).
"""

from __future__ import annotations

import enum
from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from dispatch_console.observability.logging import get_logger
from dispatch_console.realtime.sessions import ADMIN_ROOM, SessionStore, room_for_user

log = get_logger(__name__)

# One call per route: (event, payload, recipient handles).
Emitter = Callable[[str, Any, list[str]], Awaitable[None]]


class Audience(enum.StrEnum):
    sender = "sender"
    # The per-user rooms of the command's target users.
    targets = "targets"
    admins = "admins"
    everyone = "everyone"


@dataclass(frozen=True, slots=True)
class Route:
    audience: Audience
    event: str
    # Name of the payload the command hands to `publish`; None sends a bare event.
    payload: str | None


def _tag_routes(singular: str, plural: str) -> dict[str, tuple[Route, ...]]:
    return {
        f"getAll{plural}": (Route(Audience.sender, f"getAll{plural}", "items"),),
        f"create{singular}": (Route(Audience.everyone, f"new{singular}", "item"),),
        f"delete{singular}": (Route(Audience.everyone, f"getAll{plural}", "items"),),
        f"edit{singular}": (Route(Audience.everyone, f"getAll{plural}", "items"),),
    }


# `create{Badge,Rank,Service}` sends `new{Badge,...}` carrying only the created tag,
# which is what the existing clients listen for; edits and deletes resend the full
# list under `getAll{...}`.
ROUTES: Mapping[str, tuple[Route, ...]] = {
    "connectUser": (Route(Audience.sender, "connectUser", "user"),),
    "disconnectUser": (Route(Audience.sender, "disconnectUser", None),),
    "getDispatch": (Route(Audience.sender, "getDispatch", "snapshot"),),
    "getAllUsers": (Route(Audience.sender, "getAllUsers", "users"),),
    "getLastInfos": (Route(Audience.sender, "editInfos", "text"),),
    "available": (
        Route(Audience.sender, "available", "ack"),
        Route(Audience.everyone, "updateOtherDispatchUser", "delta"),
    ),
    "availableOther": (
        Route(Audience.targets, "available", "ack"),
        Route(Audience.everyone, "updateOtherDispatchUser", "delta"),
    ),
    "updateUser": (
        Route(Audience.sender, "updateUser", "ack"),
        Route(Audience.everyone, "updateOtherDispatchUser", "delta"),
    ),
    "updateOtherUser": (
        Route(Audience.targets, "updateUser", "ack"),
        Route(Audience.everyone, "updateOtherDispatchUser", "delta"),
    ),
    "updateMultiUsers": (
        Route(Audience.targets, "updateUser", "ack"),
        Route(Audience.everyone, "getAllUsers", "users"),
    ),
    # Published once per affected user.
    "startPatrol": (
        Route(Audience.targets, "updateUser", "ack"),
        Route(Audience.everyone, "updateOtherDispatchUser", "delta"),
    ),
    "deleteUser": (
        Route(Audience.targets, "disconnectUser", None),
        Route(Audience.everyone, "updateOtherDispatchUser", "delta"),
    ),
    # Disconnect of a user's last session under presence tracking.
    "presenceLost": (Route(Audience.everyone, "updateOtherDispatchUser", "delta"),),
    "editInfos": (Route(Audience.everyone, "editInfos", "text"),),
    "commandRejected": (Route(Audience.sender, "commandRejected", "rejection"),),
    **_tag_routes("Badge", "Badges"),
    **_tag_routes("Rank", "Ranks"),
    **_tag_routes("Service", "Services"),
}


class BroadcastRouter:
    def __init__(
        self,
        *,
        sessions: SessionStore,
        emit: Emitter,
        routes: Mapping[str, tuple[Route, ...]] | None = None,
    ) -> None:
        self._sessions = sessions
        self._emit = emit
        self._routes = dict(ROUTES if routes is None else routes)

    def routes_for(self, command: str) -> tuple[Route, ...]:
        return self._routes.get(command, ())

    def resolve(
        self,
        audience: Audience,
        *,
        sender: str | None = None,
        targets: Iterable[str] = (),
    ) -> list[str]:
        if audience is Audience.sender:
            # A sender that has since disconnected is no longer in the store.
            return [sender] if sender is not None and sender in self._sessions else []
        if audience is Audience.admins:
            return sorted(self._sessions.sessions_in(ADMIN_ROOM))
        if audience is Audience.everyone:
            return sorted(self._sessions.all_handles())

        handles: list[str] = []
        seen: set[str] = set()
        for user_id in targets:
            for handle in sorted(self._sessions.sessions_in(room_for_user(user_id))):
                if handle not in seen:
                    seen.add(handle)
                    handles.append(handle)
        return handles

    async def publish(
        self,
        command: str,
        *,
        sender: str | None = None,
        targets: Sequence[str] = (),
        **payloads: Any,
    ) -> int:
        """
        Fan out every route configured for `command`, in table order.
        Returns the number of frames emitted.
        """

        routes = self.routes_for(command)
        if not routes:
            raise KeyError(f"no routes configured for {command!r}")

        sent = 0
        for route in routes:
            if route.payload is not None and route.payload not in payloads:
                raise KeyError(f"{command!r} route {route.event!r} needs payload {route.payload!r}")
            data = None if route.payload is None else payloads[route.payload]
            handles = self.resolve(route.audience, sender=sender, targets=targets)
            if handles:
                await self._emit(route.event, data, handles)
                sent += len(handles)
        log.debug("published", command=command, frames=sent)
        return sent


def socketio_emitter(sio: Any) -> Emitter:
    async def _emit(event: str, data: Any, handles: list[str]) -> None:
        # A list `to` encodes the packet once for all recipients.
        await sio.emit(event, data, to=handles)

    return _emit
