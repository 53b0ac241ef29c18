"""
dispatch_console.realtime.sessions

In-memory session store.

Responsibilities:
- Map connection handles (Socket.IO sids) to authenticated sessions.
- Maintain room -> handles and user -> handles indices for O(members) fan-out.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from dispatch_console.auth.models import Identity

ADMIN_ROOM = "adminRoom"


def room_for_user(user_id: str) -> str:
    # Store ids are used verbatim as room ids.
    return user_id


@dataclass(slots=True)
class Session:
    handle: str
    identity: Identity
    rooms: set[str] = field(default_factory=set)
    # Serializes this session's commands; other sessions are unaffected.
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    @property
    def user_id(self) -> str:
        return self.identity.user_id

    @property
    def is_admin(self) -> bool:
        return self.identity.is_admin


class SessionStore:
    """
    Every method is synchronous, so under the event loop each call completes without
    interleaving. Enumerations return snapshots, safe to iterate across awaits.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._rooms: dict[str, set[str]] = {}
        self._by_user: dict[str, set[str]] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, handle: object) -> bool:
        return handle in self._sessions

    def register(self, handle: str, identity: Identity) -> Session:
        if handle in self._sessions:
            self.remove(handle)
        session = Session(handle=handle, identity=identity)
        self._sessions[handle] = session
        self._by_user.setdefault(identity.user_id, set()).add(handle)
        return session

    def get(self, handle: str) -> Session | None:
        return self._sessions.get(handle)

    def join_room(self, handle: str, room: str) -> bool:
        session = self._sessions.get(handle)
        if session is None:
            return False
        session.rooms.add(room)
        self._rooms.setdefault(room, set()).add(handle)
        return True

    def leave_room(self, handle: str, room: str) -> None:
        session = self._sessions.get(handle)
        if session is not None:
            session.rooms.discard(room)
        self._discard(self._rooms, room, handle)

    def remove(self, handle: str) -> Session | None:
        session = self._sessions.pop(handle, None)
        if session is None:
            return None
        for room in session.rooms:
            self._discard(self._rooms, room, handle)
        self._discard(self._by_user, session.user_id, handle)
        return session

    def sessions_in(self, room: str) -> frozenset[str]:
        return frozenset(self._rooms.get(room, ()))

    def sessions_for(self, user_id: str) -> frozenset[str]:
        return frozenset(self._by_user.get(user_id, ()))

    def all_handles(self) -> frozenset[str]:
        return frozenset(self._sessions)

    @staticmethod
    def _discard(index: dict[str, set[str]], key: str, handle: str) -> None:
        members = index.get(key)
        if members is None:
            return
        members.discard(handle)
        if not members:
            del index[key]
