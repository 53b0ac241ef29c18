"""
dispatch_console.services.dispatcher

Command dispatcher: the per-connection protocol state machine.

Responsibilities:
- Open sessions for authenticated connections (rooms + initial snapshot).
- Run each inbound command as gate -> repository -> broadcast, one at a time per session.
- Close sessions and, with presence tracking, mark the user unavailable.
- Turn denials, bad payloads, misses and store failures into log lines, not crashes.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from functools import partial
from typing import Any, Literal, TypeVar

from pydantic import BaseModel, ValidationError

from dispatch_console.auth.gate import AuthorizationGate, Operation
from dispatch_console.auth.models import Identity
from dispatch_console.db.repositories.state import StateRepository
from dispatch_console.errors import (
    AuthorizationDenied,
    DispatchError,
    InvalidCommand,
    NotFound,
    StoreError,
)
from dispatch_console.observability.context import command_context
from dispatch_console.observability.logging import get_logger
from dispatch_console.realtime.payloads import (
    AvailableOtherPayload,
    AvailablePayload,
    DeleteUserPayload,
    StartPatrolPayload,
    TagCreatePayload,
    TagEditPayload,
    TagRefPayload,
    UpdateMultiUsersPayload,
    UpdateOtherUserPayload,
    UserPatch,
)
from dispatch_console.realtime.projections import (
    dispatch_snapshot,
    project_tag,
    project_tags,
    project_user,
    project_users,
    user_deleted,
    user_delta,
)
from dispatch_console.realtime.router import BroadcastRouter
from dispatch_console.realtime.sessions import ADMIN_ROOM, Session, SessionStore, room_for_user

log = get_logger(__name__)

P = TypeVar("P", bound=BaseModel)
Handler = Callable[[Session, Any], Awaitable[None]]

# Fields a bulk update may select on.
_UNFILTERABLE_USER_FIELDS = frozenset({"password", "badges", "ranks", "services"})


@dataclass(frozen=True, slots=True)
class TagKind:
    collection: str
    singular: str
    plural: str


TAG_KINDS = (
    TagKind("badges", "Badge", "Badges"),
    TagKind("ranks", "Rank", "Ranks"),
    TagKind("services", "Service", "Services"),
)


def _parse(model: type[P], data: Any) -> P:
    try:
        return model.model_validate(data if data is not None else {})
    except ValidationError as e:
        raise InvalidCommand(f"{model.__name__}: {e.error_count()} validation error(s)") from e


class CommandDispatcher:
    def __init__(
        self,
        *,
        repository: StateRepository,
        sessions: SessionStore,
        gate: AuthorizationGate,
        router: BroadcastRouter,
        presence_tracking: bool = True,
        initial_snapshot: Literal["self", "dispatch"] = "self",
        error_frames: bool = False,
    ) -> None:
        self._repo = repository
        self._sessions = sessions
        self._gate = gate
        self._router = router
        self._presence_tracking = presence_tracking
        self._initial_snapshot = initial_snapshot
        self._error_frames = error_frames

        self._handlers: dict[str, Handler] = {
            "getDispatch": self._get_dispatch,
            "getAllUsers": self._get_all_users,
            "getLastInfos": self._get_last_infos,
            "available": self._available,
            "availableOther": self._available_other,
            "updateUser": self._update_user,
            "updateOtherUser": self._update_other_user,
            "updateMultiUsers": self._update_multi_users,
            "startPatrol": self._start_patrol,
            "deleteUser": self._delete_user,
            "editInfos": self._edit_infos,
        }
        for kind in TAG_KINDS:
            self._handlers[f"getAll{kind.plural}"] = partial(self._get_all_tags, kind)
            self._handlers[f"create{kind.singular}"] = partial(self._create_tag, kind)
            self._handlers[f"delete{kind.singular}"] = partial(self._delete_tag, kind)
            self._handlers[f"edit{kind.singular}"] = partial(self._edit_tag, kind)

    @property
    def commands(self) -> tuple[str, ...]:
        return tuple(self._handlers)

    # -- lifecycle -----------------------------------------------------------

    async def connect(self, handle: str, identity: Identity) -> Session:
        session = self._sessions.register(handle, identity)
        self._sessions.join_room(handle, room_for_user(identity.user_id))
        if identity.is_admin:
            self._sessions.join_room(handle, ADMIN_ROOM)
        log.info("session_opened", sid=handle, user_id=identity.user_id, is_admin=identity.is_admin)
        return session

    async def push_snapshot(self, handle: str) -> None:
        session = self._sessions.get(handle)
        if session is None:
            return
        with command_context(sid=handle, command="snapshot", user_id=session.user_id):
            async with session.lock:
                try:
                    if self._initial_snapshot == "dispatch":
                        await self._get_dispatch(session, None)
                        return
                    doc = await self._repo.users.find_one({"_id": session.user_id})
                    if doc is None:
                        log.info("snapshot_user_missing")
                        await self._router.publish("disconnectUser", sender=handle)
                        return
                    await self._router.publish("connectUser", sender=handle, user=project_user(doc))
                except StoreError:
                    log.exception("store_error")

    async def disconnect(self, handle: str) -> None:
        session = self._sessions.remove(handle)
        if session is None:
            return
        log.info("session_closed", sid=handle, user_id=session.user_id)

        if not self._presence_tracking:
            return
        with command_context(sid=handle, command="presenceLost", user_id=session.user_id):
            # A command already running for this session finishes its write first.
            async with session.lock:
                if self._sessions.sessions_for(session.user_id):
                    return
                try:
                    await self._write_user(session.user_id, {"isAvailable": False})
                    await self._router.publish(
                        "presenceLost",
                        delta=user_delta(session.user_id, {"isAvailable": False}),
                    )
                except NotFound:
                    log.info("presence_user_missing")
                except StoreError:
                    log.exception("store_error")

    async def handle(self, handle: str, command: str, data: Any = None) -> bool:
        """
        Run one command to completion. Returns True when it was applied and broadcast.
        """

        session = self._sessions.get(handle)
        if session is None:
            log.warning("command_without_session", sid=handle, command=command)
            return False
        handler = self._handlers.get(command)
        if handler is None:
            log.warning("unknown_command", sid=handle, command=command)
            return False

        with command_context(sid=handle, command=command, user_id=session.user_id):
            async with session.lock:
                try:
                    await handler(session, data)
                    return True
                except AuthorizationDenied as e:
                    log.info("command_denied", operation=e.operation)
                    await self._reject(session, command, e)
                except InvalidCommand as e:
                    log.warning("invalid_payload", detail=e.detail)
                    await self._reject(session, command, e)
                except NotFound as e:
                    log.info("target_not_found", collection=e.collection, filter=e.filter)
                except StoreError:
                    log.exception("store_error")
        return False

    async def _reject(self, session: Session, command: str, error: DispatchError) -> None:
        if not self._error_frames:
            return
        await self._router.publish(
            "commandRejected",
            sender=session.handle,
            rejection={"command": command, "reason": error.reason},
        )

    async def _write_user(self, user_id: str, patch: dict[str, Any]) -> None:
        if not await self._repo.users.update_one({"_id": user_id}, patch):
            raise NotFound("users", {"_id": user_id})

    def _user_patch(self, session: Session, patch: UserPatch) -> dict[str, Any]:
        fields = self._gate.writable_user_fields(session.identity, patch.as_patch())
        if not fields:
            raise InvalidCommand("no writable fields in update")
        return fields

    # -- reads ---------------------------------------------------------------

    async def _get_dispatch(self, session: Session, _: Any) -> None:
        users, badges, ranks, services = await asyncio.gather(
            self._repo.users.find_many(),
            self._repo.badges.find_many(),
            self._repo.ranks.find_many(),
            self._repo.services.find_many(),
        )
        snapshot = dispatch_snapshot(users=users, badges=badges, ranks=ranks, services=services)
        await self._router.publish("getDispatch", sender=session.handle, snapshot=snapshot)

    async def _get_all_users(self, session: Session, _: Any) -> None:
        users = await self._repo.users.find_many()
        await self._router.publish("getAllUsers", sender=session.handle, users=project_users(users))

    async def _get_all_tags(self, kind: TagKind, session: Session, _: Any) -> None:
        items = await self._repo.collection(kind.collection).find_many()
        await self._router.publish(
            f"getAll{kind.plural}", sender=session.handle, items=project_tags(items)
        )

    async def _get_last_infos(self, session: Session, _: Any) -> None:
        doc = await self._repo.latest_info()
        text = doc["text"] if doc is not None else ""
        await self._router.publish("getLastInfos", sender=session.handle, text=text)

    # -- user mutations ------------------------------------------------------

    async def _available(self, session: Session, data: Any) -> None:
        payload = _parse(AvailablePayload, data)
        self._gate.require(session.identity, Operation.update_self, session.user_id)

        patch = {"isAvailable": payload.state}
        await self._write_user(session.user_id, patch)
        await self._router.publish(
            "available",
            sender=session.handle,
            ack=payload.state,
            delta=user_delta(session.user_id, patch),
        )

    async def _available_other(self, session: Session, data: Any) -> None:
        self._gate.require(session.identity, Operation.update_other)
        payload = _parse(AvailableOtherPayload, data)

        patch = {"isAvailable": payload.state}
        await self._write_user(payload.id, patch)
        await self._router.publish(
            "availableOther",
            targets=[payload.id],
            ack=payload.state,
            delta=user_delta(payload.id, patch),
        )

    async def _update_user(self, session: Session, data: Any) -> None:
        patch = self._user_patch(session, _parse(UserPatch, data))
        self._gate.require(session.identity, Operation.update_self, session.user_id)

        await self._write_user(session.user_id, patch)
        await self._router.publish(
            "updateUser",
            sender=session.handle,
            ack=patch,
            delta=user_delta(session.user_id, patch),
        )

    async def _update_other_user(self, session: Session, data: Any) -> None:
        self._gate.require(session.identity, Operation.update_other)
        payload = _parse(UpdateOtherUserPayload, data)
        patch = self._user_patch(session, payload.new_data)

        await self._write_user(payload.id, patch)
        await self._router.publish(
            "updateOtherUser",
            targets=[payload.id],
            ack=patch,
            delta=user_delta(payload.id, patch),
        )

    async def _update_multi_users(self, session: Session, data: Any) -> None:
        self._gate.require(session.identity, Operation.bulk_update)
        payload = _parse(UpdateMultiUsersPayload, data)
        patch = self._user_patch(session, payload.new_data)
        blocked = _UNFILTERABLE_USER_FIELDS.intersection(payload.filter)
        if blocked:
            raise InvalidCommand(f"cannot filter users on {sorted(blocked)}")

        matched = await self._repo.users.find_many(payload.filter)
        ids = [doc["_id"] for doc in matched]
        if ids:
            await self._repo.users.update_many({"_id": {"$in": ids}}, patch)

        refreshed = await self._repo.users.find_many()
        await self._router.publish(
            "updateMultiUsers",
            targets=ids,
            ack=patch,
            users=project_users(refreshed),
        )

    async def _start_patrol(self, session: Session, data: Any) -> None:
        payload = _parse(StartPatrolPayload, data)
        crew = list(dict.fromkeys([*payload.mates, session.user_id]))
        self._gate.require(session.identity, Operation.patrol, crew)

        found = {doc["_id"] for doc in await self._repo.users.find_many({"_id": {"$in": crew}})}
        affected = [user_id for user_id in crew if user_id in found]
        if not affected:
            raise NotFound("users", {"_id": {"$in": crew}})

        patch = {"badges": [payload.patrol]}
        await self._repo.users.update_many({"_id": {"$in": affected}}, patch)
        for user_id in affected:
            await self._router.publish(
                "startPatrol",
                targets=[user_id],
                ack=patch,
                delta=user_delta(user_id, patch),
            )

    async def _delete_user(self, session: Session, data: Any) -> None:
        self._gate.require(session.identity, Operation.delete_user)
        payload = _parse(DeleteUserPayload, data)

        if not await self._repo.users.delete_one({"_id": payload.id}):
            raise NotFound("users", {"_id": payload.id})
        await self._router.publish(
            "deleteUser",
            targets=[payload.id],
            delta=user_deleted(payload.id),
        )

    # -- reference collections -----------------------------------------------

    async def _create_tag(self, kind: TagKind, session: Session, data: Any) -> None:
        self._gate.require(session.identity, Operation.edit_collection)
        payload = _parse(TagCreatePayload, data)

        doc = await self._repo.collection(kind.collection).insert(
            {"label": payload.label, "color": payload.color}
        )
        await self._router.publish(f"create{kind.singular}", item=project_tag(doc))

    async def _delete_tag(self, kind: TagKind, session: Session, data: Any) -> None:
        self._gate.require(session.identity, Operation.edit_collection)
        payload = _parse(TagRefPayload, data)

        coll = self._repo.collection(kind.collection)
        if not await coll.delete_one({"_id": payload.tag_id}):
            raise NotFound(kind.collection, {"_id": payload.tag_id})
        items = project_tags(await coll.find_many())
        await self._router.publish(f"delete{kind.singular}", items=items)

    async def _edit_tag(self, kind: TagKind, session: Session, data: Any) -> None:
        self._gate.require(session.identity, Operation.edit_collection)
        payload = _parse(TagEditPayload, data)
        patch = payload.data.as_patch()
        if not patch:
            raise InvalidCommand("no fields to edit")

        coll = self._repo.collection(kind.collection)
        if not await coll.update_one({"_id": payload.tag_id}, patch):
            raise NotFound(kind.collection, {"_id": payload.tag_id})
        items = project_tags(await coll.find_many())
        await self._router.publish(f"edit{kind.singular}", items=items)

    # -- infos ---------------------------------------------------------------

    async def _edit_infos(self, session: Session, data: Any) -> None:
        self._gate.require(session.identity, Operation.edit_infos)
        if not isinstance(data, str):
            raise InvalidCommand("editInfos expects a string")

        doc = await self._repo.infos.insert({"text": data})
        await self._router.publish("editInfos", text=doc["text"])


# --- Module Notes -----------------------------------------------------------
# Every handler persists before it publishes; a failed write raises before any
# frame goes out, so there is never a broadcast without the matching store change.
