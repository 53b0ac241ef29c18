from __future__ import annotations

import pytest

from dispatch_console.auth.models import Identity
from dispatch_console.realtime.router import Audience, BroadcastRouter, Route, socketio_emitter
from dispatch_console.realtime.sessions import ADMIN_ROOM, SessionStore, room_for_user


def _connect(store: SessionStore, sid: str, user_id: str, *, admin: bool = False) -> None:
    store.register(sid, Identity(user_id=user_id, is_admin=admin))
    store.join_room(sid, room_for_user(user_id))
    if admin:
        store.join_room(sid, ADMIN_ROOM)


@pytest.fixture
def populated(sessions: SessionStore) -> SessionStore:
    _connect(sessions, "s-admin", "u-admin", admin=True)
    _connect(sessions, "s-bob-1", "u-bob")
    _connect(sessions, "s-bob-2", "u-bob")
    _connect(sessions, "s-carol", "u-carol")
    return sessions


def test_resolve_audiences(populated: SessionStore, router: BroadcastRouter) -> None:
    assert router.resolve(Audience.sender, sender="s-carol") == ["s-carol"]
    assert router.resolve(Audience.sender, sender="gone") == []
    assert router.resolve(Audience.admins) == ["s-admin"]
    assert router.resolve(Audience.everyone) == ["s-admin", "s-bob-1", "s-bob-2", "s-carol"]
    assert router.resolve(Audience.targets, targets=["u-bob", "u-carol", "u-bob"]) == [
        "s-bob-1",
        "s-bob-2",
        "s-carol",
    ]
    assert router.resolve(Audience.targets, targets=["u-nobody"]) == []


@pytest.mark.asyncio
async def test_publish_follows_table_order(populated: SessionStore, router, emitter) -> None:
    sent = await router.publish(
        "availableOther",
        targets=["u-carol"],
        ack=True,
        delta={"userId": "u-carol", "newData": {"isAvailable": True}},
    )

    assert sent == 5
    assert emitter.frames[0] == ("available", True, "s-carol")
    assert [e for e, _, _ in emitter.frames[1:]] == ["updateOtherDispatchUser"] * 4


@pytest.mark.asyncio
async def test_bare_event_has_no_payload(populated: SessionStore, router, emitter) -> None:
    await router.publish("deleteUser", targets=["u-bob"], delta={"deleted": True, "userId": "u-bob"})
    assert emitter.named("disconnectUser") == [(None, "s-bob-1"), (None, "s-bob-2")]


@pytest.mark.asyncio
async def test_publish_to_departed_sender_is_silent(populated: SessionStore, router, emitter) -> None:
    populated.remove("s-carol")
    sent = await router.publish("getAllUsers", sender="s-carol", users=[])
    assert sent == 0
    assert emitter.frames == []


@pytest.mark.asyncio
async def test_admin_audience_with_custom_table(populated: SessionStore, emitter) -> None:
    router = BroadcastRouter(
        sessions=populated,
        emit=emitter,
        routes={"alert": (Route(Audience.admins, "alert", "text"),)},
    )
    await router.publish("alert", text="check radio")
    assert emitter.frames == [("alert", "check radio", "s-admin")]


@pytest.mark.asyncio
async def test_unknown_command_and_missing_payload(populated: SessionStore, router) -> None:
    with pytest.raises(KeyError):
        await router.publish("nope")
    with pytest.raises(KeyError):
        await router.publish("available", sender="s-bob-1", ack=True)


@pytest.mark.asyncio
async def test_each_route_is_emitted_once_for_all_recipients(populated: SessionStore) -> None:
    calls: list[tuple[str, object, list[str]]] = []

    async def emit(event, data, handles) -> None:
        calls.append((event, data, handles))

    router = BroadcastRouter(sessions=populated, emit=emit)
    sent = await router.publish("editInfos", text="storm warning")

    assert sent == 4
    assert calls == [("editInfos", "storm warning", ["s-admin", "s-bob-1", "s-bob-2", "s-carol"])]


@pytest.mark.asyncio
async def test_socketio_emitter_sends_one_packet_per_route() -> None:
    class FakeServer:
        def __init__(self) -> None:
            self.emitted: list[tuple[str, object, object]] = []

        async def emit(self, event, data, to=None) -> None:
            self.emitted.append((event, data, to))

    sio = FakeServer()
    await socketio_emitter(sio)("editInfos", "hello", ["s1", "s2"])

    assert sio.emitted == [("editInfos", "hello", ["s1", "s2"])]
