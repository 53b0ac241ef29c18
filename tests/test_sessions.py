from __future__ import annotations

from dispatch_console.auth.models import Identity
from dispatch_console.realtime.sessions import ADMIN_ROOM, SessionStore, room_for_user


def test_register_and_join_rooms() -> None:
    store = SessionStore()
    store.register("sid-1", Identity(user_id="u1", is_admin=True))
    store.join_room("sid-1", room_for_user("u1"))
    store.join_room("sid-1", ADMIN_ROOM)

    assert "sid-1" in store
    assert store.sessions_in("u1") == {"sid-1"}
    assert store.sessions_in(ADMIN_ROOM) == {"sid-1"}
    assert store.get("sid-1").rooms == {"u1", ADMIN_ROOM}


def test_identity_may_hold_several_handles() -> None:
    store = SessionStore()
    for sid in ("a", "b"):
        store.register(sid, Identity(user_id="u1"))
        store.join_room(sid, room_for_user("u1"))

    assert store.sessions_for("u1") == {"a", "b"}
    assert store.sessions_in("u1") == {"a", "b"}

    store.remove("a")
    assert store.sessions_for("u1") == {"b"}
    assert store.sessions_in("u1") == {"b"}


def test_remove_clears_every_index() -> None:
    store = SessionStore()
    store.register("sid-1", Identity(user_id="u1", is_admin=True))
    store.join_room("sid-1", "u1")
    store.join_room("sid-1", ADMIN_ROOM)

    removed = store.remove("sid-1")

    assert removed is not None and removed.user_id == "u1"
    assert len(store) == 0
    assert store.sessions_in("u1") == frozenset()
    assert store.sessions_in(ADMIN_ROOM) == frozenset()
    assert store.sessions_for("u1") == frozenset()
    assert store.remove("sid-1") is None


def test_join_room_for_unknown_handle_is_a_noop() -> None:
    store = SessionStore()
    assert store.join_room("ghost", "u1") is False
    assert store.sessions_in("u1") == frozenset()


def test_enumeration_is_a_snapshot() -> None:
    store = SessionStore()
    for sid in ("a", "b", "c"):
        store.register(sid, Identity(user_id=sid))

    seen = []
    for handle in store.all_handles():
        store.remove(handle)
        seen.append(handle)

    assert sorted(seen) == ["a", "b", "c"]
    assert len(store) == 0


def test_re_register_same_handle_replaces_session() -> None:
    store = SessionStore()
    store.register("sid", Identity(user_id="u1"))
    store.join_room("sid", "u1")
    store.register("sid", Identity(user_id="u2"))

    assert store.get("sid").user_id == "u2"
    assert store.sessions_in("u1") == frozenset()
    assert store.sessions_for("u1") == frozenset()
