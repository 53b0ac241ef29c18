from __future__ import annotations

import pytest

from dispatch_console.db.repositories.state import StateRepository
from dispatch_console.errors import StoreError


@pytest.mark.asyncio
async def test_insert_assigns_opaque_ids(repository: StateRepository) -> None:
    a = await repository.badges.insert({"label": "Alpha", "color": "#f00"})
    b = await repository.badges.insert({"label": "Bravo", "color": "#0f0"})

    assert a["_id"] != b["_id"]
    assert len(a["_id"]) == 32
    assert a == {"_id": a["_id"], "label": "Alpha", "color": "#f00"}
    assert [d["label"] for d in await repository.badges.find_many()] == ["Alpha", "Bravo"]


@pytest.mark.asyncio
async def test_insert_ignores_caller_supplied_id(repository: StateRepository) -> None:
    doc = await repository.ranks.insert({"_id": "chosen", "label": "Sgt", "color": "blue"})
    assert doc["_id"] != "chosen"


@pytest.mark.asyncio
async def test_user_defaults(repository: StateRepository) -> None:
    doc = await repository.users.insert({"username": "eve"})
    assert doc["isAdmin"] is False
    assert doc["isAvailable"] is False
    assert doc["badges"] == [] and doc["ranks"] == [] and doc["services"] == []


@pytest.mark.asyncio
async def test_update_one_overwrites_fields_wholesale(repository: StateRepository, users) -> None:
    bob = users["bob"]
    await repository.users.update_one({"_id": bob["_id"]}, {"badges": ["p1", "p2"]})
    assert await repository.users.update_one({"_id": bob["_id"]}, {"badges": ["p3"], "note": "on duty"})

    stored = await repository.users.find_one({"_id": bob["_id"]})
    assert stored["badges"] == ["p3"]
    assert stored["note"] == "on duty"
    assert stored["username"] == "bob"


@pytest.mark.asyncio
async def test_update_one_reports_miss(repository: StateRepository, users) -> None:
    assert await repository.users.update_one({"_id": "missing"}, {"note": "x"}) is False


@pytest.mark.asyncio
async def test_unknown_patch_fields_are_ignored(repository: StateRepository, users) -> None:
    bob = users["bob"]
    assert await repository.users.update_one({"_id": bob["_id"]}, {"shoeSize": 44, "note": "n"})
    stored = await repository.users.find_one({"_id": bob["_id"]})
    assert "shoeSize" not in stored
    assert stored["note"] == "n"


@pytest.mark.asyncio
async def test_update_many_with_in_filter(repository: StateRepository, users) -> None:
    ids = [users["bob"]["_id"], users["carol"]["_id"], "missing"]
    count = await repository.users.update_many({"_id": {"$in": ids}}, {"isAvailable": True})

    assert count == 2
    available = await repository.users.find_many({"isAvailable": True})
    assert sorted(d["username"] for d in available) == ["bob", "carol"]


@pytest.mark.asyncio
async def test_update_many_with_empty_patch_counts_matches(repository: StateRepository, users) -> None:
    assert await repository.users.update_many({"isAdmin": False}, {}) == 3


@pytest.mark.asyncio
async def test_delete_one(repository: StateRepository, users) -> None:
    dave = users["dave"]
    assert await repository.users.delete_one({"_id": dave["_id"]}) is True
    assert await repository.users.find_one({"_id": dave["_id"]}) is None
    assert await repository.users.delete_one({"_id": dave["_id"]}) is False


@pytest.mark.asyncio
async def test_latest_info_is_newest_insert(repository: StateRepository) -> None:
    assert await repository.latest_info() is None
    for text in ("first", "second", "third"):
        await repository.infos.insert({"text": text})

    latest = await repository.latest_info()
    assert latest["text"] == "third"
    assert len(await repository.infos.find_many()) == 3


@pytest.mark.asyncio
async def test_unknown_filter_field_is_a_store_error(repository: StateRepository) -> None:
    with pytest.raises(StoreError):
        await repository.users.find_many({"shoeSize": 44})


@pytest.mark.asyncio
async def test_list_fields_are_not_filterable(repository: StateRepository) -> None:
    with pytest.raises(StoreError):
        await repository.users.find_many({"badges": ["p1"]})


@pytest.mark.asyncio
async def test_unsupported_operator_is_a_store_error(repository: StateRepository) -> None:
    with pytest.raises(StoreError):
        await repository.users.find_many({"_id": {"$ne": "x"}})


@pytest.mark.parametrize("members", [5, "bob", None])
@pytest.mark.asyncio
async def test_in_operator_needs_a_list(repository: StateRepository, members) -> None:
    with pytest.raises(StoreError):
        await repository.users.find_many({"username": {"$in": members}})


def test_collection_lookup(repository: StateRepository) -> None:
    assert repository.collection("ranks") is repository.ranks
    with pytest.raises(KeyError):
        repository.collection("nope")
