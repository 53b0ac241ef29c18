"""
dispatch_console.realtime.projections

Client-facing views of stored documents.

Responsibilities:
- Project users without secrets (the password hash never leaves the store).
- Project badge/rank/service tags and the full dispatch snapshot.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from dispatch_console.db.repositories.documents import Document


def project_user(doc: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "id": doc["_id"],
        "username": doc.get("username"),
        "isAdmin": bool(doc.get("isAdmin")),
        "isAvailable": bool(doc.get("isAvailable")),
        "phone": doc.get("phone"),
        "bank": doc.get("bank"),
        "note": doc.get("note"),
        "badges": list(doc.get("badges") or []),
        "ranks": list(doc.get("ranks") or []),
        "services": list(doc.get("services") or []),
    }


def project_users(docs: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
    return [project_user(d) for d in docs]


def project_tag(doc: Mapping[str, Any]) -> dict[str, Any]:
    return {"_id": doc["_id"], "label": doc.get("label"), "color": doc.get("color")}


def project_tags(docs: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
    return [project_tag(d) for d in docs]


def dispatch_snapshot(
    *,
    users: Iterable[Document],
    badges: Iterable[Document],
    ranks: Iterable[Document],
    services: Iterable[Document],
) -> dict[str, Any]:
    return {
        "members": project_users(users),
        "badges": project_tags(badges),
        "ranks": project_tags(ranks),
        "services": project_tags(services),
    }


def user_delta(user_id: str, new_data: Mapping[str, Any]) -> dict[str, Any]:
    return {"userId": user_id, "newData": dict(new_data)}


def user_deleted(user_id: str) -> dict[str, Any]:
    return {"deleted": True, "userId": user_id}
