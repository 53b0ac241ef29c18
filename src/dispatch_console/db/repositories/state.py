"""
dispatch_console.db.repositories.state

State repository: the five collections behind one facade.

Responsibilities:
- Wire each ORM model to its wire field names.
- Provide the "current info" read (newest InfoNote).
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from dispatch_console.db.models import Badge, Info, Rank, Service, User
from dispatch_console.db.repositories.documents import Document, DocumentCollection

USER_FIELDS = {
    "_id": "id",
    "username": "username",
    "password": "password_hash",
    "bank": "bank",
    "phone": "phone",
    "isAdmin": "is_admin",
    "isAvailable": "is_available",
    "note": "note",
    "badges": "badges",
    "ranks": "ranks",
    "services": "services",
}
USER_LIST_FIELDS = frozenset({"badges", "ranks", "services"})

TAG_FIELDS = {"_id": "id", "label": "label", "color": "color"}

INFO_FIELDS = {"_id": "id", "text": "text"}


class StateRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.users = DocumentCollection(
            session_factory, User, USER_FIELDS, name="users", list_fields=USER_LIST_FIELDS
        )
        self.badges = DocumentCollection(session_factory, Badge, TAG_FIELDS, name="badges")
        self.ranks = DocumentCollection(session_factory, Rank, TAG_FIELDS, name="ranks")
        self.services = DocumentCollection(session_factory, Service, TAG_FIELDS, name="services")
        self.infos = DocumentCollection(session_factory, Info, INFO_FIELDS, name="infos")

    def collection(self, name: str) -> DocumentCollection:
        coll = getattr(self, name, None)
        if not isinstance(coll, DocumentCollection):
            raise KeyError(name)
        return coll

    async def latest_info(self) -> Document | None:
        return await self.infos.find_one({}, newest_first=True)
