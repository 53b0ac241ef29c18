"""
dispatch_console.db.models

Persistence schema: one table per document collection.

Responsibilities:
- Define the five collections (users, badges, ranks, services, infos).
- Give every row an opaque store-assigned id plus an insertion-order sequence.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


def new_document_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(UTC)


class DocumentMixin:
    # `seq` orders documents by insertion; `id` is what clients and rooms see.
    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(
        String(32), unique=True, index=True, nullable=False, default=new_document_id
    )


class User(DocumentMixin, Base):
    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(128), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    bank: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    phone: Mapped[str] = mapped_column(String(32), nullable=False, default="")

    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    note: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Lists of tag ids; always overwritten wholesale.
    badges: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    ranks: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    services: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)


class Badge(DocumentMixin, Base):
    __tablename__ = "badges"

    label: Mapped[str] = mapped_column(String(128), nullable=False)
    color: Mapped[str] = mapped_column(String(32), nullable=False)


class Rank(DocumentMixin, Base):
    __tablename__ = "ranks"

    label: Mapped[str] = mapped_column(String(128), nullable=False)
    color: Mapped[str] = mapped_column(String(32), nullable=False)


class Service(DocumentMixin, Base):
    __tablename__ = "services"

    label: Mapped[str] = mapped_column(String(128), nullable=False)
    color: Mapped[str] = mapped_column(String(32), nullable=False)


class Info(DocumentMixin, Base):
    """Append-only; the current info is the row with the highest `seq`."""

    __tablename__ = "infos"

    text: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


# --- Module Notes -----------------------------------------------------------
# Deleting a badge/rank/service does not touch users' id lists; stale ids are the
# client's to ignore.
