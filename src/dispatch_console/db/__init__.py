"""
dispatch_console.db

Persistence package (SQLAlchemy async over aiosqlite).

Responsibilities:
- ORM tables for users, badges, ranks, services and infos.
- Engine/session setup and schema bootstrap.
- Document-style repositories on top.
"""
