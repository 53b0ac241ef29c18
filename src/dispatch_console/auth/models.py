"""
dispatch_console.auth.models

Auth domain models.

Responsibilities:
- Define the authenticated identity type (`Identity`) bound to a session.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Identity:
    """
    Authenticated caller identity, derived from token claims only.
    Immutable for the lifetime of the session it is bound to.
    """

    user_id: str
    is_admin: bool = False


# --- Module Notes -----------------------------------------------------------
# Admin rights revoked in the store take effect on the next connection, not mid-session.
