"""
dispatch_console.auth.gate

Authorization gate for mutating commands.

Responsibilities:
- Hold the per-operation policy table.
- Decide allow/deny for an identity against a target user (or set of users).
- Strip fields an identity may not write on a user record.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable, Mapping
from typing import Any

from dispatch_console.auth.models import Identity
from dispatch_console.errors import AuthorizationDenied


class Operation(enum.StrEnum):
    read = "read"
    update_self = "update_self"
    update_other = "update_other"
    bulk_update = "bulk_update"
    patrol = "patrol"
    delete_user = "delete_user"
    edit_collection = "edit_collection"
    edit_infos = "edit_infos"


class Rule(enum.StrEnum):
    anyone = "anyone"
    self_only = "self_only"
    # The caller must be one of the affected users.
    member = "member"
    admin = "admin"


POLICY: Mapping[Operation, Rule] = {
    Operation.read: Rule.anyone,
    Operation.update_self: Rule.self_only,
    Operation.update_other: Rule.admin,
    Operation.bulk_update: Rule.admin,
    Operation.patrol: Rule.member,
    Operation.delete_user: Rule.admin,
    Operation.edit_collection: Rule.admin,
    Operation.edit_infos: Rule.admin,
}

# Never writable over the socket, whoever asks.
PROTECTED_USER_FIELDS = frozenset({"_id", "id", "password"})
ADMIN_ONLY_USER_FIELDS = frozenset({"isAdmin"})


class AuthorizationGate:
    def __init__(self, policy: Mapping[Operation, Rule] | None = None) -> None:
        self._policy = dict(POLICY if policy is None else policy)

    def authorize(
        self,
        identity: Identity,
        operation: Operation,
        target: str | Iterable[str] | None = None,
    ) -> bool:
        # Unknown operations fall through to the strictest rule.
        rule = self._policy.get(operation, Rule.admin)
        if rule is Rule.anyone:
            return True
        if rule is Rule.admin:
            return identity.is_admin
        if rule is Rule.self_only:
            return isinstance(target, str) and target == identity.user_id
        if rule is Rule.member:
            if target is None or isinstance(target, str):
                return target == identity.user_id
            return identity.user_id in set(target)
        return False

    def require(
        self,
        identity: Identity,
        operation: Operation,
        target: str | Iterable[str] | None = None,
    ) -> None:
        if not self.authorize(identity, operation, target):
            raise AuthorizationDenied(operation)

    def writable_user_fields(self, identity: Identity, patch: Mapping[str, Any]) -> dict[str, Any]:
        blocked = set(PROTECTED_USER_FIELDS)
        if not identity.is_admin:
            blocked |= ADMIN_ONLY_USER_FIELDS
        return {k: v for k, v in patch.items() if k not in blocked}


# --- Module Notes -----------------------------------------------------------
# Badge/rank/service/info edits and user deletion are admin-only across the board.
# Starting a patrol is open to any member of the patrol, which always includes the caller.
