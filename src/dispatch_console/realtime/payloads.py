"""
dispatch_console.realtime.payloads

Inbound command payload models.

Responsibilities:
- Validate the shape of each command's payload before the gate runs.
- Keep wire field casing (`isAvailable`, `newData`, `badgeId`, ...) via aliases.
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StrictBool, field_validator

_SCALARS = (str, int, float, bool)


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class UserPatch(_Payload):
    username: str | None = Field(default=None, min_length=1, max_length=128)
    phone: str | None = Field(default=None, max_length=32)
    bank: str | None = Field(default=None, max_length=64)
    note: str | None = None
    is_admin: StrictBool | None = Field(default=None, alias="isAdmin")
    is_available: StrictBool | None = Field(default=None, alias="isAvailable")
    badges: list[str] | None = None
    ranks: list[str] | None = None
    services: list[str] | None = None

    def as_patch(self) -> dict[str, Any]:
        # Explicit nulls are treated as "not sent"; stored fields are never nulled out.
        dumped = self.model_dump(by_alias=True, exclude_unset=True)
        return {k: v for k, v in dumped.items() if v is not None}


class AvailablePayload(_Payload):
    state: StrictBool


class AvailableOtherPayload(_Payload):
    id: str = Field(min_length=1)
    state: StrictBool


class UpdateOtherUserPayload(_Payload):
    id: str = Field(min_length=1)
    new_data: UserPatch = Field(alias="newData")


class UpdateMultiUsersPayload(_Payload):
    filter: dict[str, Any] = Field(default_factory=dict)
    new_data: UserPatch = Field(alias="newData")

    @field_validator("filter")
    @classmethod
    def _filter_shape(cls, value: dict[str, Any]) -> dict[str, Any]:
        # Each value is a scalar, or {"$in": [scalar, ...]}.
        for key, cond in value.items():
            if isinstance(cond, dict):
                members = cond.get("$in")
                if set(cond) != {"$in"} or not isinstance(members, list):
                    raise ValueError(f"filter on {key!r} must be a value or {{\"$in\": [...]}}")
                if not all(isinstance(m, _SCALARS) for m in members):
                    raise ValueError(f"\"$in\" on {key!r} takes plain values only")
            elif not isinstance(cond, _SCALARS):
                raise ValueError(f"filter on {key!r} must be a plain value")
        return value


class StartPatrolPayload(_Payload):
    patrol: str = Field(min_length=1)
    mates: list[str] = Field(default_factory=list)


class DeleteUserPayload(_Payload):
    id: str = Field(min_length=1, validation_alias=AliasChoices("_id", "id"))


class TagCreatePayload(_Payload):
    label: str = Field(min_length=1, max_length=128)
    color: str = Field(min_length=1, max_length=32)


class TagPatch(_Payload):
    label: str | None = Field(default=None, min_length=1, max_length=128)
    color: str | None = Field(default=None, min_length=1, max_length=32)

    def as_patch(self) -> dict[str, Any]:
        dumped = self.model_dump(exclude_unset=True)
        return {k: v for k, v in dumped.items() if v is not None}


class TagRefPayload(_Payload):
    tag_id: str = Field(
        min_length=1, validation_alias=AliasChoices("badgeId", "rankId", "serviceId")
    )


class TagEditPayload(TagRefPayload):
    data: TagPatch = Field(default_factory=TagPatch)


# --- Module Notes -----------------------------------------------------------
# `editInfos` carries a bare string and the read commands carry nothing, so they
# have no model here; the dispatcher checks those inline.
