"""
dispatch_console.api.routers.dev_auth

Token minting for local clients and manual testing; disabled in prod.

A token can be minted for an arbitrary `userId`, or for a stored user looked up by
`username`, in which case the id and admin flag come from the record.
"""

from __future__ import annotations

from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field, model_validator
from starlette.status import HTTP_404_NOT_FOUND

from dispatch_console.api.deps import repository_dep, settings_dep
from dispatch_console.auth.jwt import JwtConfig, issue_token
from dispatch_console.db.repositories.state import StateRepository
from dispatch_console.settings import Settings

router = APIRouter(prefix="/v1/dev", tags=["dev"])


class DevTokenRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str | None = Field(default=None, min_length=1, max_length=64, alias="userId")
    username: str | None = Field(default=None, min_length=1, max_length=128)
    is_admin: bool = Field(default=False, alias="isAdmin")
    ttl_minutes: int = Field(default=60, ge=1, le=24 * 60)

    @model_validator(mode="after")
    def _one_subject(self) -> DevTokenRequest:
        if (self.user_id is None) == (self.username is None):
            raise ValueError("give exactly one of userId or username")
        return self


class DevTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str = Field(serialization_alias="userId")
    is_admin: bool = Field(serialization_alias="isAdmin")


@router.post("/token", response_model=DevTokenResponse, response_model_by_alias=True)
async def mint_dev_token(
    body: DevTokenRequest,
    settings: Settings = Depends(settings_dep),
    repository: StateRepository = Depends(repository_dep),
) -> DevTokenResponse:
    if settings.env == "prod":
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Not found")

    user_id, is_admin = body.user_id, body.is_admin
    if body.username is not None:
        user = await repository.users.find_one({"username": body.username})
        if user is None:
            raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Unknown user")
        user_id, is_admin = user["_id"], bool(user["isAdmin"])

    token = issue_token(
        cfg=JwtConfig.from_settings(settings),
        user_id=user_id,
        is_admin=is_admin,
        ttl=timedelta(minutes=body.ttl_minutes),
    )
    return DevTokenResponse(access_token=token, user_id=user_id, is_admin=is_admin)
