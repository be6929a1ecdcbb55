"""
Protected user routes.

Every route here sits behind authenticate_token; handlers read the caller's
identity from the dependency and only ever return that caller's data.
Secret account fields (two-factor secret, master password) are never
serialized.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..accounts import AccountStore
from ..auth.discord import avatar_url
from ..config import Settings
from ..dependencies import authenticate_token, get_account_store, get_app_settings
from ..models import AccountProfile, PasswordRecord, SessionIdentity

logger = logging.getLogger(__name__)

users_router = APIRouter(
    prefix="/api",
    tags=["users"],
    dependencies=[Depends(authenticate_token)],
)


def _account_not_found() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Account not found.",
    )


@users_router.get("/user/me", response_model=AccountProfile, response_model_by_alias=True)
async def get_me(
    size: int = Query(64, description="Avatar size in pixels (16-4096)"),
    identity: SessionIdentity = Depends(authenticate_token),
    accounts: AccountStore = Depends(get_account_store),
    settings: Settings = Depends(get_app_settings),
) -> AccountProfile:
    """Profile of the signed-in user."""
    account = await accounts.find_by_id(identity.id)
    if account is None:
        logger.warning("Valid token for unknown account", extra={"user_id": identity.id})
        raise _account_not_found()

    return AccountProfile(
        id=account.id,
        username=account.username,
        avatar=account.avatar,
        avatar_url=avatar_url(settings.DISCORD_CDN_URL, account.id, account.avatar, size),
        created_at=account.created_at,
        two_factor_enabled=account.two_factor_enabled,
    )


@users_router.get("/passwords", response_model=List[PasswordRecord], response_model_by_alias=True)
async def list_passwords(
    identity: SessionIdentity = Depends(authenticate_token),
    accounts: AccountStore = Depends(get_account_store),
) -> List[PasswordRecord]:
    passwords = await accounts.list_passwords(identity.id)
    if passwords is None:
        raise _account_not_found()
    return passwords
