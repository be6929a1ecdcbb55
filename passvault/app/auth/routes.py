"""
Authentication routes for Discord login and callback handling.

This module implements the OAuth 2.0 authorization code flow with Discord:

    GET /api/auth           -> 302 to Discord's consent page
    GET /api/auth/callback  -> exchange code, upsert account, issue session JWT,
                               302 to <client>/auth/callback?token=<jwt>

The callback never redirects on failure. Denied consent is a 403, a missing
code is a 400, and anything that goes wrong while talking to Discord or the
database is a 500 with a JSON {"message": ...} body.
"""

import logging
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse

from ..accounts import AccountStore
from ..config import Settings
from ..dependencies import (
    get_account_store,
    get_app_settings,
    get_discord_client,
    get_token_issuer,
)
from ..models import Account, ErrorResponse, SessionIdentity
from .discord import DiscordClient, UpstreamProviderError
from .session import SessionTokenIssuer

logger = logging.getLogger(__name__)

ACCESS_DENIED = "access_denied"


# =============================================================================
# Router Setup
# =============================================================================

auth_router = APIRouter(
    prefix="/api/auth",
    tags=["authentication"],
)


# =============================================================================
# Login Endpoint
# =============================================================================

@auth_router.get("", response_class=RedirectResponse)
async def login(
    settings: Settings = Depends(get_app_settings),
    discord: DiscordClient = Depends(get_discord_client),
):
    """
    Redirect the browser to Discord's authorization page.

    The redirect URI is derived from the environment-selected server base
    URL and must be registered on the Discord application.
    """
    authorization_url = discord.authorization_url(settings.discord_redirect_uri)
    return RedirectResponse(url=authorization_url, status_code=status.HTTP_302_FOUND)


# =============================================================================
# Callback Endpoint
# =============================================================================

@auth_router.get(
    "/callback",
    responses={500: {"model": ErrorResponse, "description": "Discord or account storage failure"}},
)
async def login_callback(
    code: Optional[str] = Query(None, description="Authorization code from Discord"),
    error: Optional[str] = Query(None, description="Error code if authorization failed"),
    error_description: Optional[str] = Query(None, description="Error description"),
    settings: Settings = Depends(get_app_settings),
    discord: DiscordClient = Depends(get_discord_client),
    accounts: AccountStore = Depends(get_account_store),
    issuer: SessionTokenIssuer = Depends(get_token_issuer),
):
    """
    Handle the OAuth callback from Discord.

    This endpoint:
    1. Rejects denied consent (403) and requests without a code (400)
    2. Exchanges the authorization code for an access token
    3. Fetches the Discord profile
    4. Creates the local account or refreshes its display fields
    5. Issues a session JWT and redirects to the web client with it

    Query Parameters:
        code: Authorization code from Discord
        error: Error code if the user declined or Discord failed
        error_description: Human-readable error description

    Returns:
        RedirectResponse to the client callback page, or an error response
    """
    if error == ACCESS_DENIED:
        logger.info("User denied Discord authorization")
        return PlainTextResponse(
            f"Access denied: {error_description or error}",
            status_code=status.HTTP_403_FORBIDDEN,
        )

    if not code:
        return PlainTextResponse(
            "Error: No code received.",
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    try:
        token = await discord.exchange_code(code, settings.discord_redirect_uri)
        profile = await discord.fetch_profile(token.access_token)

        await accounts.upsert(Account.from_profile(profile))

        session_token = issuer.issue(SessionIdentity.from_profile(profile))

    except UpstreamProviderError as e:
        logger.error(
            f"Error during authentication (Discord): {e}; payload={e.payload!r}",
            extra={"status_code": e.status_code, "payload": e.payload},
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(message=e.payload or "Error during authentication with Discord").model_dump(),
        )
    except Exception as e:
        logger.error(f"Error during authentication: {e}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(message=str(e) or "Error during authentication").model_dump(),
        )

    logger.info("User logged in", extra={"user_id": profile.id})

    client_redirect_url = (
        f"{settings.client_base_url}/auth/callback?{urlencode({'token': session_token})}"
    )
    return RedirectResponse(url=client_redirect_url, status_code=status.HTTP_302_FOUND)
