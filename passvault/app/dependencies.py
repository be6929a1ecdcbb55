"""
FastAPI dependencies.

Components are built once by create_app() and kept on app.state; the
getters below hand them to route handlers. authenticate_token guards every
protected router:

    router = APIRouter(dependencies=[Depends(authenticate_token)])
"""

import logging
from typing import Optional

from fastapi import Header, HTTPException, Request, status

from .accounts import AccountStore
from .auth.discord import DiscordClient
from .auth.session import SessionTokenError, SessionTokenIssuer
from .config import Settings
from .models import SessionIdentity

logger = logging.getLogger(__name__)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_discord_client(request: Request) -> DiscordClient:
    return request.app.state.discord_client


def get_account_store(request: Request) -> AccountStore:
    return request.app.state.account_store


def get_token_issuer(request: Request) -> SessionTokenIssuer:
    return request.app.state.token_issuer


def extract_token_from_header(authorization: Optional[str]) -> str:
    """
    Extract Bearer token from Authorization header.

    Args:
        authorization: Authorization header value

    Returns:
        Extracted token string

    Raises:
        HTTPException: 401 if the header is missing or not "Bearer <token>"
    """
    if not authorization:
        logger.warning("No token found in authorization header")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    parts = authorization.split()

    if len(parts) != 2 or parts[0].lower() != "bearer":
        logger.warning("Malformed authorization header")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return parts[1]


def authenticate_token(
    request: Request,
    authorization: Optional[str] = Header(None),
) -> SessionIdentity:
    """
    Verify the session JWT and attach the identity to the request.

    On success the identity is stored on request.state.identity and also
    returned, so handlers may take it as a dependency directly.

    Raises:
        HTTPException: 401 without a bearer token, 403 if verification fails
    """
    token = extract_token_from_header(authorization)
    issuer: SessionTokenIssuer = request.app.state.token_issuer

    try:
        identity = issuer.verify(token)
    except SessionTokenError as e:
        logger.warning(
            f"Rejected session token: {type(e).__name__}",
            extra={"path": request.url.path},
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid token.",
        )

    request.state.identity = identity
    return identity
