"""
Authentication Package

Discord sign-in and session tokens for the vault API.

Key responsibilities:
- OAuth login redirect and callback handling
- Authorization code exchange and profile lookup against Discord
- Session JWT issuance and verification

Modules:
- routes: Public authentication endpoints (/api/auth, /api/auth/callback)
- discord: Discord OAuth2 / user API client
- session: Session JWT creation and validation logic

The authentication flow:
1. Client opens /api/auth and is redirected to Discord
2. User approves access on Discord
3. Discord redirects back to /api/auth/callback with a code
4. The service exchanges the code, upserts the account, issues a session JWT
5. Client sends the JWT as a Bearer token on every vault request
"""

from .discord import DiscordClient, UpstreamProviderError
from .session import (
    InvalidSignature,
    MalformedToken,
    SessionTokenError,
    SessionTokenIssuer,
    TokenExpired,
)

__all__ = [
    "DiscordClient",
    "UpstreamProviderError",
    "SessionTokenIssuer",
    "SessionTokenError",
    "InvalidSignature",
    "MalformedToken",
    "TokenExpired",
]
