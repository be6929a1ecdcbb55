"""
Discord OAuth2 client.

Stateless protocol client for the two calls the login callback makes:

1. Exchange the authorization code for an access token
2. Fetch the signed-in user's profile with that token

Every failure talking to Discord surfaces as UpstreamProviderError carrying
the raw response body when one was received, so callers can tell provider
trouble apart from their own bugs. Nothing is retried.
"""

import logging
from typing import Optional
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError

from ..config import Settings
from ..models import DiscordProfile, DiscordToken

logger = logging.getLogger(__name__)

MIN_AVATAR_SIZE = 16
MAX_AVATAR_SIZE = 4096


# =============================================================================
# Exceptions
# =============================================================================

class UpstreamProviderError(Exception):
    """
    A call to Discord failed or returned something unusable.

    Attributes:
        status_code: HTTP status returned by Discord, None for transport errors
        payload: Raw response body from Discord, None if nothing was received
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        payload: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


# =============================================================================
# Client
# =============================================================================

class DiscordClient:
    """
    Discord OAuth2 and user API client.

    Args:
        settings: Application settings (client credentials, API base URL, timeout)
        transport: Optional httpx transport, used by tests to stub Discord
    """

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client_id = settings.DISCORD_CLIENT_ID
        self._client_secret = settings.DISCORD_CLIENT_SECRET
        self._api_base = settings.DISCORD_API_BASE_URL.rstrip("/")
        self._scope = settings.DISCORD_SCOPE
        self._timeout = settings.DISCORD_TIMEOUT_SECONDS
        self._transport = transport

    @property
    def token_endpoint(self) -> str:
        return f"{self._api_base}/oauth2/token"

    @property
    def profile_endpoint(self) -> str:
        return f"{self._api_base}/users/@me"

    def authorization_url(self, redirect_uri: str) -> str:
        """
        Build the Discord consent page URL.

        Args:
            redirect_uri: Callback URL; must match the one later sent to exchange_code

        Returns:
            Absolute authorization URL with the query string encoded
        """
        params = {
            "client_id": self._client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "scope": self._scope,
        }
        return f"{self._api_base}/oauth2/authorize?{urlencode(params)}"

    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, timeout=self._timeout)

    async def exchange_code(self, code: str, redirect_uri: str) -> DiscordToken:
        """
        Exchange an authorization code for an access token.

        Args:
            code: Authorization code from the callback query string
            redirect_uri: The redirect URI used in the authorization request

        Returns:
            Parsed token response

        Raises:
            UpstreamProviderError: On transport failure, non-2xx status,
                                   or a response without access_token
        """
        payload = {
            "client_id": self._client_id,
            "client_secret": self._client_secret,
            "code": code,
            "grant_type": "authorization_code",
            "redirect_uri": redirect_uri,
            "scope": self._scope,
        }

        try:
            async with self._http() as client:
                response = await client.post(
                    self.token_endpoint,
                    data=payload,
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
        except httpx.HTTPError as e:
            raise UpstreamProviderError(f"Token exchange request failed: {e}") from e

        body = self._check_response(response, "Token exchange")

        try:
            return DiscordToken.model_validate(body)
        except ValidationError as e:
            raise UpstreamProviderError(
                "Token response missing access_token",
                status_code=response.status_code,
                payload=response.text,
            ) from e

    async def fetch_profile(self, access_token: str) -> DiscordProfile:
        """
        Fetch the current user's profile.

        Raises:
            UpstreamProviderError: On transport failure, non-2xx status,
                                   or a profile without id/username
        """
        try:
            async with self._http() as client:
                response = await client.get(
                    self.profile_endpoint,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
        except httpx.HTTPError as e:
            raise UpstreamProviderError(f"Profile request failed: {e}") from e

        body = self._check_response(response, "Profile fetch")

        try:
            return DiscordProfile.model_validate(body)
        except ValidationError as e:
            raise UpstreamProviderError(
                "Profile response missing id or username",
                status_code=response.status_code,
                payload=response.text,
            ) from e

    @staticmethod
    def _check_response(response: httpx.Response, action: str) -> dict:
        if not response.is_success:
            logger.warning(
                f"{action} rejected by Discord with status {response.status_code}",
                extra={"status_code": response.status_code},
            )
            raise UpstreamProviderError(
                f"{action} failed with status {response.status_code}",
                status_code=response.status_code,
                payload=response.text or None,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise UpstreamProviderError(
                f"{action} returned a non-JSON body",
                status_code=response.status_code,
                payload=response.text or None,
            ) from e

        if not isinstance(body, dict):
            raise UpstreamProviderError(
                f"{action} returned an unexpected body",
                status_code=response.status_code,
                payload=response.text,
            )
        return body


# =============================================================================
# Helpers
# =============================================================================

def avatar_url(
    cdn_base: str,
    user_id: str,
    avatar: Optional[str],
    size: int = 64,
) -> Optional[str]:
    """
    Discord CDN URL for a user's avatar hash.

    Args:
        cdn_base: CDN base URL (DISCORD_CDN_URL)
        user_id: Discord user ID
        avatar: Avatar hash, or None when the user has no custom avatar
        size: Requested pixel size, clamped to Discord's 16..4096 range

    Returns:
        Image URL, or None if there is no avatar hash
    """
    if not avatar:
        return None
    clamped = max(MIN_AVATAR_SIZE, min(size, MAX_AVATAR_SIZE))
    return f"{cdn_base.rstrip('/')}/avatars/{user_id}/{avatar}?size={clamped}"
