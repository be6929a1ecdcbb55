"""
Data Models Module

Pydantic models shared across the service.

Models are organized by functional area:
- Discord models (token exchange response, user profile)
- Session models (claims carried in the session JWT)
- Account models (stored user record, stored password entries)
- Response models (public profile, errors)

Stored records use the camelCase keys the web client and the database
already use; the Python attribute names are snake_case with aliases.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ============================================================================
# Discord Models
# ============================================================================

class DiscordToken(BaseModel):
    """Token endpoint response. Only access_token is used."""
    model_config = ConfigDict(extra="ignore")

    access_token: str = Field(..., min_length=1)
    token_type: str = Field(default="Bearer")
    expires_in: Optional[int] = None
    refresh_token: Optional[str] = None
    scope: Optional[str] = None


class DiscordProfile(BaseModel):
    """Subset of the Discord /users/@me payload that identifies the user."""
    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1, description="Discord snowflake user ID")
    username: str = Field(..., description="Discord username")
    avatar: Optional[str] = Field(None, description="Avatar hash, null when the user has none")


# ============================================================================
# Session Models
# ============================================================================

class SessionIdentity(BaseModel):
    """
    Claims embedded in a session JWT.

    The token payload is exactly these three fields.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    username: str
    avatar: Optional[str] = None

    @classmethod
    def from_profile(cls, profile: DiscordProfile) -> "SessionIdentity":
        return cls(id=profile.id, username=profile.username, avatar=profile.avatar)


# ============================================================================
# Account Models
# ============================================================================

class PasswordRecord(BaseModel):
    """A credential entry stored under an account."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    title: str
    username: str
    password: str
    url: Optional[str] = None
    note: Optional[str] = None
    is_favorite: bool = Field(default=False, alias="isFavorite")
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    updated_at: Optional[str] = Field(default=None, alias="updatedAt")


class Account(BaseModel):
    """
    Local user record keyed by Discord user ID.

    username/avatar mirror Discord and are refreshed on every login. The
    remaining fields belong to this service and survive logins.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., min_length=1)
    username: str
    avatar: Optional[str] = None
    created_at: str = Field(default_factory=utc_now_iso, alias="createdAt")
    two_factor_enabled: bool = Field(default=False, alias="twoFactorEnabled")
    two_factor_secret: str = Field(default="", alias="twoFactorSecret")
    master_password: str = Field(default="", alias="masterPassword")
    passwords: List[PasswordRecord] = Field(default_factory=list)

    @classmethod
    def from_profile(cls, profile: DiscordProfile) -> "Account":
        """Default-initialized account for a first login."""
        return cls(id=profile.id, username=profile.username, avatar=profile.avatar)

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


# ============================================================================
# Response Models
# ============================================================================

class AccountProfile(BaseModel):
    """Public view of an account. Never includes secret fields."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    username: str
    avatar: Optional[str] = None
    avatar_url: Optional[str] = Field(None, alias="avatarUrl")
    created_at: str = Field(..., alias="createdAt")
    two_factor_enabled: bool = Field(..., alias="twoFactorEnabled")


class ErrorResponse(BaseModel):
    """Body of a failed login callback."""
    message: str
