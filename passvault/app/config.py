"""
Configuration module for the passvault API service.

This module uses Pydantic Settings to load and validate environment variables
for Discord OAuth, session JWT signing, deployment base URLs, and CORS.

Environment variables are loaded from .env file or system environment. The
resulting Settings object is built once at process start and handed to each
component explicitly; nothing in the package reads the environment at import
time.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEVELOPMENT = "DEVELOPMENT"
PRODUCTION = "PRODUCTION"

CALLBACK_PATH = "/api/auth/callback"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Covers the Discord OAuth application, session JWT signing, and the
    development/production base URLs used to build redirect targets.
    """

    # =========================================================================
    # Session JWT Configuration
    # =========================================================================

    JWT_SECRET: str = Field(
        ...,
        description="Secret key for signing session JWTs (must be cryptographically secure)",
        min_length=32,
    )

    JWT_ALGORITHM: str = Field(
        default="HS256",
        description="JWT signing algorithm (HS256, HS384, or HS512)",
    )

    SESSION_JWT_EXPIRY_MINUTES: Optional[int] = Field(
        default=None,
        description="Session JWT lifetime in minutes. Unset means tokens never expire.",
        ge=1,
    )

    # =========================================================================
    # Discord OAuth Configuration
    # =========================================================================

    DISCORD_CLIENT_ID: str = Field(
        ...,
        description="Discord application client ID",
        min_length=1,
    )

    DISCORD_CLIENT_SECRET: str = Field(
        ...,
        description="Discord application client secret",
        min_length=1,
    )

    DISCORD_API_BASE_URL: str = Field(
        default="https://discord.com/api",
        description="Discord REST API base URL",
    )

    DISCORD_CDN_URL: str = Field(
        default="https://cdn.discordapp.com",
        description="Discord CDN base URL used for avatar images",
    )

    DISCORD_SCOPE: str = Field(
        default="identify",
        description="OAuth scope requested from Discord",
    )

    DISCORD_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        description="Timeout for each request to Discord",
        gt=0,
    )

    # =========================================================================
    # Deployment Base URLs
    # =========================================================================

    ENVIRONMENT: str = Field(
        default=PRODUCTION,
        description="DEVELOPMENT selects the DEV_* base URLs, anything else the production ones",
    )

    DEV_SERVER_URL: str = Field(
        default="http://localhost:8080",
        description="API server base URL in development",
    )

    SERVER_URL: str = Field(
        ...,
        description="API server base URL in production (e.g., https://api.example.com)",
        min_length=1,
    )

    DEV_CLIENT_URL: str = Field(
        default="http://localhost:3000",
        description="Web client base URL in development",
    )

    CLIENT_URL: str = Field(
        ...,
        description="Web client base URL in production (e.g., https://vault.example.com)",
        min_length=1,
    )

    # =========================================================================
    # Server Configuration
    # =========================================================================

    SERVER_HOST: str = Field(default="0.0.0.0")

    SERVER_PORT: int = Field(default=8080, ge=1, le=65535)

    ALLOWED_ORIGINS: Optional[str] = Field(
        None,
        description="Comma-separated list of allowed CORS origins (leave empty for no CORS)",
    )

    LOG_LEVEL: str = Field(default="INFO")

    SERIALIZE_ACCOUNT_UPSERTS: bool = Field(
        default=True,
        description="Serialize concurrent login upserts for the same Discord id",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.strip().upper() == DEVELOPMENT

    @property
    def server_base_url(self) -> str:
        """Base URL of this API for the active environment, without trailing slash."""
        url = self.DEV_SERVER_URL if self.is_development else self.SERVER_URL
        return url.rstrip("/")

    @property
    def client_base_url(self) -> str:
        """Base URL of the web client for the active environment, without trailing slash."""
        url = self.DEV_CLIENT_URL if self.is_development else self.CLIENT_URL
        return url.rstrip("/")

    @property
    def discord_redirect_uri(self) -> str:
        """
        OAuth redirect URI registered with Discord.

        The same value must be sent on the authorize request and on the token
        exchange; Discord rejects the exchange on mismatch.
        """
        return f"{self.server_base_url}{CALLBACK_PATH}"

    @property
    def allowed_origins_list(self) -> List[str]:
        if not self.ALLOWED_ORIGINS:
            return []

        return [
            origin.strip()
            for origin in self.ALLOWED_ORIGINS.split(",")
            if origin.strip()
        ]

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("JWT_ALGORITHM")
    @classmethod
    def validate_jwt_algorithm(cls, v: str) -> str:
        """
        Validate JWT algorithm is one of the supported HMAC algorithms.

        Raises:
            ValueError: If algorithm is not supported
        """
        allowed_algorithms = ["HS256", "HS384", "HS512"]

        if v not in allowed_algorithms:
            raise ValueError(
                f"JWT algorithm must be one of {allowed_algorithms}, got: {v}"
            )

        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid LOG_LEVEL: {v}")
        return level


# =============================================================================
# Settings Singleton
# =============================================================================

@lru_cache()
def get_settings() -> Settings:
    """
    Get or create a singleton Settings instance.

    Cached so the environment is read only once per process.

    Raises:
        ValidationError: If required environment variables are missing
                        or invalid.
    """
    return Settings()


# =============================================================================
# Configuration Helpers
# =============================================================================

def validate_configuration(settings: Settings) -> dict:
    """
    Check the loaded settings and return a status report.

    Called during application startup so misconfiguration shows up in the
    logs before the first login attempt.

    Returns:
        Dictionary with validation status, errors and warnings.
    """
    errors = []
    warnings = []

    if settings.JWT_SECRET != settings.JWT_SECRET.strip():
        errors.append("JWT_SECRET must not have leading or trailing whitespace")

    if settings.SESSION_JWT_EXPIRY_MINUTES is None:
        warnings.append("SESSION_JWT_EXPIRY_MINUTES is not set; session tokens never expire")

    if settings.is_development:
        warnings.append("ENVIRONMENT is DEVELOPMENT; redirects use the DEV_* base URLs")
    elif "localhost" in settings.server_base_url or "127.0.0.1" in settings.server_base_url:
        warnings.append("SERVER_URL points to localhost outside of development")

    if not settings.server_base_url.startswith(("http://", "https://")):
        errors.append(f"Server base URL must be absolute: {settings.server_base_url}")

    if not settings.client_base_url.startswith(("http://", "https://")):
        errors.append(f"Client base URL must be absolute: {settings.client_base_url}")

    if not settings.SERIALIZE_ACCOUNT_UPSERTS:
        warnings.append("SERIALIZE_ACCOUNT_UPSERTS is off; concurrent logins for one account are last-write-wins")

    return {
        "valid": len(errors) == 0,
        "errors": errors,
        "warnings": warnings,
        "environment": DEVELOPMENT if settings.is_development else PRODUCTION,
        "redirect_uri": settings.discord_redirect_uri,
        "jwt_expiry_minutes": settings.SESSION_JWT_EXPIRY_MINUTES,
    }
