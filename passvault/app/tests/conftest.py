"""
Shared fixtures for the passvault API tests.

The Discord client is replaced by StubDiscordClient, which keeps the real
authorization_url() but answers exchange_code()/fetch_profile() from
in-memory values and records every call.
"""

from typing import List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient

from passvault.app.accounts import AccountStore, InMemoryDatabase
from passvault.app.auth.discord import DiscordClient
from passvault.app.auth.session import SessionTokenIssuer
from passvault.app.config import Settings
from passvault.app.main import create_app
from passvault.app.models import DiscordProfile, DiscordToken, SessionIdentity

TEST_JWT_SECRET = "test-session-secret-0123456789abcdef0123456789abcdef0123456789ab"


def flip_signature_char(token: str) -> str:
    """Change one character in the middle of the signature segment."""
    header, payload, signature = token.split(".")
    idx = len(signature) // 2
    replacement = "A" if signature[idx] != "A" else "B"
    signature = signature[:idx] + replacement + signature[idx + 1:]
    return ".".join([header, payload, signature])


def make_settings(**overrides) -> Settings:
    values = dict(
        JWT_SECRET=TEST_JWT_SECRET,
        DISCORD_CLIENT_ID="test-client-id",
        DISCORD_CLIENT_SECRET="test-client-secret",
        DISCORD_API_BASE_URL="https://discord.test/api",
        ENVIRONMENT="PRODUCTION",
        DEV_SERVER_URL="http://localhost:8080",
        SERVER_URL="https://api.vault.test",
        DEV_CLIENT_URL="http://localhost:3000",
        CLIENT_URL="https://vault.test",
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


class StubDiscordClient(DiscordClient):
    """Discord client that never touches the network."""

    def __init__(
        self,
        settings: Settings,
        profile: Optional[DiscordProfile] = None,
        exchange_error: Optional[Exception] = None,
        profile_error: Optional[Exception] = None,
    ):
        super().__init__(settings)
        self.profile = profile or DiscordProfile(id="1234567890", username="ada", avatar="a1b2c3")
        self.exchange_error = exchange_error
        self.profile_error = profile_error
        self.exchange_calls: List[Tuple[str, str]] = []
        self.profile_calls: List[str] = []

    @property
    def calls(self) -> int:
        return len(self.exchange_calls) + len(self.profile_calls)

    async def exchange_code(self, code: str, redirect_uri: str) -> DiscordToken:
        self.exchange_calls.append((code, redirect_uri))
        if self.exchange_error:
            raise self.exchange_error
        return DiscordToken(access_token=f"access-for-{code}")

    async def fetch_profile(self, access_token: str) -> DiscordProfile:
        self.profile_calls.append(access_token)
        if self.profile_error:
            raise self.profile_error
        return self.profile


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def database() -> InMemoryDatabase:
    return InMemoryDatabase()


@pytest.fixture
def discord(settings) -> StubDiscordClient:
    return StubDiscordClient(settings)


@pytest.fixture
def issuer(settings) -> SessionTokenIssuer:
    return SessionTokenIssuer.from_settings(settings)


@pytest.fixture
def account_store(database) -> AccountStore:
    return AccountStore(database)


@pytest.fixture
def app(settings, database, discord):
    return create_app(settings=settings, database=database, discord_client=discord)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def identity() -> SessionIdentity:
    return SessionIdentity(id="1234567890", username="ada", avatar="a1b2c3")


@pytest.fixture
def auth_headers(issuer, identity):
    return {"Authorization": f"Bearer {issuer.issue(identity)}"}
