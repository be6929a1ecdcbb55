"""
Token Verification Tests

authenticate_token in front of protected routes: missing or malformed
Authorization headers are 401 and never reach the handler, bad tokens are
403, good tokens expose the identity to the handler.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import List

import jwt
import pytest
from fastapi import APIRouter, Depends, Request, status
from fastapi.testclient import TestClient

from passvault.app.accounts.store import USERS_TABLE
from passvault.app.auth.session import SessionTokenIssuer
from passvault.app.dependencies import authenticate_token
from passvault.app.main import create_app
from passvault.app.models import SessionIdentity

from .conftest import TEST_JWT_SECRET, StubDiscordClient, flip_signature_char, make_settings


@pytest.fixture
def handler_calls() -> List[dict]:
    return []


@pytest.fixture
def guarded_client(app, handler_calls) -> TestClient:
    """App with an extra protected route that records each invocation."""
    guarded = APIRouter(dependencies=[Depends(authenticate_token)])

    @guarded.get("/api/echo")
    async def echo_identity(request: Request):
        identity = request.state.identity
        handler_calls.append(identity.model_dump())
        return identity.model_dump()

    app.include_router(guarded)
    return TestClient(app)


@pytest.fixture
def stored_account(database, identity):
    record = {
        "id": identity.id,
        "username": identity.username,
        "avatar": identity.avatar,
        "createdAt": "2024-02-29T12:00:00.000Z",
        "twoFactorEnabled": True,
        "twoFactorSecret": "JBSWY3DPEHPK3PXP",
        "masterPassword": "correct horse battery staple",
        "passwords": [
            {
                "id": "p1",
                "title": "bank",
                "username": "ada",
                "password": "s3cret",
                "url": "https://bank.example",
                "createdAt": "2024-03-01T00:00:00.000Z",
                "updatedAt": "2024-03-01T00:00:00.000Z",
            }
        ],
    }
    asyncio.run(database.insert(USERS_TABLE, record))
    return record


class TestMissingCredentials:

    def test_no_authorization_header(self, guarded_client, handler_calls):
        response = guarded_client.get("/api/echo")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.headers["www-authenticate"] == "Bearer"
        assert handler_calls == []

    @pytest.mark.parametrize(
        "header",
        ["", "Bearer", "Basic dXNlcjpwYXNz", "Token abc", "Bearer a b"],
    )
    def test_malformed_scheme(self, guarded_client, handler_calls, header):
        response = guarded_client.get("/api/echo", headers={"Authorization": header})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert handler_calls == []


class TestInvalidTokens:

    def test_tampered_signature(self, guarded_client, handler_calls, issuer, identity):
        token = flip_signature_char(issuer.issue(identity))

        response = guarded_client.get("/api/echo", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json() == {"detail": "Invalid token."}
        assert handler_calls == []

    def test_foreign_secret(self, guarded_client, handler_calls, identity):
        token = SessionTokenIssuer("some-other-secret-" + "x" * 46).issue(identity)

        response = guarded_client.get("/api/echo", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert handler_calls == []

    def test_garbage_token(self, guarded_client, handler_calls):
        response = guarded_client.get("/api/echo", headers={"Authorization": "Bearer not.a.jwt"})

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert handler_calls == []


class TestTokenExpiry:

    @pytest.fixture
    def expiring_client(self, database, handler_calls) -> TestClient:
        settings = make_settings(SESSION_JWT_EXPIRY_MINUTES=15)
        app = create_app(settings=settings, database=database, discord_client=StubDiscordClient(settings))
        protected = APIRouter(dependencies=[Depends(authenticate_token)])

        @protected.get("/api/whoami")
        async def whoami(request: Request):
            handler_calls.append(request.state.identity.model_dump())
            return request.state.identity.model_dump()

        app.include_router(protected)
        return TestClient(app)

    def test_expired_token_forbidden(self, expiring_client, handler_calls):
        past = datetime.now(timezone.utc) - timedelta(minutes=1)
        token = jwt.encode(
            {"id": "1234567890", "username": "ada", "avatar": "a1b2c3", "exp": past},
            TEST_JWT_SECRET,
            algorithm="HS256",
        )

        response = expiring_client.get("/api/whoami", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json() == {"detail": "Invalid token."}
        assert handler_calls == []

    def test_unexpired_token_accepted(self, expiring_client, handler_calls, identity):
        token = SessionTokenIssuer(TEST_JWT_SECRET, expiry_minutes=15).issue(identity)

        response = expiring_client.get("/api/whoami", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == status.HTTP_200_OK
        assert handler_calls == [identity.model_dump()]


class TestValidToken:

    def test_identity_reaches_handler(self, guarded_client, handler_calls, auth_headers, identity):
        response = guarded_client.get("/api/echo", headers=auth_headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == identity.model_dump()
        assert handler_calls == [identity.model_dump()]

    def test_scheme_is_case_insensitive(self, guarded_client, issuer, identity):
        response = guarded_client.get(
            "/api/echo",
            headers={"Authorization": f"bearer {issuer.issue(identity)}"},
        )
        assert response.status_code == status.HTTP_200_OK


class TestUserRoutes:

    def test_me_requires_token(self, client):
        assert client.get("/api/user/me").status_code == status.HTTP_401_UNAUTHORIZED

    def test_me_returns_public_profile(self, client, auth_headers, stored_account):
        response = client.get("/api/user/me", headers=auth_headers)

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body == {
            "id": "1234567890",
            "username": "ada",
            "avatar": "a1b2c3",
            "avatarUrl": "https://cdn.discordapp.com/avatars/1234567890/a1b2c3?size=64",
            "createdAt": "2024-02-29T12:00:00.000Z",
            "twoFactorEnabled": True,
        }
        assert "masterPassword" not in body
        assert "twoFactorSecret" not in body

    def test_me_avatar_size(self, client, auth_headers, stored_account):
        response = client.get("/api/user/me", params={"size": 8192}, headers=auth_headers)
        assert response.json()["avatarUrl"].endswith("?size=4096")

    def test_me_unknown_account(self, client, issuer):
        token = issuer.issue(SessionIdentity(id="404", username="ghost"))

        response = client.get("/api/user/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_passwords_listed_for_caller(self, client, auth_headers, stored_account):
        response = client.get("/api/passwords", headers=auth_headers)

        assert response.status_code == status.HTTP_200_OK
        entries = response.json()
        assert [entry["title"] for entry in entries] == ["bank"]
        assert entries[0]["isFavorite"] is False

    def test_passwords_require_valid_token(self, client, auth_headers):
        token = auth_headers["Authorization"].split()[1]
        response = client.get(
            "/api/passwords",
            headers={"Authorization": f"Bearer {flip_signature_char(token)}"},
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN


def test_health(client):
    response = client.get("/health")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "ok"
