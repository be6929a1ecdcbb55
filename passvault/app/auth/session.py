"""
JWT Session Management Module
==============================

Handles creation and verification of session JWTs issued after a successful
Discord login.

The token payload is exactly {id, username, avatar}. Tokens are stateless:
nothing is stored server-side and there is no revocation list. An "exp"
claim is added only when an expiry is configured; by default tokens stay
valid until the client discards them.

Verification failures are reported as distinct exception kinds so callers
can tell a forged token from garbage input:

- InvalidSignature: signature does not match the secret, or the token uses
  an algorithm other than the configured one
- MalformedToken: not a decodable JWT, or the payload lacks identity claims
- TokenExpired: the token carries an "exp" claim that has passed
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from jwt.exceptions import (
    DecodeError,
    ExpiredSignatureError,
    InvalidAlgorithmError,
    InvalidSignatureError,
    InvalidTokenError,
)
from pydantic import ValidationError

from ..config import Settings
from ..models import SessionIdentity

logger = logging.getLogger(__name__)

IDENTITY_CLAIMS = ("id", "username", "avatar")


# =============================================================================
# Exceptions
# =============================================================================

class SessionTokenError(Exception):
    """Base exception for session token errors"""
    pass


class InvalidSignature(SessionTokenError):
    """Token signature does not verify against the server secret."""
    pass


class MalformedToken(SessionTokenError):
    """Token is structurally invalid or missing identity claims."""
    pass


class TokenExpired(SessionTokenError):
    pass


# =============================================================================
# Issuer
# =============================================================================

class SessionTokenIssuer:
    """
    Signs and verifies session JWTs with a shared HMAC secret.

    Args:
        secret: Signing secret
        algorithm: HS256, HS384 or HS512
        expiry_minutes: Token lifetime; None issues tokens without "exp"
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        expiry_minutes: Optional[int] = None,
    ):
        if not secret:
            raise ValueError("Session JWT secret not configured")
        self._secret = secret
        self._algorithm = algorithm
        self._expiry_minutes = expiry_minutes

    @classmethod
    def from_settings(cls, settings: Settings) -> "SessionTokenIssuer":
        return cls(
            secret=settings.JWT_SECRET,
            algorithm=settings.JWT_ALGORITHM,
            expiry_minutes=settings.SESSION_JWT_EXPIRY_MINUTES,
        )

    def issue(self, identity: SessionIdentity) -> str:
        """
        Create a session JWT for an authenticated identity.

        Args:
            identity: Discord identity to embed

        Returns:
            Encoded JWT string

        Example:
            >>> issuer = SessionTokenIssuer("x" * 32)
            >>> token = issuer.issue(SessionIdentity(id="1", username="ada", avatar=None))
        """
        payload: Dict[str, Any] = identity.model_dump(include=set(IDENTITY_CLAIMS))

        if self._expiry_minutes is not None:
            payload["exp"] = datetime.now(timezone.utc) + timedelta(minutes=self._expiry_minutes)

        token = jwt.encode(payload, self._secret, algorithm=self._algorithm)

        logger.debug(
            "Issued session JWT",
            extra={"user_id": identity.id, "expires_in_minutes": self._expiry_minutes},
        )
        return token

    def verify(self, token: str) -> SessionIdentity:
        """
        Verify a session JWT and return the identity it carries.

        Args:
            token: JWT string from the Authorization header

        Returns:
            The embedded identity, without registered claims such as "exp"

        Raises:
            InvalidSignature: Signature mismatch or unexpected algorithm
            MalformedToken: Undecodable token or missing identity claims
            TokenExpired: "exp" claim in the past
        """
        if not token:
            raise MalformedToken("Empty token")

        options = {"verify_signature": True, "require": ["id", "username"]}
        if self._expiry_minutes is not None:
            options["require"].append("exp")

        try:
            decoded = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options=options,
            )
        except ExpiredSignatureError as e:
            raise TokenExpired("Token has expired") from e
        # InvalidSignatureError subclasses DecodeError, so it must come first.
        except (InvalidSignatureError, InvalidAlgorithmError) as e:
            raise InvalidSignature(f"Invalid token signature: {e}") from e
        except DecodeError as e:
            raise MalformedToken(f"Malformed token: {e}") from e
        except InvalidTokenError as e:
            raise MalformedToken(f"Invalid token: {e}") from e

        try:
            return SessionIdentity.model_validate(
                {claim: decoded.get(claim) for claim in IDENTITY_CLAIMS}
            )
        except ValidationError as e:
            raise MalformedToken(f"Token payload is not a session identity: {e}") from e


__all__ = [
    "SessionTokenIssuer",
    "SessionTokenError",
    "InvalidSignature",
    "MalformedToken",
    "TokenExpired",
]
