"""
JWT token issuing and verification.

Security measures:
- Short-lived access tokens (60 min default)
- Longer-lived refresh tokens (7 days default)
- Signing key injected by configuration, never a constant
- Token type validation
- Issuer validation
"""

import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from pydantic import BaseModel
from jose import jwt, JWTError, ExpiredSignatureError

from authgate.core.errors import InvalidToken
from authgate.core.utils import Clock, utcnow

ACCESS = "access"
REFRESH = "refresh"


class TokenClaims(BaseModel):
    """Decoded JWT claims."""
    sub: str                          # Principal ID (subject)
    role: str                         # Principal role
    type: str                         # "access" or "refresh"
    iat: datetime                     # Issued at
    exp: datetime                     # Expiration
    iss: str                          # Issuer
    sid: Optional[str] = None         # Session record ID
    jti: Optional[str] = None         # Unique token ID


@dataclass(frozen=True)
class IssuedTokens:
    """An access/refresh pair and its validity window."""
    access: str
    refresh: str
    issued_at: datetime
    access_expires_at: datetime
    refresh_expires_at: datetime


class TokenIssuer:
    """
    Mint and verify signed access/refresh tokens.

    The signing key, algorithm and issuer are constructor parameters so the
    key can be swapped by configuration without code changes.
    """

    def __init__(
        self,
        secret_key: str,
        access_ttl: timedelta = timedelta(minutes=60),
        refresh_ttl: timedelta = timedelta(days=7),
        issuer: str = "authgate",
        algorithm: str = "HS256",
        clock: Clock = utcnow,
    ):
        if not secret_key:
            raise ValueError("secret_key must not be empty")
        if access_ttl <= timedelta(0):
            raise ValueError("access_ttl must be positive")
        if refresh_ttl <= access_ttl:
            raise ValueError("refresh_ttl must be longer than access_ttl")
        self._secret_key = secret_key
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.issuer = issuer
        self.algorithm = algorithm
        self._clock = clock

    def issue(
        self,
        principal_id: uuid.UUID,
        role: str,
        session_id: Optional[uuid.UUID] = None,
    ) -> IssuedTokens:
        """
        Create an access token and a refresh token for a principal.

        Both carry the same iat; exp differs by the configured lifetimes.

        Args:
            principal_id: The principal's ID, becomes the ``sub`` claim
            role: The principal's role
            session_id: Optional session record ID, becomes the ``sid`` claim

        Returns:
            IssuedTokens with both encoded JWTs and their expiry times
        """
        # JWT times have one-second resolution
        issued_at = self._clock().astimezone(timezone.utc).replace(microsecond=0)
        access_expires_at = issued_at + self.access_ttl
        refresh_expires_at = issued_at + self.refresh_ttl

        return IssuedTokens(
            access=self._encode(principal_id, role, session_id, ACCESS, issued_at, access_expires_at),
            refresh=self._encode(principal_id, role, session_id, REFRESH, issued_at, refresh_expires_at),
            issued_at=issued_at,
            access_expires_at=access_expires_at,
            refresh_expires_at=refresh_expires_at,
        )

    def _encode(
        self,
        principal_id: uuid.UUID,
        role: str,
        session_id: Optional[uuid.UUID],
        token_type: str,
        issued_at: datetime,
        expires_at: datetime,
    ) -> str:
        payload = {
            "sub": str(principal_id),
            "role": role,
            "type": token_type,
            "iat": issued_at,
            "exp": expires_at,
            "iss": self.issuer,
            "jti": secrets.token_urlsafe(16),
        }
        if session_id is not None:
            payload["sid"] = str(session_id)
        return jwt.encode(payload, self._secret_key, algorithm=self.algorithm)

    def verify(self, token: str, expected_type: str = ACCESS) -> TokenClaims:
        """
        Verify and decode a JWT token.

        Raises:
            InvalidToken: If token is invalid, expired, from another issuer
                or of the wrong type
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                options={"verify_aud": False},
            )
        except ExpiredSignatureError as exc:
            raise InvalidToken("Token has expired") from exc
        except JWTError as exc:
            raise InvalidToken(f"Token rejected: {exc}") from exc

        if payload.get("type") != expected_type:
            raise InvalidToken(f"Invalid token type. Expected {expected_type}, got {payload.get('type')}")

        try:
            return TokenClaims(
                sub=payload["sub"],
                role=payload["role"],
                type=payload["type"],
                iat=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
                exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
                iss=payload["iss"],
                sid=payload.get("sid"),
                jti=payload.get("jti"),
            )
        except KeyError as exc:
            raise InvalidToken(f"Token is missing claim {exc}") from exc
