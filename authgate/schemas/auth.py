"""
Authentication-related schemas.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from authgate.auth.types import IssuedSession, LoginRequest, RevokeOutcome, normalize_identifier


class LoginBody(BaseModel):
    """
    Login request: an identifier plus exactly one credential method.

    Either ``password`` or both ``provider`` and ``provider_key``. Missing or
    mixed input is not rejected here; it reaches the authenticator so the
    attempt is audited.
    """

    identifier: str = Field(min_length=1, max_length=255, description="Principal identifier (email)")
    password: Optional[str] = Field(default=None, max_length=128, description="Local password")
    provider: Optional[str] = Field(default=None, max_length=64, description="SSO provider name")
    provider_key: Optional[str] = Field(default=None, max_length=255, description="Provider-scoped user key")

    @field_validator("identifier")
    @classmethod
    def lowercase_identifier(cls, v: str) -> str:
        return normalize_identifier(v)

    def to_request(self, role: str) -> LoginRequest:
        return LoginRequest.from_fields(
            identifier=self.identifier,
            role=role,
            password=self.password,
            provider=self.provider,
            provider_key=self.provider_key,
        )


class JoinBody(LoginBody):
    """Registration request; same credential rules as login."""

    display_name: Optional[str] = Field(default=None, max_length=255)


class PrincipalOut(BaseModel):
    id: uuid.UUID
    identifier: str
    role: str
    display_name: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class TokenOut(BaseModel):
    access: str = Field(description="JWT access token")
    refresh: str = Field(description="JWT refresh token")
    token_type: str = Field(default="bearer")
    access_expires_at: datetime
    refresh_expires_at: datetime


class AuthorizedResponse(BaseModel):
    """Login/join response with tokens and the public principal fields."""

    session_id: uuid.UUID
    principal: PrincipalOut
    token: TokenOut

    @classmethod
    def from_issued(cls, issued: IssuedSession) -> "AuthorizedResponse":
        principal = issued.principal
        tokens = issued.tokens
        return cls(
            session_id=issued.session_id,
            principal=PrincipalOut(
                id=principal.id,
                identifier=principal.identifier,
                role=principal.role,
                display_name=principal.display_name,
                created_at=principal.created_at,
                updated_at=principal.updated_at,
            ),
            token=TokenOut(
                access=tokens.access,
                refresh=tokens.refresh,
                access_expires_at=tokens.access_expires_at,
                refresh_expires_at=tokens.refresh_expires_at,
            ),
        )


class RevokeResponse(BaseModel):
    session_id: uuid.UUID
    revoked: bool = True
    already_revoked: bool
    revoked_at: datetime

    @classmethod
    def from_outcome(cls, outcome: RevokeOutcome) -> "RevokeResponse":
        return cls(
            session_id=outcome.session_id,
            already_revoked=outcome.already_revoked,
            revoked_at=outcome.revoked_at,
        )


class SessionStateResponse(BaseModel):
    session_id: uuid.UUID
    principal_id: uuid.UUID
    role: str
    issued_at: datetime
    expires_at: datetime
    active: bool = True


class ErrorResponse(BaseModel):
    """Error response format."""

    detail: str = Field(description="Human-readable error message")
    error: str = Field(description="Stable error code")
    request_id: Optional[str] = None
