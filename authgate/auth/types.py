"""
Request and result types of the authentication pipeline.

A login request carries exactly one credential variant. ``credential`` is
None only when the caller supplied neither a password nor an SSO pair (or
supplied both); the orchestrator audits and rejects that case before any
store lookup.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Union

from authgate.auth.jwt import IssuedTokens


@dataclass(frozen=True)
class LocalCredential:
    password: str = field(repr=False)


@dataclass(frozen=True)
class SsoCredential:
    provider: str
    provider_key: str = field(repr=False)


CredentialInput = Union[LocalCredential, SsoCredential]


def normalize_identifier(identifier: str) -> str:
    return identifier.strip().lower()


@dataclass(frozen=True)
class LoginRequest:
    identifier: str
    role: str
    credential: Optional[CredentialInput]

    @classmethod
    def from_fields(
        cls,
        identifier: str,
        role: str,
        password: Optional[str] = None,
        provider: Optional[str] = None,
        provider_key: Optional[str] = None,
    ) -> "LoginRequest":
        """Build a request from loose optional fields, as HTTP bodies carry them."""
        has_password = bool(password)
        has_sso = bool(provider) and bool(provider_key)
        credential: Optional[CredentialInput] = None
        if has_password and not has_sso:
            credential = LocalCredential(password=password)
        elif has_sso and not has_password:
            credential = SsoCredential(provider=provider, provider_key=provider_key)
        return cls(identifier=normalize_identifier(identifier), role=role, credential=credential)


@dataclass(frozen=True)
class ClientMetadata:
    """Where a request came from; both fields are optional."""
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    request_id: Optional[str] = None


@dataclass(frozen=True)
class PrincipalSnapshot:
    """Public fields of a principal, safe to return to callers."""
    id: uuid.UUID
    identifier: str
    role: str
    display_name: Optional[str]
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class IssuedSession:
    """Result of a successful authentication."""
    session_id: uuid.UUID
    principal: PrincipalSnapshot
    tokens: IssuedTokens


@dataclass(frozen=True)
class RevokeOutcome:
    session_id: uuid.UUID
    revoked_at: datetime
    already_revoked: bool
