"""
Authentication and session lifecycle.

Provides:
- Password hashing and verification (Argon2id)
- JWT access/refresh token issuing and verification
- Session records with server-side revocation
- Append-only audit of every authentication decision
- The orchestrator composing all of the above
"""

from authgate.auth.jwt import (
    TokenIssuer,
    TokenClaims,
    IssuedTokens,
)
from authgate.auth.password import PasswordVerifier
from authgate.auth.credentials import CredentialStore
from authgate.auth.sessions import SessionRegistry
from authgate.auth.audit import AuditLog, AuditSubscriber
from authgate.auth.types import (
    LocalCredential,
    SsoCredential,
    LoginRequest,
    ClientMetadata,
    IssuedSession,
    PrincipalSnapshot,
    RevokeOutcome,
)
from authgate.auth.orchestrator import AuthenticationOrchestrator

__all__ = [
    # Tokens
    "TokenIssuer",
    "TokenClaims",
    "IssuedTokens",
    # Password
    "PasswordVerifier",
    # Stores
    "CredentialStore",
    "SessionRegistry",
    "AuditLog",
    "AuditSubscriber",
    # Requests and results
    "LocalCredential",
    "SsoCredential",
    "LoginRequest",
    "ClientMetadata",
    "IssuedSession",
    "PrincipalSnapshot",
    "RevokeOutcome",
    # Orchestration
    "AuthenticationOrchestrator",
]
