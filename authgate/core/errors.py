"""
Authentication error taxonomy.

Each error carries the HTTP status and a stable error code. ``public_message``
is what leaves the process; ``message`` may hold internal detail for logs.
Verification failures share one public message so callers cannot tell an
unknown identifier from a wrong password.
"""

from typing import Optional


class AuthError(Exception):
    """Base class for errors raised by the authentication subsystem."""

    status_code: int = 400
    error_code: str = "auth_error"
    public_message: str = "Authentication error"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.public_message)
        self.message = message or self.public_message


class InvalidCredentials(AuthError):
    """Unknown identifier, missing credential, wrong password or SSO mismatch."""
    status_code = 401
    error_code = "invalid_credentials"
    public_message = "Invalid credentials"


class AccountUnavailable(InvalidCredentials):
    """Principal exists but is soft-deleted or deactivated.

    Rendered exactly like InvalidCredentials at the interface boundary.
    """


class MissingCredentialInput(AuthError):
    """Neither a password nor an SSO provider/key pair was supplied."""
    status_code = 400
    error_code = "missing_credentials"
    public_message = "Supply either a password or an SSO provider and provider key"


class InvalidToken(AuthError):
    """Token signature, expiry, issuer or type check failed."""
    status_code = 401
    error_code = "invalid_token"
    public_message = "Invalid or expired token"


class SessionNotFound(AuthError):
    status_code = 404
    error_code = "session_not_found"
    public_message = "Session not found"


class PrincipalExists(AuthError):
    status_code = 409
    error_code = "principal_exists"
    public_message = "An account with this identifier already exists for this role"


class UnknownRole(AuthError):
    """Registration for a role the role catalog does not know."""
    status_code = 400
    error_code = "unknown_role"
    public_message = "Unknown role"


class StorageFailure(AuthError):
    """A session, credential or audit write failed; the subsystem is unhealthy."""
    status_code = 503
    error_code = "storage_failure"
    public_message = "Authentication service temporarily unavailable"


__all__ = [
    "AuthError",
    "InvalidCredentials",
    "AccountUnavailable",
    "MissingCredentialInput",
    "InvalidToken",
    "SessionNotFound",
    "PrincipalExists",
    "UnknownRole",
    "StorageFailure",
]
