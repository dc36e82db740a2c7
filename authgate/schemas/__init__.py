"""
Pydantic schemas for API request/response validation.

These schemas provide:
- Input validation with size constraints
- Output serialization
- OpenAPI documentation generation
"""

from authgate.schemas.auth import (
    LoginBody,
    JoinBody,
    PrincipalOut,
    TokenOut,
    AuthorizedResponse,
    RevokeResponse,
    SessionStateResponse,
    ErrorResponse,
)

__all__ = [
    "LoginBody",
    "JoinBody",
    "PrincipalOut",
    "TokenOut",
    "AuthorizedResponse",
    "RevokeResponse",
    "SessionStateResponse",
    "ErrorResponse",
]
