"""
FastAPI dependencies for authentication.

Provides:
- get_orchestrator: The process-wide AuthenticationOrchestrator
- get_client_metadata: IP, user agent and request id of the caller
- get_current_session: Resolve a bearer access token to a live session
"""

from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from authgate.auth.orchestrator import AuthenticationOrchestrator
from authgate.auth.types import ClientMetadata
from authgate.core.errors import InvalidToken
from authgate.models.session import SessionRecord

# HTTP Bearer token extractor
security = HTTPBearer(auto_error=False)


def get_orchestrator(request: Request) -> AuthenticationOrchestrator:
    """The orchestrator built at startup and stored on app.state."""
    return request.app.state.orchestrator


def get_client_ip(request: Request) -> Optional[str]:
    """
    Extract client IP address from request.
    Handles X-Forwarded-For header for proxied requests.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # Take the first IP (original client)
        return forwarded.split(",")[0].strip()[:45]

    if request.client:
        return request.client.host

    return None


def get_user_agent(request: Request) -> Optional[str]:
    """Extract user agent from request headers."""
    user_agent = request.headers.get("User-Agent")
    return user_agent[:500] if user_agent else None  # Limit length


def get_client_metadata(request: Request) -> ClientMetadata:
    return ClientMetadata(
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
        request_id=getattr(request.state, "request_id", None),
    )


async def get_current_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    orchestrator: AuthenticationOrchestrator = Depends(get_orchestrator),
) -> SessionRecord:
    """
    Resolve the bearer access token to its session.

    Raises:
        HTTPException 401: If the token is missing or invalid, or its
            session is revoked or expired
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return await orchestrator.current_session(credentials.credentials)
    except InvalidToken as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=exc.public_message,
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc
