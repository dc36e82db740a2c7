"""
Authentication endpoints.

Provides:
- Login per role (password or SSO -> JWT tokens + session)
- Join per role (register, then login)
- Session revocation
- Current session lookup
"""

import uuid

from fastapi import APIRouter, Depends, status

from authgate.auth.dependencies import get_client_metadata, get_current_session, get_orchestrator
from authgate.auth.orchestrator import AuthenticationOrchestrator
from authgate.auth.types import ClientMetadata
from authgate.models.session import SessionRecord
from authgate.schemas.auth import (
    AuthorizedResponse,
    ErrorResponse,
    JoinBody,
    LoginBody,
    RevokeResponse,
    SessionStateResponse,
)

router = APIRouter()

_AUTH_ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


@router.post("/{role}/login", response_model=AuthorizedResponse, responses=_AUTH_ERRORS)
async def login(
    role: str,
    body: LoginBody,
    metadata: ClientMetadata = Depends(get_client_metadata),
    orchestrator: AuthenticationOrchestrator = Depends(get_orchestrator),
):
    """
    Authenticate a principal of ``role`` and return JWT tokens.

    Unknown identifiers and wrong credentials get the same 401 response.
    """
    issued = await orchestrator.authenticate(body.to_request(role), metadata)
    return AuthorizedResponse.from_issued(issued)


@router.post(
    "/{role}/join",
    response_model=AuthorizedResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**_AUTH_ERRORS, 409: {"model": ErrorResponse}},
)
async def join(
    role: str,
    body: JoinBody,
    metadata: ClientMetadata = Depends(get_client_metadata),
    orchestrator: AuthenticationOrchestrator = Depends(get_orchestrator),
):
    """Register a principal of ``role`` and sign it in."""
    issued = await orchestrator.join(body.to_request(role), display_name=body.display_name, metadata=metadata)
    return AuthorizedResponse.from_issued(issued)


@router.post(
    "/sessions/{session_id}/revoke",
    response_model=RevokeResponse,
    responses={404: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def revoke_session(
    session_id: uuid.UUID,
    metadata: ClientMetadata = Depends(get_client_metadata),
    orchestrator: AuthenticationOrchestrator = Depends(get_orchestrator),
):
    """Revoke a session. Revoking twice succeeds; the second call changes nothing."""
    outcome = await orchestrator.revoke(session_id, metadata)
    return RevokeResponse.from_outcome(outcome)


@router.get("/sessions/current", response_model=SessionStateResponse)
async def current_session(
    session: SessionRecord = Depends(get_current_session),
):
    """Describe the live session behind the bearer token."""
    return SessionStateResponse(
        session_id=session.id,
        principal_id=session.principal_id,
        role=session.role,
        issued_at=session.issued_at,
        expires_at=session.expires_at,
    )
