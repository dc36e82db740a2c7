"""
API Router configuration.

Mounts the authentication endpoints under /auth.
"""

from fastapi import APIRouter

from authgate.api.v1.endpoints import auth

api_router = APIRouter()

# Authentication (login/join/revoke need no prior authentication)
api_router.include_router(
    auth.router,
    prefix="/auth",
    tags=["authentication"]
)
