"""
Authgate - credential authentication and session lifecycle service.

Main FastAPI application with security hardening.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine
from starlette.middleware.base import BaseHTTPMiddleware

from authgate.api.v1.api import api_router
from authgate.auth.jwt import TokenIssuer
from authgate.auth.orchestrator import AuthenticationOrchestrator
from authgate.auth.password import PasswordVerifier
from authgate.core.config import AuthSettings, ENABLE_DOCS, TRUSTED_HOSTS, get_cors_allow_origins, get_settings
from authgate.core.database import async_session_maker, close_db, engine, init_db
from authgate.core.errors import AuthError
from authgate.core.logging import get_logger, set_request_id

logger = get_logger("authgate.api")

VERSION = "1.0.0"


def build_orchestrator(settings: AuthSettings, session_maker=async_session_maker) -> AuthenticationOrchestrator:
    """Wire the authentication components from settings."""
    token_issuer = TokenIssuer(
        secret_key=settings.jwt_secret_key,
        access_ttl=timedelta(minutes=settings.access_token_expire_minutes),
        refresh_ttl=timedelta(days=settings.refresh_token_expire_days),
        issuer=settings.token_issuer,
        algorithm=settings.jwt_algorithm,
    )
    return AuthenticationOrchestrator(
        session_maker=session_maker,
        token_issuer=token_issuer,
        password_verifier=PasswordVerifier(),
        roles=settings.roles,
        supersede_sessions=settings.supersede_sessions,
    )


# =============================================================================
# Application Lifespan (startup/shutdown)
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    logger.info("startup", version=VERSION)

    if getattr(app.state, "orchestrator", None) is None:
        await init_db()
        app.state.orchestrator = build_orchestrator(get_settings())
        logger.info("database_initialized")

    yield

    logger.info("shutdown")
    await close_db()


# =============================================================================
# Security Middleware
# =============================================================================

class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next: Callable):
        response = await call_next(request)

        # Prevent clickjacking
        response.headers["X-Frame-Options"] = "DENY"

        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"

        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        # Tokens must never be cached by intermediaries
        response.headers["Cache-Control"] = "no-store"

        # Strict CSP for API endpoints
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"

        return response


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Add unique request ID for tracing."""

    async def dispatch(self, request: Request, call_next: Callable):
        request_id = set_request_id(request.headers.get("X-Request-ID"))
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        return response


# =============================================================================
# Error Handlers
# =============================================================================

async def auth_error_handler(request: Request, exc: AuthError):
    """Render AuthError subclasses with their public message only."""
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.public_message,
            "error": exc.error_code,
            "request_id": getattr(request.state, "request_id", None),
        },
        headers=headers,
    )


async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler to prevent information leakage."""
    request_id = getattr(request.state, "request_id", "unknown")
    logger.exception("unhandled_exception", error=type(exc).__name__)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "An internal error occurred",
            "request_id": request_id,
        },
    )


# =============================================================================
# FastAPI Application
# =============================================================================

def create_app(
    orchestrator: Optional[AuthenticationOrchestrator] = None,
    trusted_hosts: Optional[list[str]] = None,
    db_engine: Optional[AsyncEngine] = None,
) -> FastAPI:
    """
    Build the application.

    Passing an orchestrator skips database setup in the lifespan; tests use
    this to run against their own engine.
    """
    app = FastAPI(
        title="Authgate API",
        version=VERSION,
        description="Credential authentication and session lifecycle",
        lifespan=lifespan,
        docs_url="/docs" if ENABLE_DOCS else None,
        redoc_url="/redoc" if ENABLE_DOCS else None,
    )
    app.state.orchestrator = orchestrator

    # Add Middleware (order matters - first added = last executed)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_cors_allow_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    # Trusted hosts (prevent host header attacks)
    hosts = trusted_hosts if trusted_hosts is not None else TRUSTED_HOSTS.split(",")
    if "*" not in hosts:
        app.add_middleware(TrustedHostMiddleware, allowed_hosts=hosts)

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.add_exception_handler(AuthError, auth_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    @app.get("/health", tags=["health"])
    async def health_check():
        """Health check endpoint for load balancers and monitoring."""
        db_status = "healthy"
        try:
            async with (db_engine or engine).connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception as e:
            db_status = f"unhealthy: {type(e).__name__}"

        return {
            "status": "healthy" if db_status == "healthy" else "degraded",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": VERSION,
            "database": db_status,
        }

    app.include_router(api_router, prefix="/v1")
    return app


app = create_app()


# =============================================================================
# Development Server
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "authgate.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info",
    )
