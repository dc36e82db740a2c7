import os
import secrets
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()

# Base directory of the project (parent of 'authgate')
BASE_DIR = Path(__file__).resolve().parent.parent.parent

# Database Directory
DB_DIR = BASE_DIR / "db"

DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"sqlite+aiosqlite:///{DB_DIR / 'authgate.db'}"
)
SQL_DEBUG = os.getenv("SQL_DEBUG", "false").lower() == "true"

# Token signing
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
TOKEN_ISSUER = os.getenv("TOKEN_ISSUER", "authgate")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))
REFRESH_TOKEN_EXPIRE_DAYS = int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "7"))

# Comma separated list of roles that may authenticate. Empty means any role.
AUTH_ROLES = os.getenv("AUTH_ROLES", "")
AUTH_SUPERSEDE_SESSIONS = os.getenv("AUTH_SUPERSEDE_SESSIONS", "false").lower() == "true"

ENABLE_DOCS = os.getenv("ENABLE_DOCS", "true").lower() == "true"
TRUSTED_HOSTS = os.getenv("TRUSTED_HOSTS", "localhost,127.0.0.1")


def get_cors_allow_origins() -> list[str]:
    raw = os.getenv("CORS_ALLOW_ORIGINS", "http://localhost:3000")
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def parse_roles(raw: str) -> Optional[frozenset[str]]:
    """Parse a comma separated role list; None means the catalog is open."""
    roles = frozenset(r.strip() for r in raw.split(",") if r.strip())
    return roles or None


class AuthSettings(BaseModel):
    """Process-wide authentication settings."""

    jwt_secret_key: str
    jwt_algorithm: str = JWT_ALGORITHM
    token_issuer: str = TOKEN_ISSUER
    access_token_expire_minutes: int = Field(default=ACCESS_TOKEN_EXPIRE_MINUTES, gt=0)
    refresh_token_expire_days: int = Field(default=REFRESH_TOKEN_EXPIRE_DAYS, gt=0)
    roles: Optional[frozenset[str]] = None
    supersede_sessions: bool = AUTH_SUPERSEDE_SESSIONS


@lru_cache
def get_settings() -> AuthSettings:
    """Build settings from the environment once per process."""
    secret_key = JWT_SECRET_KEY
    if not secret_key:
        # Generate a random key for development (NOT for production!)
        from authgate.core.logging import get_logger

        secret_key = secrets.token_urlsafe(32)
        get_logger(__name__).warning(
            "jwt_secret_generated",
            hint="Set JWT_SECRET_KEY in production; issued tokens die with the process",
        )
    return AuthSettings(
        jwt_secret_key=secret_key,
        roles=parse_roles(AUTH_ROLES),
    )
