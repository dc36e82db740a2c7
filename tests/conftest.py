import os
from datetime import datetime, timedelta, timezone

# Set up environment variables before importing the app
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-testing-only")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy import select  # noqa: E402

from authgate.auth.jwt import TokenIssuer  # noqa: E402
from authgate.auth.orchestrator import AuthenticationOrchestrator  # noqa: E402
from authgate.auth.password import PasswordVerifier  # noqa: E402
from authgate.auth.types import LocalCredential  # noqa: E402
from authgate.core.database import create_engine_for, create_session_maker, init_db  # noqa: E402
from authgate.models import SecurityEvent, SessionRecord  # noqa: E402


class FakeClock:
    """Settable clock; starts at the real current time."""

    def __init__(self, now: datetime = None):
        self.now = now or datetime.now(timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest_asyncio.fixture
async def engine(tmp_path):
    db_engine = create_engine_for(f"sqlite+aiosqlite:///{tmp_path / 'authgate_test.db'}")
    await init_db(db_engine)
    yield db_engine
    await db_engine.dispose()


@pytest.fixture
def session_maker(engine):
    return create_session_maker(engine)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def verifier():
    # Cheap parameters; production defaults take ~250ms per hash
    return PasswordVerifier(time_cost=1, memory_cost=1024, parallelism=1)


@pytest.fixture
def token_issuer(clock):
    return TokenIssuer(
        secret_key="test-signing-key",
        access_ttl=timedelta(minutes=15),
        refresh_ttl=timedelta(days=7),
        issuer="authgate-test",
        clock=clock,
    )


@pytest.fixture
def orchestrator(session_maker, token_issuer, verifier, clock):
    return AuthenticationOrchestrator(
        session_maker=session_maker,
        token_issuer=token_issuer,
        password_verifier=verifier,
        clock=clock,
    )


@pytest_asyncio.fixture
async def alice(orchestrator):
    """Patient alice@example.com with password Secret123!"""
    return await orchestrator.register(
        "alice@example.com",
        "patient",
        LocalCredential(password="Secret123!"),
        display_name="Alice",
    )


@pytest.fixture
def fetch_events(session_maker):
    async def _fetch():
        async with session_maker() as db:
            result = await db.execute(select(SecurityEvent).order_by(SecurityEvent.occurred_at))
            return list(result.scalars().all())
    return _fetch


@pytest.fixture
def fetch_sessions(session_maker):
    async def _fetch():
        async with session_maker() as db:
            result = await db.execute(select(SessionRecord).order_by(SessionRecord.issued_at))
            return list(result.scalars().all())
    return _fetch
