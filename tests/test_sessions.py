import uuid
from datetime import timedelta

import pytest

from authgate.auth.sessions import SessionRegistry
from authgate.auth.types import ClientMetadata
from authgate.core.errors import SessionNotFound


async def test_create_records_metadata_and_is_active(session_maker, alice, clock):
    async with session_maker() as db:
        registry = SessionRegistry(db, clock=clock)
        record = await registry.create(
            alice.id,
            "patient",
            expires_at=clock() + timedelta(minutes=15),
            metadata=ClientMetadata(ip_address="10.0.0.7", user_agent="pytest"),
        )
        await db.commit()

    async with session_maker() as db:
        registry = SessionRegistry(db, clock=clock)
        stored = await registry.get(record.id)
        assert stored.ip_address == "10.0.0.7"
        assert stored.user_agent == "pytest"
        assert stored.revoked_at is None
        assert await registry.is_active(record.id) is True


async def test_session_expires_with_clock(session_maker, alice, clock):
    async with session_maker() as db:
        registry = SessionRegistry(db, clock=clock)
        record = await registry.create(alice.id, "patient", expires_at=clock() + timedelta(minutes=15))
        await db.commit()

        clock.advance(minutes=14)
        assert await registry.is_active(record.id) is True
        clock.advance(minutes=1)
        assert await registry.is_active(record.id) is False


async def test_revoke_twice_is_a_noop(session_maker, alice, clock):
    async with session_maker() as db:
        registry = SessionRegistry(db, clock=clock)
        record = await registry.create(alice.id, "patient", expires_at=clock() + timedelta(minutes=15))
        await db.commit()

        revoked, changed = await registry.revoke(record.id)
        await db.commit()
        first_revoked_at = revoked.revoked_at
        assert changed is True
        assert await registry.is_active(record.id) is False

        clock.advance(minutes=1)
        again, changed = await registry.revoke(record.id)
        assert changed is False
        assert again.revoked_at == first_revoked_at
        assert await registry.is_active(record.id) is False


async def test_revoke_unknown_session(session_maker, clock):
    async with session_maker() as db:
        with pytest.raises(SessionNotFound):
            await SessionRegistry(db, clock=clock).revoke(uuid.uuid4())


async def test_unknown_session_is_not_active(session_maker, clock):
    async with session_maker() as db:
        assert await SessionRegistry(db, clock=clock).is_active(uuid.uuid4()) is False


async def test_expiry_must_follow_issue(session_maker, alice, clock):
    async with session_maker() as db:
        with pytest.raises(ValueError):
            await SessionRegistry(db, clock=clock).create(alice.id, "patient", expires_at=clock())


async def test_multiple_active_sessions_allowed(session_maker, alice, clock):
    async with session_maker() as db:
        registry = SessionRegistry(db, clock=clock)
        first = await registry.create(alice.id, "patient", expires_at=clock() + timedelta(minutes=15))
        second = await registry.create(alice.id, "patient", expires_at=clock() + timedelta(minutes=15))
        await db.commit()

        active = await registry.list_active(alice.id)
        assert {s.id for s in active} == {first.id, second.id}


async def test_superseding_revokes_earlier_sessions(session_maker, alice, clock):
    async with session_maker() as db:
        registry = SessionRegistry(db, clock=clock, supersede=True)
        first = await registry.create(alice.id, "patient", expires_at=clock() + timedelta(minutes=15))
        await db.commit()
        clock.advance(seconds=5)
        second = await registry.create(alice.id, "patient", expires_at=clock() + timedelta(minutes=15))
        await db.commit()

    async with session_maker() as db:
        registry = SessionRegistry(db, clock=clock)
        assert await registry.is_active(first.id) is False
        assert await registry.is_active(second.id) is True
        assert [s.id for s in await registry.list_active(alice.id)] == [second.id]


async def test_revoke_with_stale_read_reports_no_change(session_maker, alice, clock):
    async with session_maker() as db:
        record = await SessionRegistry(db, clock=clock).create(
            alice.id, "patient", expires_at=clock() + timedelta(minutes=15)
        )
        await db.commit()

    async with session_maker() as first, session_maker() as second:
        stale = SessionRegistry(first, clock=clock)
        assert (await stale.get(record.id)).revoked_at is None

        winner, changed = await SessionRegistry(second, clock=clock).revoke(record.id)
        await second.commit()
        assert changed is True

        clock.advance(minutes=1)
        loser, changed = await stale.revoke(record.id)
        await first.commit()
        assert changed is False
        assert loser.revoked_at == winner.revoked_at
