"""
Session registry.

Persists one SessionRecord per successful authentication and answers
revocation questions server-side. A principal may hold any number of active
sessions unless superseding is enabled, in which case a new login revokes
that principal's earlier live sessions for the same role.
"""

import uuid
from datetime import datetime
from typing import Optional, List

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from authgate.auth.types import ClientMetadata
from authgate.core.errors import SessionNotFound
from authgate.core.utils import Clock, utcnow
from authgate.models.session import SessionRecord


class SessionRegistry:

    def __init__(self, db: AsyncSession, clock: Clock = utcnow, supersede: bool = False):
        self.db = db
        self._clock = clock
        self.supersede = supersede

    async def create(
        self,
        principal_id: uuid.UUID,
        role: str,
        expires_at: datetime,
        metadata: Optional[ClientMetadata] = None,
        session_id: Optional[uuid.UUID] = None,
        issued_at: Optional[datetime] = None,
    ) -> SessionRecord:
        """Append a session record; the caller commits."""
        now = issued_at or self._clock()
        if expires_at <= now:
            raise ValueError("session must expire after it is issued")

        if self.supersede:
            await self.db.execute(
                update(SessionRecord)
                .where(
                    SessionRecord.principal_id == principal_id,
                    SessionRecord.role == role,
                    SessionRecord.revoked_at.is_(None),
                )
                .values(revoked_at=now)
                .execution_options(synchronize_session=False)
            )

        record = SessionRecord(
            id=session_id or uuid.uuid4(),
            principal_id=principal_id,
            role=role,
            issued_at=now,
            expires_at=expires_at,
            ip_address=metadata.ip_address if metadata else None,
            user_agent=metadata.user_agent if metadata else None,
        )
        self.db.add(record)
        await self.db.flush()
        return record

    async def get(self, session_id: uuid.UUID) -> Optional[SessionRecord]:
        return await self.db.get(SessionRecord, session_id)

    async def revoke(self, session_id: uuid.UUID) -> tuple[SessionRecord, bool]:
        """
        Set revoked_at unless already set.

        The write is a compare-and-set on ``revoked_at IS NULL``, so of two
        concurrent revokes exactly one reports a change.

        Returns:
            (record, changed) where changed is False for an already-revoked session

        Raises:
            SessionNotFound: If no such session exists
        """
        if await self.get(session_id) is None:
            raise SessionNotFound()

        result = await self.db.execute(
            update(SessionRecord)
            .where(SessionRecord.id == session_id, SessionRecord.revoked_at.is_(None))
            .values(revoked_at=self._clock())
            .execution_options(synchronize_session=False)
        )
        changed = result.rowcount == 1
        record = await self.db.get(SessionRecord, session_id, populate_existing=True)
        return record, changed

    async def is_active(self, session_id: uuid.UUID) -> bool:
        """True iff the session exists, is not revoked and has not expired."""
        record = await self.get(session_id)
        return record is not None and record.is_active(self._clock())

    async def list_active(self, principal_id: uuid.UUID) -> List[SessionRecord]:
        now = self._clock()
        result = await self.db.execute(
            select(SessionRecord)
            .where(
                SessionRecord.principal_id == principal_id,
                SessionRecord.revoked_at.is_(None),
                SessionRecord.expires_at > now,
            )
            .order_by(SessionRecord.issued_at)
        )
        return list(result.scalars().all())
