"""
Append-only audit log of authentication decisions.

Events are added to the caller's unit of work and become durable when it
commits; audit is not best-effort, so a failed write fails the whole call.
Once committed, events are handed to subscribers (e.g. an incident
management system) through the AuditSubscriber port.
"""

import uuid
from typing import Optional, Protocol, Sequence, List, Dict, Any

from sqlalchemy.ext.asyncio import AsyncSession

from authgate.auth.types import ClientMetadata
from authgate.core.logging import get_logger
from authgate.core.utils import Clock, utcnow
from authgate.models.security_event import SecurityEvent, SecurityEventType, EventSeverity

logger = get_logger("authgate.audit")


class AuditSubscriber(Protocol):
    """Receives security events after they are committed."""

    async def on_security_event(self, event: SecurityEvent) -> None:
        ...


class AuditLog:
    """
    Record security events. There is deliberately no update or delete.

    Usage:
        audit = AuditLog(db, subscribers=[incidents])
        audit.record(SecurityEventType.LOGIN_FAILURE, None, "unknown identifier")
        await db.commit()
        await audit.publish()
    """

    def __init__(
        self,
        db: AsyncSession,
        subscribers: Sequence[AuditSubscriber] = (),
        clock: Clock = utcnow,
        metadata: Optional[ClientMetadata] = None,
    ):
        self.db = db
        self.subscribers = subscribers
        self._clock = clock
        self._metadata = metadata
        self._pending: List[SecurityEvent] = []

    def record(
        self,
        event_type: SecurityEventType,
        subject_id: Optional[uuid.UUID],
        summary: str,
        role: Optional[str] = None,
        severity: EventSeverity = EventSeverity.LOW,
        details: Optional[Dict[str, Any]] = None,
    ) -> SecurityEvent:
        """Add a security event to the current unit of work."""
        meta = self._metadata or ClientMetadata()
        security_event = SecurityEvent.create(
            event_type=event_type,
            summary=summary,
            subject_id=subject_id,
            role=role,
            severity=severity,
            details=details,
            ip_address=meta.ip_address,
            user_agent=meta.user_agent,
            request_id=meta.request_id,
            occurred_at=self._clock(),
        )
        self.db.add(security_event)
        self._pending.append(security_event)
        return security_event

    def discard(self) -> None:
        """Forget events whose unit of work was rolled back."""
        self._pending.clear()

    async def publish(self) -> None:
        """Notify subscribers of committed events, in recording order."""
        events, self._pending = self._pending, []
        for security_event in events:
            for subscriber in self.subscribers:
                try:
                    await subscriber.on_security_event(security_event)
                except Exception:
                    # The event is already durable; a broken subscriber must not undo it
                    logger.exception(
                        "audit_subscriber_failed",
                        subscriber=type(subscriber).__name__,
                        event_id=str(security_event.id),
                    )
