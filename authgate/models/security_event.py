"""
Security event model for authentication auditing.

Every authentication decision is recorded for:
- Security monitoring (brute force, enumeration attempts)
- Compliance evidence (who signed in, when, from where)
- Forensic investigation
"""

import json
import uuid
from datetime import datetime, timezone
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import String, DateTime, ForeignKey, Enum, Text, event
from sqlalchemy.orm import Mapped, mapped_column

from authgate.core.database import Base


class SecurityEventType(str, PyEnum):
    """Authentication decision points."""
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILURE = "LOGIN_FAILURE"
    REVOKE = "REVOKE"


class EventSeverity(str, PyEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class SecurityEvent(Base):
    """
    Immutable audit fact about an authentication decision.

    Security considerations:
    - Append-only: flushing an update or delete of a persisted row raises
    - subject_id is null when the principal could not be resolved
    - Timestamps are UTC
    """

    __tablename__ = "security_events"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)

    # When
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        index=True
    )

    # Who (null for failed lookups)
    subject_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("principals.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    role: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    # What
    event_type: Mapped[SecurityEventType] = mapped_column(Enum(SecurityEventType), nullable=False, index=True)
    severity: Mapped[EventSeverity] = mapped_column(Enum(EventSeverity), nullable=False, default=EventSeverity.LOW)
    summary: Mapped[str] = mapped_column(Text, nullable=False)
    details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Context for forensics
    ip_address: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    request_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    def __repr__(self) -> str:
        return f"<SecurityEvent {self.event_type.value} subject={self.subject_id} at {self.occurred_at}>"

    @classmethod
    def create(
        cls,
        event_type: SecurityEventType,
        summary: str,
        subject_id: Optional[uuid.UUID] = None,
        role: Optional[str] = None,
        severity: EventSeverity = EventSeverity.LOW,
        details: Optional[dict] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        request_id: Optional[str] = None,
        occurred_at: Optional[datetime] = None,
    ) -> "SecurityEvent":
        """Factory method to create security events."""
        return cls(
            id=uuid.uuid4(),
            event_type=event_type,
            summary=summary,
            subject_id=subject_id,
            role=role,
            severity=severity,
            details=json.dumps(details) if details else None,
            ip_address=ip_address,
            user_agent=user_agent,
            request_id=request_id,
            occurred_at=occurred_at or datetime.now(timezone.utc),
        )


class ImmutableEventError(RuntimeError):
    """Raised when code tries to change a persisted security event."""


@event.listens_for(SecurityEvent, "before_update")
def _refuse_update(mapper, connection, target):
    raise ImmutableEventError(f"security event {target.id} is append-only")


@event.listens_for(SecurityEvent, "before_delete")
def _refuse_delete(mapper, connection, target):
    raise ImmutableEventError(f"security event {target.id} is append-only")
