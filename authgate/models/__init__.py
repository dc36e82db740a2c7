"""
Authgate Database Models

This module exports all SQLAlchemy models for the application.
"""

from authgate.models.principal import Principal
from authgate.models.credential import Credential, CredentialMethod
from authgate.models.session import SessionRecord
from authgate.models.security_event import (
    SecurityEvent,
    SecurityEventType,
    EventSeverity,
    ImmutableEventError,
)

__all__ = [
    # Identity
    "Principal",
    "Credential",
    "CredentialMethod",
    # Sessions
    "SessionRecord",
    # Audit
    "SecurityEvent",
    "SecurityEventType",
    "EventSeverity",
    "ImmutableEventError",
]
