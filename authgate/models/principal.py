"""
Principal model: a role-scoped identity.

Security considerations:
- Identifier (email) is stored lower-cased and is unique per role among live rows
- Soft delete only; authentication never sees deleted principals
- All timestamps use UTC
"""

import uuid
from datetime import datetime, timezone
from typing import Optional, List

from sqlalchemy import String, Boolean, DateTime, Index, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from authgate.core.database import Base


class Principal(Base):
    """
    Role-scoped identity owned by the surrounding application.

    The same email may exist once per role (a patient and a nurse are
    different principals).
    """

    __tablename__ = "principals"
    __table_args__ = (
        # Unique among live rows only, so a deleted identity can re-register
        Index(
            "uq_principals_live_identifier_role",
            "identifier", "role",
            unique=True,
            sqlite_where=text("deleted_at IS NULL"),
            postgresql_where=text("deleted_at IS NULL"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)

    # Identity
    role: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    identifier: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    display_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Account status
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc)
    )

    # Soft delete
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    credentials: Mapped[List["Credential"]] = relationship("Credential", back_populates="principal")

    def __repr__(self) -> str:
        return f"<Principal {self.role}:{self.identifier}>"

    def soft_delete(self) -> None:
        """Mark the principal deleted; identity management owns this."""
        self.deleted_at = datetime.now(timezone.utc)


# Import for type hints (avoid circular import)
from typing import TYPE_CHECKING
if TYPE_CHECKING:
    from authgate.models.credential import Credential
