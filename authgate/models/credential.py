"""
Credential model: proof material for a Principal.

Security considerations:
- Local passwords are stored only as Argon2id hashes
- SSO credentials store the provider name and the provider-scoped key;
  the provider itself is trusted to have authenticated the user
- At most one live local credential and one live (provider, key) pair
  per principal, enforced with partial unique indexes
- Only last_authenticated_at changes after creation
"""

import uuid
from datetime import datetime, timezone
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import String, DateTime, ForeignKey, Enum, Index, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from authgate.core.database import Base


class CredentialMethod(str, PyEnum):
    """How a credential proves identity."""
    LOCAL = "local"
    SSO = "sso"


class Credential(Base):
    """A password hash or federated identity link for a principal."""

    __tablename__ = "credentials"
    __table_args__ = (
        Index(
            "uq_credentials_live_local",
            "principal_id",
            unique=True,
            sqlite_where=text("method = 'LOCAL' AND deleted_at IS NULL"),
            postgresql_where=text("method = 'LOCAL' AND deleted_at IS NULL"),
        ),
        Index(
            "uq_credentials_live_sso",
            "principal_id", "provider", "provider_key",
            unique=True,
            sqlite_where=text("deleted_at IS NULL"),
            postgresql_where=text("deleted_at IS NULL"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    principal_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("principals.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    method: Mapped[CredentialMethod] = mapped_column(Enum(CredentialMethod), nullable=False)

    # Local
    password_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    hash_algorithm: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    # SSO
    provider: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    provider_key: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    last_authenticated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

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
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    principal: Mapped["Principal"] = relationship("Principal", back_populates="credentials")

    def __repr__(self) -> str:
        if self.method == CredentialMethod.SSO:
            return f"<Credential sso:{self.provider} for {self.principal_id}>"
        return f"<Credential local for {self.principal_id}>"

    @classmethod
    def local(cls, principal_id: uuid.UUID, password_hash: str, hash_algorithm: str = "argon2id") -> "Credential":
        """Factory for a local password credential."""
        return cls(
            principal_id=principal_id,
            method=CredentialMethod.LOCAL,
            password_hash=password_hash,
            hash_algorithm=hash_algorithm,
        )

    @classmethod
    def sso(cls, principal_id: uuid.UUID, provider: str, provider_key: str) -> "Credential":
        """Factory for a federated credential."""
        return cls(
            principal_id=principal_id,
            method=CredentialMethod.SSO,
            provider=provider,
            provider_key=provider_key,
        )


# Import for type hints
from typing import TYPE_CHECKING
if TYPE_CHECKING:
    from authgate.models.principal import Principal
