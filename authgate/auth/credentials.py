"""
Credential store: principal and credential lookups over an AsyncSession.

Lookups never return soft-deleted credentials. Principal lookups return live
rows; a separate query tells a deleted account apart from an unknown one so
the audit trail can say which it was.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from authgate.auth.types import CredentialInput, LocalCredential, SsoCredential, normalize_identifier
from authgate.core.errors import PrincipalExists
from authgate.models.credential import Credential, CredentialMethod
from authgate.models.principal import Principal


class CredentialStore:
    """Reads principals and credentials; writes only on registration."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_principal(self, identifier: str, role: str) -> Optional[Principal]:
        """Live (not soft-deleted) principal by identifier and role."""
        result = await self.db.execute(
            select(Principal).where(
                Principal.identifier == normalize_identifier(identifier),
                Principal.role == role,
                Principal.deleted_at.is_(None),
            )
        )
        return result.scalar_one_or_none()

    async def find_deleted_principal(self, identifier: str, role: str) -> Optional[Principal]:
        """Most recently soft-deleted principal with this identity, if any."""
        result = await self.db.execute(
            select(Principal)
            .where(
                Principal.identifier == normalize_identifier(identifier),
                Principal.role == role,
                Principal.deleted_at.is_not(None),
            )
            .order_by(Principal.deleted_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def find_credential(self, principal_id: uuid.UUID, method: CredentialMethod) -> Optional[Credential]:
        """Live credential of a principal for a method (at most one live local credential exists)."""
        result = await self.db.execute(
            select(Credential)
            .where(
                Credential.principal_id == principal_id,
                Credential.method == method,
                Credential.deleted_at.is_(None),
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def find_sso_credentials(self, principal_id: uuid.UUID, provider: str) -> List[Credential]:
        """
        All live SSO links of a principal for one provider.

        A principal may hold several keys under the same provider; the caller
        compares the presented key against each so a mismatch is
        distinguishable from a missing link.
        """
        result = await self.db.execute(
            select(Credential)
            .where(
                Credential.principal_id == principal_id,
                Credential.method == CredentialMethod.SSO,
                Credential.provider == provider,
                Credential.deleted_at.is_(None),
            )
            .order_by(Credential.created_at)
        )
        return list(result.scalars().all())

    async def mark_authenticated(self, credential_id: uuid.UUID, at: datetime) -> None:
        """Compare-and-write last_authenticated_at; an older value never overwrites a newer one."""
        await self.db.execute(
            update(Credential)
            .where(
                Credential.id == credential_id,
                or_(
                    Credential.last_authenticated_at.is_(None),
                    Credential.last_authenticated_at < at,
                ),
            )
            .values(last_authenticated_at=at, updated_at=at)
            .execution_options(synchronize_session=False)
        )

    async def register(
        self,
        identifier: str,
        role: str,
        credential: CredentialInput,
        password_hash: Optional[str] = None,
        hash_algorithm: Optional[str] = None,
        display_name: Optional[str] = None,
    ) -> Principal:
        """
        Create a principal and its first credential.

        ``password_hash`` is required for a local credential; the caller hashes
        so this store never sees plaintext.

        Raises:
            PrincipalExists: If a live principal already holds this identity
        """
        if await self.find_principal(identifier, role) is not None:
            raise PrincipalExists()

        principal = Principal(
            id=uuid.uuid4(),
            identifier=normalize_identifier(identifier),
            role=role,
            display_name=display_name,
        )
        self.db.add(principal)

        if isinstance(credential, LocalCredential):
            if not password_hash:
                raise ValueError("password_hash is required for a local credential")
            self.db.add(Credential.local(principal.id, password_hash, hash_algorithm or "argon2id"))
        elif isinstance(credential, SsoCredential):
            self.db.add(Credential.sso(principal.id, credential.provider, credential.provider_key))
        else:
            raise TypeError(f"unsupported credential type {type(credential).__name__}")

        try:
            await self.db.flush()
        except IntegrityError as exc:
            # Lost a race with a concurrent registration of the same identity
            raise PrincipalExists() from exc
        return principal
