"""
Authentication orchestrator.

Composes the credential store, password verifier, token issuer, session
registry and audit log into two operations:

- authenticate(request) -> IssuedSession
- revoke(session_id) -> RevokeOutcome

Every call runs in its own database session. Every decision point writes
exactly one SecurityEvent before returning or raising. Verification failures
are ordinary outcomes (InvalidCredentials and friends); only a failed write
is a StorageFailure, and then nothing from the call is kept.
"""

import asyncio
import secrets
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from authgate.auth.audit import AuditLog, AuditSubscriber
from authgate.auth.credentials import CredentialStore
from authgate.auth.jwt import TokenIssuer, ACCESS
from authgate.auth.password import PasswordVerifier
from authgate.auth.sessions import SessionRegistry
from authgate.auth.types import (
    ClientMetadata,
    CredentialInput,
    IssuedSession,
    LocalCredential,
    LoginRequest,
    PrincipalSnapshot,
    RevokeOutcome,
    SsoCredential,
)
from authgate.core.errors import (
    AccountUnavailable,
    AuthError,
    InvalidCredentials,
    InvalidToken,
    MissingCredentialInput,
    SessionNotFound,
    StorageFailure,
    UnknownRole,
)
from authgate.core.logging import get_logger
from authgate.core.utils import Clock, as_utc, utcnow
from authgate.models.credential import CredentialMethod
from authgate.models.principal import Principal
from authgate.models.security_event import SecurityEventType, EventSeverity
from authgate.models.session import SessionRecord

logger = get_logger("authgate.auth")


def snapshot(principal: Principal) -> PrincipalSnapshot:
    return PrincipalSnapshot(
        id=principal.id,
        identifier=principal.identifier,
        role=principal.role,
        display_name=principal.display_name,
        created_at=principal.created_at,
        updated_at=principal.updated_at,
    )


class AuthenticationOrchestrator:
    """
    Authenticate principals and manage the sessions issued to them.

    Args:
        session_maker: Factory for per-call AsyncSessions
        token_issuer: Signs access/refresh tokens
        password_verifier: Argon2id hasher/verifier
        clock: Time source for sessions and events
        roles: Role catalog; None accepts any role tag
        supersede_sessions: Revoke a principal's earlier sessions on login
        subscribers: Receive committed security events
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        token_issuer: TokenIssuer,
        password_verifier: PasswordVerifier,
        clock: Clock = utcnow,
        roles: Optional[Iterable[str]] = None,
        supersede_sessions: bool = False,
        subscribers: Sequence[AuditSubscriber] = (),
    ):
        self._session_maker = session_maker
        self._tokens = token_issuer
        self._verifier = password_verifier
        self._clock = clock
        self._roles = frozenset(roles) if roles is not None else None
        self._supersede = supersede_sessions
        self._subscribers = tuple(subscribers)
        # Unknown identifiers still pay for one hash so timing does not reveal them
        self._dummy_hash = password_verifier.hash(secrets.token_urlsafe(16))

    # ------------------------------------------------------------------
    # Unit of work
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _unit_of_work(
        self, metadata: Optional[ClientMetadata]
    ) -> AsyncIterator[Tuple[AsyncSession, AuditLog]]:
        async with self._session_maker() as db:
            audit = AuditLog(db, subscribers=self._subscribers, clock=self._clock, metadata=metadata)
            try:
                yield db, audit
            except SQLAlchemyError as exc:
                await db.rollback()
                audit.discard()
                # The rendered statement can carry bound parameters such as hashes
                cause = getattr(exc, "orig", None)
                logger.error(
                    "auth_storage_failure",
                    error=type(exc).__name__,
                    cause=type(cause).__name__ if cause is not None else None,
                )
                raise StorageFailure() from exc

    async def _commit(self, db: AsyncSession, audit: AuditLog) -> None:
        await db.commit()
        await audit.publish()

    def _reject(
        self,
        audit: AuditLog,
        error: AuthError,
        subject_id: Optional[uuid.UUID],
        role: str,
        summary: str,
        reason: str,
        severity: EventSeverity = EventSeverity.LOW,
    ) -> AuthError:
        """Record the failure event for ``error`` and hand the error back to raise."""
        audit.record(
            SecurityEventType.LOGIN_FAILURE,
            subject_id,
            summary,
            role=role,
            severity=severity,
            details={"reason": reason},
        )
        logger.warning("login_failed", role=role, reason=reason, subject_id=str(subject_id) if subject_id else None)
        return error

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    async def authenticate(
        self,
        request: LoginRequest,
        metadata: Optional[ClientMetadata] = None,
    ) -> IssuedSession:
        """
        Verify a credential and issue a session.

        Raises:
            MissingCredentialInput: Neither (or both) credential variants supplied
            InvalidCredentials: Any verification failure (AccountUnavailable included)
            StorageFailure: A session, credential or audit write failed
        """
        async with self._unit_of_work(metadata) as (db, audit):
            try:
                issued = await self._verify_and_issue(db, audit, request, metadata)
            except AuthError:
                # The failing branch already recorded its event; persist only that
                await self._commit(db, audit)
                raise
            await self._commit(db, audit)

        logger.info(
            "login_succeeded",
            role=issued.principal.role,
            subject_id=str(issued.principal.id),
            session_id=str(issued.session_id),
        )
        return issued

    async def _verify_and_issue(
        self,
        db: AsyncSession,
        audit: AuditLog,
        request: LoginRequest,
        metadata: Optional[ClientMetadata],
    ) -> IssuedSession:
        role = request.role
        identifier = request.identifier
        presented = request.credential

        if presented is None:
            raise self._reject(
                audit, MissingCredentialInput(), None, role,
                f"Login rejected for {role}: no credential supplied ({identifier})",
                reason="missing_credential_input",
            )

        if self._roles is not None and role not in self._roles:
            raise self._reject(
                audit, InvalidCredentials(), None, role,
                f"Login failed: unknown role {role!r} ({identifier})",
                reason="unknown_role",
            )

        store = CredentialStore(db)
        principal = await store.find_principal(identifier, role)

        if principal is None:
            await self._spend_hash(presented)
            deleted = await store.find_deleted_principal(identifier, role)
            if deleted is not None:
                raise self._reject(
                    audit, AccountUnavailable(), deleted.id, role,
                    f"Login failed for {role}: account deleted ({identifier})",
                    reason="account_deleted",
                    severity=EventSeverity.MEDIUM,
                )
            raise self._reject(
                audit, InvalidCredentials(), None, role,
                f"Login failed for {role}: invalid identifier ({identifier})",
                reason="unknown_identifier",
            )

        if not principal.is_active:
            await self._spend_hash(presented)
            raise self._reject(
                audit, AccountUnavailable(), principal.id, role,
                f"Login failed for {role}: account deactivated ({identifier})",
                reason="account_inactive",
                severity=EventSeverity.MEDIUM,
            )

        if isinstance(presented, LocalCredential):
            credential = await store.find_credential(principal.id, CredentialMethod.LOCAL)
            if credential is None or not credential.password_hash:
                await self._spend_hash(presented)
                raise self._reject(
                    audit, InvalidCredentials(), principal.id, role,
                    f"Failed password login for {role} {identifier}: no local credential",
                    reason="no_local_credential",
                )
            matches = await asyncio.to_thread(
                self._verifier.verify, presented.password, credential.password_hash
            )
            if not matches:
                raise self._reject(
                    audit, InvalidCredentials(), principal.id, role,
                    f"Failed password verification for {role} {identifier}",
                    reason="password_mismatch",
                )
        else:
            links = await store.find_sso_credentials(principal.id, presented.provider)
            if not links:
                raise self._reject(
                    audit, InvalidCredentials(), principal.id, role,
                    f"Failed SSO login for {role} {identifier}: no {presented.provider} link",
                    reason="no_sso_credential",
                )
            presented_key = presented.provider_key.encode()
            # Every link is compared so timing does not reveal which one matched
            matched = [
                link for link in links
                if secrets.compare_digest((link.provider_key or "").encode(), presented_key)
            ]
            credential = matched[0] if matched else None
            if credential is None:
                raise self._reject(
                    audit, InvalidCredentials(), principal.id, role,
                    f"Failed SSO login for {role} {identifier}: {presented.provider} key mismatch",
                    reason="sso_key_mismatch",
                )

        now = self._clock()
        await store.mark_authenticated(credential.id, now)

        session_id = uuid.uuid4()
        tokens = self._tokens.issue(principal.id, role, session_id=session_id)
        registry = SessionRegistry(db, clock=self._clock, supersede=self._supersede)
        await registry.create(
            principal.id,
            role,
            expires_at=tokens.access_expires_at,
            metadata=metadata,
            session_id=session_id,
            issued_at=tokens.issued_at,
        )

        audit.record(
            SecurityEventType.LOGIN_SUCCESS,
            principal.id,
            f"{role} login succeeded for {identifier}",
            role=role,
            details={"method": credential.method.value, "session_id": str(session_id)},
        )

        return IssuedSession(session_id=session_id, principal=snapshot(principal), tokens=tokens)

    async def _spend_hash(self, presented: CredentialInput) -> None:
        if isinstance(presented, LocalCredential):
            await asyncio.to_thread(self._verifier.verify, presented.password, self._dummy_hash)

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def revoke(
        self,
        session_id: uuid.UUID,
        metadata: Optional[ClientMetadata] = None,
    ) -> RevokeOutcome:
        """
        Revoke a session. Revoking an already-revoked session is a no-op
        that still succeeds and is still audited.

        Raises:
            SessionNotFound: If the session does not exist
            StorageFailure: If the revoke or its audit event cannot be written
        """
        async with self._unit_of_work(metadata) as (db, audit):
            registry = SessionRegistry(db, clock=self._clock)
            try:
                record, changed = await registry.revoke(session_id)
            except SessionNotFound:
                audit.record(
                    SecurityEventType.REVOKE,
                    None,
                    f"Revoke requested for unknown session {session_id}",
                    severity=EventSeverity.MEDIUM,
                    details={"session_id": str(session_id), "outcome": "not_found"},
                )
                await self._commit(db, audit)
                raise

            summary = (
                f"Session {session_id} revoked"
                if changed
                else f"Session {session_id} already revoked; no change"
            )
            audit.record(
                SecurityEventType.REVOKE,
                record.principal_id,
                summary,
                role=record.role,
                details={"session_id": str(session_id), "outcome": "revoked" if changed else "noop"},
            )
            await self._commit(db, audit)

        logger.info("session_revoked", session_id=str(session_id), already_revoked=not changed)
        return RevokeOutcome(
            session_id=record.id,
            revoked_at=as_utc(record.revoked_at),
            already_revoked=not changed,
        )

    async def is_active(self, session_id: uuid.UUID) -> bool:
        async with self._session_maker() as db:
            return await SessionRegistry(db, clock=self._clock).is_active(session_id)

    async def current_session(self, access_token: str) -> SessionRecord:
        """
        Resolve a bearer access token to its live session record.

        Raises:
            InvalidToken: Bad token, or its session is unknown, revoked or expired
        """
        claims = self._tokens.verify(access_token, expected_type=ACCESS)
        if not claims.sid:
            raise InvalidToken("Token carries no session")
        try:
            session_id = uuid.UUID(claims.sid)
        except ValueError as exc:
            raise InvalidToken("Token carries a malformed session id") from exc

        async with self._session_maker() as db:
            record = await SessionRegistry(db, clock=self._clock).get(session_id)
            if record is None or not record.is_active(self._clock()):
                raise InvalidToken("Session is no longer active")
            if str(record.principal_id) != claims.sub:
                raise InvalidToken("Token subject does not match session")
            return record

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    async def register(
        self,
        identifier: str,
        role: str,
        credential: CredentialInput,
        display_name: Optional[str] = None,
    ) -> PrincipalSnapshot:
        """
        Create a principal with one credential.

        Raises:
            MissingCredentialInput: If no credential variant was supplied
            UnknownRole: If a role catalog is configured and lacks ``role``
            PrincipalExists: If a live principal already holds this identity
            StorageFailure: If the rows cannot be written
        """
        if credential is None:
            raise MissingCredentialInput()
        if self._roles is not None and role not in self._roles:
            raise UnknownRole()

        password_hash = None
        if isinstance(credential, LocalCredential):
            password_hash = await asyncio.to_thread(self._verifier.hash, credential.password)
        elif not isinstance(credential, SsoCredential):
            raise TypeError(f"unsupported credential type {type(credential).__name__}")

        async with self._unit_of_work(None) as (db, audit):
            principal = await CredentialStore(db).register(
                identifier,
                role,
                credential,
                password_hash=password_hash,
                hash_algorithm=self._verifier.algorithm,
                display_name=display_name,
            )
            await self._commit(db, audit)

        logger.info("principal_registered", role=role, subject_id=str(principal.id))
        return snapshot(principal)

    async def join(
        self,
        request: LoginRequest,
        display_name: Optional[str] = None,
        metadata: Optional[ClientMetadata] = None,
    ) -> IssuedSession:
        """Register a principal and sign it in."""
        await self.register(request.identifier, request.role, request.credential, display_name=display_name)
        return await self.authenticate(request, metadata)
