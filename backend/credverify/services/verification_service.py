"""
Verification Service

Recruiter-initiated verification of a certificate:
1. Role gate (recruiter only) - before any read-modify-write
2. Simulated ledger round-trip (configurable, cancellable)
3. Digest comparison via the lifecycle's DigestComparator
4. Append a VerificationRecord AND update certificate status in ONE commit

If the commit fails neither write is visible. Concurrent decisions on the
same certificate are caught by the certificate's version column.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional
from uuid import uuid4

from sqlalchemy.orm import Session

from ..config import PROTECT_VERIFIED_CERTIFICATES, VERIFICATION_LATENCY_SECONDS, VERIFICATION_METHOD
from ..context import RequestContext
from ..exceptions import ConcurrencyConflictError, InvalidTransitionError, RecordNotFoundError
from ..models.db_models import CertificateDB, VerificationRecordDB, utcnow
from .evidence import normalize_digest
from .lifecycle import VERIFY_EVENTS, CertificateLifecycle, LifecycleEvent
from .store import commit_or_raise

logger = logging.getLogger(__name__)


@dataclass
class VerificationOutcome:
    certificate: CertificateDB
    record: VerificationRecordDB
    matched: bool


class VerificationService:
    """Runs verification decisions against the lifecycle state machine."""

    def __init__(
        self,
        db_session: Session,
        lifecycle: Optional[CertificateLifecycle] = None,
        latency_seconds: float = VERIFICATION_LATENCY_SECONDS,
        method: str = VERIFICATION_METHOD,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize with database session."""
        self.db = db_session
        self.lifecycle = lifecycle or CertificateLifecycle(
            protect_verified=PROTECT_VERIFIED_CERTIFICATES
        )
        self.latency_seconds = latency_seconds
        self.method = method
        self._sleep = sleep

    async def verify(
        self,
        ctx: RequestContext,
        certificate_id: str,
        reference_digest: Optional[str] = None,
        notes: Optional[str] = None,
        method: Optional[str] = None,
        ledger_reference: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> VerificationOutcome:
        """
        Decide VERIFIED or FLAGGED for a certificate.

        Args:
            ctx: Acting identity; must hold the recruiter role
            certificate_id: Target certificate
            reference_digest: Authoritative digest; falls back to the
                certificate's ledger_digest when omitted
            notes: Free-text notes stored on the record
            method: Method tag, defaults to the configured one
            ledger_reference: External ledger transaction reference
            expected_version: Version the caller last saw; mismatch is a conflict

        Raises:
            AuthorizationError, RecordNotFoundError, InvalidTransitionError,
            ConcurrencyConflictError, StoreUnavailableError
        """
        # Both verify events share the same authority
        self.lifecycle.authorize(LifecycleEvent.VERIFY_SUCCESS, ctx.role)
        reference_digest = normalize_digest(reference_digest, "reference_digest")

        certificate = self.db.get(CertificateDB, certificate_id)
        if certificate is None:
            raise RecordNotFoundError("Certificate not found")

        if expected_version is not None and certificate.version != expected_version:
            logger.warning(
                f"Verify {certificate_id}: expected version {expected_version}, found {certificate.version}"
            )
            raise ConcurrencyConflictError("Certificate was modified by someone else, reload and retry")

        if not any(self.lifecycle.can_transition(certificate.status, e)[0] for e in VERIFY_EVENTS):
            raise InvalidTransitionError(
                f"Certificate in status {certificate.status.value} cannot be verified"
            )

        await self._wait_for_ledger(certificate_id)

        reference = reference_digest or certificate.ledger_digest
        event = self.lifecycle.decide_verification(certificate.file_hash, reference)
        new_status = self.lifecycle.transition(certificate.status, event, ctx.role)

        record = VerificationRecordDB(
            id=str(uuid4()),
            certificate_id=certificate.id,
            verified_by=ctx.user_id,
            verification_status=new_status,
            verification_method=method or self.method,
            notes=notes,
            ledger_reference=ledger_reference,
            submitted_digest=certificate.file_hash,
            reference_digest=reference,
            certificate_version=certificate.version,
        )
        self.db.add(record)

        # Always issue the UPDATE so the version check covers re-verification
        certificate.status = new_status
        certificate.updated_at = utcnow()

        commit_or_raise(self.db, "verification")
        self.db.refresh(certificate)
        self.db.refresh(record)

        matched = event == LifecycleEvent.VERIFY_SUCCESS
        logger.info(
            f"Certificate {certificate.id} {new_status.value} by {ctx.user_id} "
            f"(method={record.verification_method}, match={matched})"
        )
        return VerificationOutcome(certificate=certificate, record=record, matched=matched)

    async def _wait_for_ledger(self, certificate_id: str) -> None:
        """Simulated ledger latency; cancelling here leaves no trace."""
        if self.latency_seconds <= 0:
            return
        try:
            await self._sleep(self.latency_seconds)
        except asyncio.CancelledError:
            logger.info(f"Verification of {certificate_id} cancelled before decision")
            raise
