"""
Certificate Service

Submit, list, and delete certificates with role-scoped reads:
- students see and mutate only their own rows
- recruiters read every row, joined with owner profile and institution

All lifecycle and authority checks go through CertificateLifecycle
before anything is written.
"""
import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional
from uuid import uuid4

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from ..config import PROTECT_VERIFIED_CERTIFICATES, SCORE_MAX, SCORE_MIN
from ..context import RequestContext
from ..exceptions import (
    AuthorizationError, CertificateValidationError, InvalidTransitionError,
    RecordNotFoundError,
)
from ..models.db_models import (
    AppRole, CertificateDB, CertificateStatus, CertificateType, InstitutionDB,
    ProfileDB, VerificationRecordDB,
)
from .evidence import normalize_digest, normalize_extracted_fields
from .lifecycle import CertificateLifecycle, LifecycleEvent
from .store import commit_or_raise

logger = logging.getLogger(__name__)


@dataclass
class CertificateSubmission:
    """Fields a student supplies when submitting a certificate."""
    title: str
    certificate_type: Any = CertificateType.CERTIFICATE
    institution_id: Optional[str] = None
    roll_number: Optional[str] = None
    certificate_number: Optional[str] = None
    degree_name: Optional[str] = None
    field_of_study: Optional[str] = None
    grade: Optional[str] = None
    score: Optional[float] = None
    issue_date: Optional[date] = None
    expiry_date: Optional[date] = None
    file_hash: Optional[str] = None
    ledger_digest: Optional[str] = None
    file_url: Optional[str] = None
    ocr_data: Optional[Dict[str, Any]] = None


@dataclass
class OwnerGroup:
    """One owner's certificates in the recruiter view."""
    owner: ProfileDB
    certificates: List[CertificateDB] = field(default_factory=list)


@dataclass
class RecruiterListing:
    groups: List[OwnerGroup]
    status_counts: Dict[str, int]

    @property
    def total(self) -> int:
        return sum(len(group.certificates) for group in self.groups)


def _clean(value: Optional[str]) -> Optional[str]:
    """Blank optional text becomes None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


class CertificateService:
    """Role-scoped certificate operations."""

    def __init__(
        self,
        db_session: Session,
        lifecycle: Optional[CertificateLifecycle] = None,
        score_min: Optional[float] = SCORE_MIN,
        score_max: Optional[float] = SCORE_MAX,
    ):
        """Initialize with database session."""
        self.db = db_session
        self.lifecycle = lifecycle or CertificateLifecycle(
            protect_verified=PROTECT_VERIFIED_CERTIFICATES
        )
        self.score_min = score_min
        self.score_max = score_max

    # =========================================================================
    # SUBMIT
    # =========================================================================

    def submit(self, ctx: RequestContext, submission: CertificateSubmission) -> CertificateDB:
        """
        Create a certificate owned by the acting student, in PENDING.

        Owner always comes from ctx; evidence is optional.
        """
        status = self.lifecycle.transition(None, LifecycleEvent.SUBMIT, ctx.role)

        title = _clean(submission.title)
        if not title:
            raise CertificateValidationError("Title is required", field="title")

        try:
            certificate_type = CertificateType(submission.certificate_type)
        except ValueError:
            valid = ", ".join(t.value for t in CertificateType)
            raise CertificateValidationError(
                f"Invalid certificate type. Must be one of: {valid}", field="certificate_type"
            )

        self._check_score(submission.score)

        institution_id = _clean(submission.institution_id)
        if institution_id and self.db.get(InstitutionDB, institution_id) is None:
            raise CertificateValidationError("Unknown institution", field="institution_id")

        certificate = CertificateDB(
            id=str(uuid4()),
            user_id=ctx.user_id,
            institution_id=institution_id,
            certificate_type=certificate_type,
            title=title,
            roll_number=_clean(submission.roll_number),
            certificate_number=_clean(submission.certificate_number),
            degree_name=_clean(submission.degree_name),
            field_of_study=_clean(submission.field_of_study),
            grade=_clean(submission.grade),
            score=submission.score,
            issue_date=submission.issue_date,
            expiry_date=submission.expiry_date,
            file_hash=normalize_digest(submission.file_hash, "file_hash"),
            ledger_digest=normalize_digest(submission.ledger_digest, "ledger_digest"),
            file_url=_clean(submission.file_url),
            ocr_data=normalize_extracted_fields(submission.ocr_data),
            status=status,
        )
        self.db.add(certificate)
        commit_or_raise(self.db, "certificate submission")
        self.db.refresh(certificate)

        logger.info(f"Certificate {certificate.id} submitted by {ctx.user_id} ({certificate_type.value})")
        return certificate

    def _check_score(self, score: Optional[float]) -> None:
        if score is None:
            return
        if not math.isfinite(score):
            raise CertificateValidationError("Score must be a finite number", field="score")
        if self.score_min is not None and score < self.score_min:
            raise CertificateValidationError(f"Score must be at least {self.score_min:g}", field="score")
        if self.score_max is not None and score > self.score_max:
            raise CertificateValidationError(f"Score must be at most {self.score_max:g}", field="score")

    # =========================================================================
    # READS
    # =========================================================================

    def list_for_student(self, ctx: RequestContext) -> List[CertificateDB]:
        """The acting student's own certificates, newest first."""
        if not ctx.has_role(AppRole.STUDENT):
            raise AuthorizationError("Student access required")

        return (
            self.db.query(CertificateDB)
            .options(joinedload(CertificateDB.institution))
            .filter(CertificateDB.user_id == ctx.user_id)
            .order_by(CertificateDB.created_at.desc())
            .all()
        )

    def list_for_recruiter(self, ctx: RequestContext, search: Optional[str] = None) -> RecruiterListing:
        """
        Every certificate across owners, grouped by owner.

        search matches owner name, roll number or institution name,
        case-insensitively.
        """
        if not ctx.has_role(AppRole.RECRUITER):
            raise AuthorizationError("Recruiter access required")

        query = (
            self.db.query(CertificateDB)
            .join(ProfileDB, CertificateDB.user_id == ProfileDB.id)
            .outerjoin(InstitutionDB, CertificateDB.institution_id == InstitutionDB.id)
            .options(joinedload(CertificateDB.owner), joinedload(CertificateDB.institution))
        )

        search = _clean(search)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                ProfileDB.full_name.ilike(pattern),
                CertificateDB.roll_number.ilike(pattern),
                InstitutionDB.name.ilike(pattern),
            ))

        certificates = query.order_by(
            ProfileDB.full_name, ProfileDB.id, CertificateDB.created_at.desc()
        ).all()

        groups: Dict[str, OwnerGroup] = {}
        for certificate in certificates:
            group = groups.setdefault(certificate.user_id, OwnerGroup(owner=certificate.owner))
            group.certificates.append(certificate)

        counts = Counter(c.status.value for c in certificates)
        status_counts = {status.value: counts.get(status.value, 0) for status in CertificateStatus}

        return RecruiterListing(groups=list(groups.values()), status_counts=status_counts)

    def get_visible(self, ctx: RequestContext, certificate_id: str) -> CertificateDB:
        """Certificate readable by ctx: its owner, or any recruiter."""
        certificate = self.db.get(CertificateDB, certificate_id)
        if certificate is None:
            raise RecordNotFoundError("Certificate not found")
        if certificate.user_id != ctx.user_id and not ctx.has_role(AppRole.RECRUITER):
            raise RecordNotFoundError("Certificate not found")
        return certificate

    def verification_history(self, ctx: RequestContext, certificate_id: str) -> List[VerificationRecordDB]:
        """Audit records for a certificate, newest first."""
        self.get_visible(ctx, certificate_id)
        return (
            self.db.query(VerificationRecordDB)
            .filter(VerificationRecordDB.certificate_id == certificate_id)
            .order_by(
                VerificationRecordDB.verified_at.desc(),
                VerificationRecordDB.certificate_version.desc(),
            )
            .all()
        )

    def list_institutions(self, verified_only: bool = True) -> List[InstitutionDB]:
        """Institutions for the submit form, by name."""
        query = self.db.query(InstitutionDB)
        if verified_only:
            query = query.filter(InstitutionDB.is_verified.is_(True))
        return query.order_by(InstitutionDB.name).all()

    # =========================================================================
    # DELETE
    # =========================================================================

    def delete(self, ctx: RequestContext, certificate_id: str) -> None:
        """
        Remove one of the acting student's certificates.

        Verification records are left in place.
        """
        self.lifecycle.authorize(LifecycleEvent.DELETE, ctx.role)

        certificate = self.db.get(CertificateDB, certificate_id)
        if certificate is None or certificate.user_id != ctx.user_id:
            raise RecordNotFoundError("Certificate not found")

        allowed, reason = self.lifecycle.can_transition(certificate.status, LifecycleEvent.DELETE)
        if not allowed:
            logger.warning(f"Delete of {certificate_id} refused: {reason}")
            raise InvalidTransitionError(reason)

        self.db.delete(certificate)
        commit_or_raise(self.db, "certificate deletion")

        logger.info(f"Certificate {certificate_id} deleted by {ctx.user_id}")
