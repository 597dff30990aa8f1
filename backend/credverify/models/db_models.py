"""
CredVerify - SQLAlchemy ORM Models
PostgreSQL database models for persistent storage
"""
from datetime import datetime, timezone
from enum import Enum
from sqlalchemy import (
    Column, String, Integer, Float, DateTime, Text, JSON, ForeignKey,
    Enum as SQLEnum, Boolean, Date
)
from sqlalchemy.orm import relationship
from ..database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum_values(enum_cls):
    """Persist enum values (lowercase), not member names."""
    return [member.value for member in enum_cls]


# =============================================================================
# ENUMS
# =============================================================================

class AppRole(str, Enum):
    """Role held by a profile."""
    STUDENT = "student"
    RECRUITER = "recruiter"
    INSTITUTION_ADMIN = "institution_admin"


class CertificateStatus(str, Enum):
    """Lifecycle status of a certificate."""
    PENDING = "pending"
    VERIFIED = "verified"
    FLAGGED = "flagged"
    REJECTED = "rejected"  # Enumerated, no operation produces it


class CertificateType(str, Enum):
    """Closed classification of an uploaded credential."""
    DEGREE = "degree"
    DIPLOMA = "diploma"
    CERTIFICATE = "certificate"
    TRANSCRIPT = "transcript"
    MARKSHEET = "marksheet"
    OTHER = "other"


# =============================================================================
# IDENTITY
# =============================================================================

class ProfileDB(Base):
    """Public attributes of one identity; id is the identity subject id."""
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True)  # UUID
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True)
    avatar_url = Column(String(500), nullable=True)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    role_assignment = relationship(
        "UserRoleDB", back_populates="profile", uselist=False, cascade="all, delete-orphan"
    )
    certificates = relationship("CertificateDB", back_populates="owner")


class UserRoleDB(Base):
    """Maps a profile to exactly one role."""
    __tablename__ = "user_roles"

    id = Column(String(36), primary_key=True)  # UUID
    user_id = Column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False, unique=True, index=True
    )
    role = Column(SQLEnum(AppRole, name="app_role", values_callable=_enum_values), nullable=False, default=AppRole.STUDENT)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    profile = relationship("ProfileDB", back_populates="role_assignment")


class RevokedSessionDB(Base):
    """Signed-out session tokens, keyed by JWT id."""
    __tablename__ = "revoked_sessions"

    jti = Column(String(36), primary_key=True)
    user_id = Column(String(36), nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    revoked_at = Column(DateTime(timezone=True), default=utcnow)


# =============================================================================
# INSTITUTIONS & CERTIFICATES
# =============================================================================

class InstitutionDB(Base):
    """An issuing body."""
    __tablename__ = "institutions"

    id = Column(String(36), primary_key=True)  # UUID
    name = Column(String(255), nullable=False, index=True)
    code = Column(String(50), nullable=True)
    address = Column(String(500), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    is_verified = Column(Boolean, default=False)  # Institution-level trust signal
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    certificates = relationship("CertificateDB", back_populates="institution")


class CertificateDB(Base):
    """One uploaded credential claim."""
    __tablename__ = "certificates"

    id = Column(String(36), primary_key=True)  # UUID
    user_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    institution_id = Column(String(36), ForeignKey("institutions.id", ondelete="SET NULL"), nullable=True)

    certificate_type = Column(SQLEnum(CertificateType, name="certificate_type", values_callable=_enum_values), nullable=False, default=CertificateType.CERTIFICATE)
    title = Column(String(255), nullable=False)
    roll_number = Column(String(100), nullable=True)
    certificate_number = Column(String(100), nullable=True)
    degree_name = Column(String(255), nullable=True)
    field_of_study = Column(String(255), nullable=True)
    grade = Column(String(100), nullable=True)
    score = Column(Float, nullable=True)
    issue_date = Column(Date, nullable=True)
    expiry_date = Column(Date, nullable=True)

    # Evidence
    file_hash = Column(String(64), nullable=True)      # SHA-256 of uploaded bytes
    ledger_digest = Column(String(64), nullable=True)  # Authoritative digest anchored externally
    file_url = Column(String(1000), nullable=True)
    ocr_data = Column(JSON, nullable=True)             # Extracted fields, never interpreted

    status = Column(SQLEnum(CertificateStatus, name="certificate_status", values_callable=_enum_values), nullable=False, default=CertificateStatus.PENDING, index=True)
    version = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    owner = relationship("ProfileDB", back_populates="certificates")
    institution = relationship("InstitutionDB", back_populates="certificates")


class VerificationRecordDB(Base):
    """
    Append-only audit entry for one verification decision.

    certificate_id carries no cascading FK: records persist when the
    certificate is deleted.
    """
    __tablename__ = "verification_records"

    id = Column(String(36), primary_key=True)  # UUID
    certificate_id = Column(String(36), nullable=False, index=True)
    verified_by = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)

    verification_status = Column(SQLEnum(CertificateStatus, name="certificate_status", values_callable=_enum_values), nullable=False)
    verification_method = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    ledger_reference = Column(String(255), nullable=True)  # e.g. ledger transaction hash

    # Digests compared for this decision
    submitted_digest = Column(String(64), nullable=True)
    reference_digest = Column(String(64), nullable=True)

    # Certificate version this decision was applied to; orders records with equal timestamps
    certificate_version = Column(Integer, nullable=True)

    verified_at = Column(DateTime(timezone=True), default=utcnow, index=True)

    verifier = relationship("ProfileDB")
