"""
Shared response models for certificate routes.
"""
from datetime import date, datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel

from ..models.db_models import CertificateDB, VerificationRecordDB


class InstitutionSummary(BaseModel):
    id: str
    name: str
    is_verified: bool = False


class CertificateResponse(BaseModel):
    """Certificate row as returned to clients."""
    id: str
    user_id: str
    title: str
    certificate_type: str
    status: str
    version: int
    institution: Optional[InstitutionSummary] = None
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
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class VerificationRecordResponse(BaseModel):
    id: str
    certificate_id: str
    verified_by: str
    verification_status: str
    verification_method: Optional[str] = None
    notes: Optional[str] = None
    ledger_reference: Optional[str] = None
    submitted_digest: Optional[str] = None
    reference_digest: Optional[str] = None
    certificate_version: Optional[int] = None
    verified_at: Optional[datetime] = None


def certificate_response(certificate: CertificateDB) -> CertificateResponse:
    institution = certificate.institution
    return CertificateResponse(
        id=certificate.id,
        user_id=certificate.user_id,
        title=certificate.title,
        certificate_type=certificate.certificate_type.value,
        status=certificate.status.value,
        version=certificate.version,
        institution=InstitutionSummary(
            id=institution.id,
            name=institution.name,
            is_verified=bool(institution.is_verified),
        ) if institution else None,
        roll_number=certificate.roll_number,
        certificate_number=certificate.certificate_number,
        degree_name=certificate.degree_name,
        field_of_study=certificate.field_of_study,
        grade=certificate.grade,
        score=certificate.score,
        issue_date=certificate.issue_date,
        expiry_date=certificate.expiry_date,
        file_hash=certificate.file_hash,
        ledger_digest=certificate.ledger_digest,
        file_url=certificate.file_url,
        ocr_data=certificate.ocr_data,
        created_at=certificate.created_at,
        updated_at=certificate.updated_at,
    )


def record_response(record: VerificationRecordDB) -> VerificationRecordResponse:
    return VerificationRecordResponse(
        id=record.id,
        certificate_id=record.certificate_id,
        verified_by=record.verified_by,
        verification_status=record.verification_status.value,
        verification_method=record.verification_method,
        notes=record.notes,
        ledger_reference=record.ledger_reference,
        submitted_digest=record.submitted_digest,
        reference_digest=record.reference_digest,
        certificate_version=record.certificate_version,
        verified_at=record.verified_at,
    )
