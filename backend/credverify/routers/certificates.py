"""
Certificate API Routes

Student-facing endpoints: evidence digest, submit, list own, delete,
and verification history.
"""
from datetime import date
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, UploadFile, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..auth import get_current_context, require_student
from ..context import RequestContext
from ..database import get_db
from ..services import CertificateService, CertificateSubmission
from ..services.evidence import DIGEST_ALGORITHM, digest_stream, validate_upload_content_type
from .schemas import (
    CertificateResponse, InstitutionSummary, VerificationRecordResponse,
    certificate_response, record_response,
)

router = APIRouter(tags=["certificates"])

UPLOAD_CHUNK_SIZE = 1024 * 1024


# =============================================================================
# REQUEST/RESPONSE MODELS
# =============================================================================

class SubmitCertificateRequest(BaseModel):
    """Request to submit a certificate for verification."""
    title: str = Field(..., description="Certificate title")
    certificate_type: str = Field(default="certificate", description="degree, diploma, certificate, transcript, marksheet, other")
    institution_id: Optional[str] = Field(None, description="Issuing institution")
    roll_number: Optional[str] = None
    certificate_number: Optional[str] = None
    degree_name: Optional[str] = None
    field_of_study: Optional[str] = None
    grade: Optional[str] = None
    score: Optional[float] = Field(None, description="Numeric score, e.g. CGPA or percentage")
    issue_date: Optional[date] = None
    expiry_date: Optional[date] = None
    file_hash: Optional[str] = Field(None, description="SHA-256 hex digest of the uploaded file")
    ledger_digest: Optional[str] = Field(None, description="Digest anchored on the external ledger")
    file_url: Optional[str] = None
    ocr_data: Optional[Dict[str, Any]] = Field(None, description="Extracted fields")


class DigestResponse(BaseModel):
    filename: Optional[str] = None
    content_type: str
    algorithm: str
    digest: str
    size: int


class MessageResponse(BaseModel):
    message: str


def get_certificate_service(db: Session = Depends(get_db)) -> CertificateService:
    return CertificateService(db)


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get("/institutions", response_model=List[InstitutionSummary])
async def list_institutions(
    verified_only: bool = True,
    _: RequestContext = Depends(get_current_context),
    service: CertificateService = Depends(get_certificate_service),
):
    """Institutions available on the submit form."""
    return [
        InstitutionSummary(id=i.id, name=i.name, is_verified=bool(i.is_verified))
        for i in service.list_institutions(verified_only=verified_only)
    ]


@router.post("/certificates/digest", response_model=DigestResponse)
async def compute_digest(
    file: UploadFile = File(...),
    _: RequestContext = Depends(get_current_context),
):
    """
    Compute the evidence digest of an uploaded PDF or image.

    Nothing is stored.
    """
    content_type = validate_upload_content_type(file.content_type)

    size = 0

    def chunks():
        nonlocal size
        for chunk in iter(lambda: file.file.read(UPLOAD_CHUNK_SIZE), b""):
            size += len(chunk)
            yield chunk

    digest = digest_stream(chunks())
    return DigestResponse(
        filename=file.filename,
        content_type=content_type,
        algorithm=DIGEST_ALGORITHM,
        digest=digest,
        size=size,
    )


@router.post("/certificates", response_model=CertificateResponse, status_code=status.HTTP_201_CREATED)
async def submit_certificate(
    request: SubmitCertificateRequest,
    ctx: RequestContext = Depends(require_student),
    service: CertificateService = Depends(get_certificate_service),
):
    """Submit a certificate; it starts in pending."""
    certificate = service.submit(ctx, CertificateSubmission(**request.model_dump()))
    return certificate_response(certificate)


@router.get("/certificates", response_model=List[CertificateResponse])
async def list_my_certificates(
    ctx: RequestContext = Depends(require_student),
    service: CertificateService = Depends(get_certificate_service),
):
    """The signed-in student's certificates, newest first."""
    return [certificate_response(c) for c in service.list_for_student(ctx)]


@router.delete("/certificates/{certificate_id}", response_model=MessageResponse)
async def delete_certificate(
    certificate_id: str,
    ctx: RequestContext = Depends(require_student),
    service: CertificateService = Depends(get_certificate_service),
):
    """Delete one of the signed-in student's certificates."""
    service.delete(ctx, certificate_id)
    return MessageResponse(message="Certificate deleted")


@router.get("/certificates/{certificate_id}/verifications", response_model=List[VerificationRecordResponse])
async def verification_history(
    certificate_id: str,
    ctx: RequestContext = Depends(get_current_context),
    service: CertificateService = Depends(get_certificate_service),
):
    """Verification records for a certificate, newest first (owner or recruiter)."""
    return [record_response(r) for r in service.verification_history(ctx, certificate_id)]
