"""
Recruiter API Routes

Cross-owner certificate review and verification.
"""
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..auth import require_recruiter
from ..context import RequestContext
from ..database import get_db
from ..services import CertificateService, VerificationService
from .certificates import get_certificate_service
from .schemas import (
    CertificateResponse, VerificationRecordResponse,
    certificate_response, record_response,
)

router = APIRouter(prefix="/recruiter", tags=["recruiter"])


# =============================================================================
# REQUEST/RESPONSE MODELS
# =============================================================================

class OwnerSummary(BaseModel):
    id: str
    email: str
    full_name: Optional[str] = None


class OwnerCertificates(BaseModel):
    owner: OwnerSummary
    certificates: List[CertificateResponse]


class RecruiterListResponse(BaseModel):
    total: int
    status_counts: Dict[str, int]
    owners: List[OwnerCertificates]


class VerifyRequest(BaseModel):
    """Request to run a verification decision."""
    reference_digest: Optional[str] = Field(None, description="Authoritative digest to compare against")
    notes: Optional[str] = None
    method: Optional[str] = Field(None, description="Method tag, defaults to blockchain_hash")
    ledger_reference: Optional[str] = Field(None, description="Ledger transaction reference")
    expected_version: Optional[int] = Field(None, description="Certificate version last seen by the caller")


class VerifyResponse(BaseModel):
    result: str  # success | failed
    certificate: CertificateResponse
    record: VerificationRecordResponse


def get_verification_service(db: Session = Depends(get_db)) -> VerificationService:
    return VerificationService(db)


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get("/certificates", response_model=RecruiterListResponse)
async def list_all_certificates(
    q: Optional[str] = Query(None, description="Search owner name, roll number or institution"),
    ctx: RequestContext = Depends(require_recruiter),
    service: CertificateService = Depends(get_certificate_service),
):
    """All certificates, grouped by owner."""
    listing = service.list_for_recruiter(ctx, search=q)
    return RecruiterListResponse(
        total=listing.total,
        status_counts=listing.status_counts,
        owners=[
            OwnerCertificates(
                owner=OwnerSummary(id=g.owner.id, email=g.owner.email, full_name=g.owner.full_name),
                certificates=[certificate_response(c) for c in g.certificates],
            )
            for g in listing.groups
        ],
    )


@router.post("/certificates/{certificate_id}/verify", response_model=VerifyResponse)
async def verify_certificate(
    certificate_id: str,
    request: VerifyRequest,
    ctx: RequestContext = Depends(require_recruiter),
    service: VerificationService = Depends(get_verification_service),
):
    """
    Compare the certificate's digest with the reference and record the decision.

    Mismatch is not an error: the certificate is flagged.
    """
    outcome = await service.verify(
        ctx,
        certificate_id,
        reference_digest=request.reference_digest,
        notes=request.notes,
        method=request.method,
        ledger_reference=request.ledger_reference,
        expected_version=request.expected_version,
    )
    return VerifyResponse(
        result="success" if outcome.matched else "failed",
        certificate=certificate_response(outcome.certificate),
        record=record_response(outcome.record),
    )
