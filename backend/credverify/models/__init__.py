"""CredVerify - Data Models"""
from .db_models import (
    # Enums
    AppRole, CertificateStatus, CertificateType,
    # Tables
    ProfileDB, UserRoleDB, RevokedSessionDB,
    InstitutionDB, CertificateDB, VerificationRecordDB,
)

__all__ = [
    "AppRole", "CertificateStatus", "CertificateType",
    "ProfileDB", "UserRoleDB", "RevokedSessionDB",
    "InstitutionDB", "CertificateDB", "VerificationRecordDB",
]
