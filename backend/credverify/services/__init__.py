"""
CredVerify Services

- CertificateLifecycle: state machine and digest comparison strategy
- CertificateService: submit / list / delete, role-scoped
- VerificationService: atomic verification decision + audit record
- IdentityService: accounts and sessions
- access_gate: pure view-access decisions
- evidence: file digests and blob validation
"""

from .lifecycle import CertificateLifecycle, DigestComparator, ExactDigestComparator, LifecycleEvent
from .certificate_service import CertificateService, CertificateSubmission, OwnerGroup, RecruiterListing
from .verification_service import VerificationService, VerificationOutcome
from .identity import IdentityService, AuthSession
from .access_gate import GateDecision, GateResult, evaluate_access, home_route_for
from .evidence import compute_evidence_digest, digest_stream

__all__ = [
    'CertificateLifecycle',
    'DigestComparator',
    'ExactDigestComparator',
    'LifecycleEvent',
    'CertificateService',
    'CertificateSubmission',
    'OwnerGroup',
    'RecruiterListing',
    'VerificationService',
    'VerificationOutcome',
    'IdentityService',
    'AuthSession',
    'GateDecision',
    'GateResult',
    'evaluate_access',
    'home_route_for',
    'compute_evidence_digest',
    'digest_stream',
]
