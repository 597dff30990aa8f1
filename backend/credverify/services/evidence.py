"""
Evidence Capture

Digest computation and well-formedness checks for uploaded certificate files.
Everything here is pure: no network, no storage I/O, no shared state, so
digests of unrelated files can be computed in parallel.
"""
import hashlib
import re
from numbers import Real
from typing import Any, Dict, Iterable, Mapping, Optional

from ..exceptions import CertificateValidationError

DIGEST_ALGORITHM = "sha256"
DIGEST_HEX_LENGTH = 64

_HEX_DIGEST = re.compile(r"^[0-9a-f]{64}$")

# Upload widget accepts PDFs and images only
ALLOWED_CONTENT_PREFIXES = ("image/",)
ALLOWED_CONTENT_TYPES = {"application/pdf"}


def compute_evidence_digest(data: bytes) -> str:
    """SHA-256 of the raw file bytes as lowercase hex."""
    return hashlib.sha256(data).hexdigest()


def digest_stream(chunks: Iterable[bytes]) -> str:
    """Digest a file read in chunks; equal to compute_evidence_digest of the joined bytes."""
    hasher = hashlib.sha256()
    for chunk in chunks:
        hasher.update(chunk)
    return hasher.hexdigest()


def normalize_digest(value: Optional[str], field: str = "file_hash") -> Optional[str]:
    """
    Lowercase and validate a hex digest.

    None and blank strings mean "no evidence" and return None.
    """
    if value is None:
        return None
    cleaned = value.strip().lower()
    if not cleaned:
        return None
    if not _HEX_DIGEST.match(cleaned):
        raise CertificateValidationError(
            f"{field} must be {DIGEST_HEX_LENGTH} hexadecimal characters", field=field
        )
    return cleaned


def validate_upload_content_type(content_type: Optional[str]) -> str:
    """Accept PDF or image uploads only."""
    ctype = (content_type or "").split(";")[0].strip().lower()
    if ctype in ALLOWED_CONTENT_TYPES or ctype.startswith(ALLOWED_CONTENT_PREFIXES):
        return ctype
    raise CertificateValidationError(
        "Invalid file type. Please upload a PDF or image file.", field="file"
    )


def normalize_extracted_fields(blob: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Check an extracted-fields blob for well-formedness.

    Keys must be non-empty strings and values string, number or boolean.
    Content is never interpreted.
    """
    if blob is None:
        return None
    if not isinstance(blob, Mapping):
        raise CertificateValidationError("ocr_data must be an object", field="ocr_data")

    normalized: Dict[str, Any] = {}
    for key, value in blob.items():
        if not isinstance(key, str) or not key.strip():
            raise CertificateValidationError("ocr_data keys must be non-empty strings", field="ocr_data")
        if not isinstance(value, (str, bool, Real)):
            raise CertificateValidationError(
                f"ocr_data['{key}'] must be a string, number or boolean", field="ocr_data"
            )
        normalized[key] = value
    return normalized
