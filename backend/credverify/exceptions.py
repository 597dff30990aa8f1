"""
CredVerify - Domain Exceptions

Services raise these; the API layer maps them to HTTP responses.
Every failure is scoped to one operation and leaves prior state untouched.
"""


class CredVerifyError(Exception):
    """Base class for all domain errors."""
    status_code = 400
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# -----------------------------------------------------------------------------
# Validation (reported inline, never persisted)
# -----------------------------------------------------------------------------

class CertificateValidationError(CredVerifyError):
    """Missing required field or invalid value on a certificate."""
    status_code = 422

    def __init__(self, message: str, field: str = None):
        super().__init__(message)
        self.field = field


class IdentityValidationError(CredVerifyError):
    """Malformed sign-up or sign-in input."""
    status_code = 422


# -----------------------------------------------------------------------------
# Authentication / authorization (rejected before any write)
# -----------------------------------------------------------------------------

class AuthenticationError(CredVerifyError):
    """No identity, bad credentials, or an expired/revoked session."""
    status_code = 401


class AuthorizationError(CredVerifyError):
    """Identity holds the wrong role for the operation."""
    status_code = 403


class RecordNotFoundError(CredVerifyError):
    """Row does not exist or is not visible to the acting identity."""
    status_code = 404


class DuplicateIdentityError(CredVerifyError):
    """Sign-up with an email that is already registered."""
    status_code = 409


# -----------------------------------------------------------------------------
# Lifecycle
# -----------------------------------------------------------------------------

class InvalidTransitionError(CredVerifyError):
    """Raised when a certificate state transition is not allowed."""
    status_code = 409


class ConcurrencyConflictError(CredVerifyError):
    """Certificate changed since the caller last read it."""
    status_code = 409
    retryable = True


# -----------------------------------------------------------------------------
# Collaborator failure
# -----------------------------------------------------------------------------

class StoreUnavailableError(CredVerifyError):
    """Record Store unreachable or erroring; the operation had no effect."""
    status_code = 503
    retryable = True
