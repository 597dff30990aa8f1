"""
Identity Service

In-process identity provider: accounts, password sessions and the role
claim. sign_up creates the profile and its role assignment in one
transaction.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from email_validator import EmailNotValidError, validate_email
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..context import RequestContext
from ..exceptions import (
    AuthenticationError, DuplicateIdentityError, IdentityValidationError,
    StoreUnavailableError,
)
from ..models.db_models import AppRole, ProfileDB, RevokedSessionDB, UserRoleDB, utcnow
from ..security import create_access_token, decode_token, hash_password, verify_password

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
INVALID_CREDENTIALS = "Invalid email or password"


@dataclass(frozen=True)
class AuthSession:
    """An issued session."""
    access_token: str
    user_id: str
    email: str
    role: Optional[AppRole]
    expires_at: datetime
    token_type: str = "bearer"


class IdentityService:
    """Sign-up, sign-in, identity resolution and sign-out."""

    def __init__(self, db_session: Session):
        """Initialize with database session."""
        self.db = db_session

    # =========================================================================
    # ACCOUNTS
    # =========================================================================

    def sign_up(
        self,
        email: str,
        password: str,
        display_name: str,
        role: AppRole = AppRole.STUDENT,
    ) -> AuthSession:
        """Register an account with exactly one role and open a session."""
        email = self._normalize_email(email)
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise IdentityValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            )
        if not display_name or not display_name.strip():
            raise IdentityValidationError("Full name is required")
        try:
            role = AppRole(role)
        except ValueError:
            raise IdentityValidationError(f"Unknown role: {role}")

        if self._find_profile(email) is not None:
            raise DuplicateIdentityError("User already registered")

        profile = ProfileDB(
            id=str(uuid4()),
            email=email,
            full_name=display_name.strip(),
            password_hash=hash_password(password),
        )
        profile.role_assignment = UserRoleDB(id=str(uuid4()), role=role)
        self.db.add(profile)

        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise DuplicateIdentityError("User already registered")
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Sign-up failed for %s", email)
            raise StoreUnavailableError("Could not create account, please retry") from exc

        logger.info(f"User registered: {email} as {role.value}")
        return self._issue_session(profile, role)

    def sign_in(self, email: str, password: str) -> AuthSession:
        """Authenticate with email and password."""
        try:
            email = self._normalize_email(email)
        except IdentityValidationError:
            raise AuthenticationError(INVALID_CREDENTIALS)

        profile = self._find_profile(email)
        if profile is None or not verify_password(password or "", profile.password_hash):
            logger.warning(f"Failed sign-in for {email}")
            raise AuthenticationError(INVALID_CREDENTIALS)

        role = self.get_user_role(profile.id)
        logger.info(f"User logged in: {email}")
        return self._issue_session(profile, role)

    # =========================================================================
    # SESSIONS
    # =========================================================================

    def current_identity(self, token: Optional[str]) -> Optional[RequestContext]:
        """Resolve a session token to the acting identity, or None."""
        if not token:
            return None
        payload = decode_token(token)
        if payload is None or not payload.get("sub"):
            return None

        jti = payload.get("jti")
        if jti and self.db.get(RevokedSessionDB, jti) is not None:
            return None

        profile = self.db.get(ProfileDB, payload["sub"])
        if profile is None:
            return None

        # Role table is authoritative over the token claim
        return RequestContext(
            user_id=profile.id,
            email=profile.email,
            role=self.get_user_role(profile.id),
            token_id=jti,
        )

    def sign_out(self, token: str) -> None:
        """Revoke a session token."""
        payload = decode_token(token)
        if payload is None or not payload.get("jti"):
            raise AuthenticationError("Could not validate credentials")

        jti = payload["jti"]
        if self.db.get(RevokedSessionDB, jti) is not None:
            return

        exp = payload.get("exp")
        self.db.add(RevokedSessionDB(
            jti=jti,
            user_id=payload.get("sub"),
            expires_at=datetime.fromtimestamp(exp, tz=timezone.utc) if exp else None,
        ))
        try:
            # Drop revocations for tokens past their expiry
            self.db.query(RevokedSessionDB).filter(
                RevokedSessionDB.expires_at < utcnow()
            ).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Sign-out failed")
            raise StoreUnavailableError("Could not sign out, please retry") from exc

        logger.info(f"User signed out: {payload.get('email')}")

    def get_user_role(self, user_id: str) -> Optional[AppRole]:
        """Role assigned to a profile, if any."""
        assignment = self.db.query(UserRoleDB).filter(UserRoleDB.user_id == user_id).first()
        return assignment.role if assignment else None

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _find_profile(self, email: str) -> Optional[ProfileDB]:
        return self.db.query(ProfileDB).filter(ProfileDB.email == email).first()

    def _issue_session(self, profile: ProfileDB, role: Optional[AppRole]) -> AuthSession:
        token, _, expires_at = create_access_token(
            profile.id, profile.email, role.value if role else None
        )
        return AuthSession(
            access_token=token,
            user_id=profile.id,
            email=profile.email,
            role=role,
            expires_at=expires_at,
        )

    @staticmethod
    def _normalize_email(email: str) -> str:
        try:
            result = validate_email(email or "", check_deliverability=False)
        except EmailNotValidError:
            raise IdentityValidationError("Please enter a valid email address")
        return result.normalized.lower()
