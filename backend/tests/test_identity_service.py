"""
Identity Service Tests

Sign-up, sign-in, identity resolution and sign-out against the in-memory store.
"""
from datetime import timedelta

import pytest
from jose import jwt

from credverify.exceptions import (
    AuthenticationError,
    DuplicateIdentityError,
    IdentityValidationError,
)
from credverify.models.db_models import AppRole, ProfileDB, RevokedSessionDB, UserRoleDB, utcnow
from credverify.security import create_access_token
from credverify.services.identity import IdentityService


@pytest.fixture
def identity(db):
    return IdentityService(db)


@pytest.fixture
def registered(identity):
    return identity.sign_up("rahul.singh@university.edu", "secret123", "Rahul Kumar Singh", AppRole.STUDENT)


class TestSignUp:

    def test_creates_profile_and_single_role(self, db, registered):
        profile = db.get(ProfileDB, registered.user_id)
        assert profile.email == "rahul.singh@university.edu"
        assert profile.full_name == "Rahul Kumar Singh"
        assert profile.password_hash != "secret123"
        assert db.query(UserRoleDB).filter(UserRoleDB.user_id == profile.id).count() == 1
        assert registered.role == AppRole.STUDENT
        assert registered.access_token

    def test_email_is_normalized(self, identity):
        session = identity.sign_up("Recruiter@Company.COM", "secret123", "Hiring Manager", AppRole.RECRUITER)
        assert session.email == "recruiter@company.com"

    def test_duplicate_email_rejected(self, identity, registered):
        with pytest.raises(DuplicateIdentityError):
            identity.sign_up("RAHUL.SINGH@university.edu", "another1", "Someone Else", AppRole.RECRUITER)

    @pytest.mark.parametrize("email,password,name", [
        ("not-an-email", "secret123", "Name"),
        ("a@university.edu", "12345", "Name"),
        ("a@university.edu", "secret123", "   "),
    ])
    def test_validation(self, identity, db, email, password, name):
        with pytest.raises(IdentityValidationError):
            identity.sign_up(email, password, name, AppRole.STUDENT)
        assert db.query(ProfileDB).count() == 0

    def test_unknown_role_rejected(self, identity):
        with pytest.raises(IdentityValidationError):
            identity.sign_up("a@university.edu", "secret123", "Name", "superuser")


class TestSignIn:

    def test_correct_password(self, identity, registered):
        session = identity.sign_in("rahul.singh@university.edu", "secret123")
        assert session.user_id == registered.user_id
        assert session.role == AppRole.STUDENT

    @pytest.mark.parametrize("email,password", [
        ("rahul.singh@university.edu", "wrong-password"),
        ("nobody@university.edu", "secret123"),
        ("garbage", "secret123"),
    ])
    def test_failures_share_one_message(self, identity, registered, email, password):
        with pytest.raises(AuthenticationError) as exc:
            identity.sign_in(email, password)
        assert exc.value.message == "Invalid email or password"


class TestSessions:

    def test_current_identity_from_token(self, identity, registered):
        ctx = identity.current_identity(registered.access_token)
        assert ctx.user_id == registered.user_id
        assert ctx.role == AppRole.STUDENT
        assert ctx.token_id

    @pytest.mark.parametrize("token", [None, "", "not.a.jwt"])
    def test_missing_or_bad_token(self, identity, token):
        assert identity.current_identity(token) is None

    def test_token_signed_with_other_key(self, identity, registered):
        forged = jwt.encode(
            {"sub": registered.user_id, "role": "recruiter", "jti": "forged"},
            "not-the-server-key",
            algorithm="HS256",
        )
        assert identity.current_identity(forged) is None

    def test_expired_token(self, identity, registered):
        token, _, _ = create_access_token(
            registered.user_id, registered.email, "student", expires_in=timedelta(seconds=-5)
        )
        assert identity.current_identity(token) is None

    def test_role_comes_from_role_table(self, db, identity, registered):
        assignment = db.query(UserRoleDB).filter(UserRoleDB.user_id == registered.user_id).one()
        assignment.role = AppRole.RECRUITER
        db.commit()
        assert identity.current_identity(registered.access_token).role == AppRole.RECRUITER

    def test_sign_out_revokes_token(self, identity, registered):
        identity.sign_out(registered.access_token)
        assert identity.current_identity(registered.access_token) is None

    def test_sign_out_twice_is_harmless(self, identity, registered):
        identity.sign_out(registered.access_token)
        identity.sign_out(registered.access_token)

    def test_sign_out_only_revokes_that_session(self, identity, registered):
        second = identity.sign_in("rahul.singh@university.edu", "secret123")
        identity.sign_out(registered.access_token)
        assert identity.current_identity(second.access_token) is not None

    def test_sign_out_purges_expired_revocations(self, db, identity, registered):
        db.add_all([
            RevokedSessionDB(jti="expired-jti", user_id=registered.user_id, expires_at=utcnow() - timedelta(hours=1)),
            RevokedSessionDB(jti="live-jti", user_id=registered.user_id, expires_at=utcnow() + timedelta(hours=1)),
        ])
        db.commit()

        identity.sign_out(registered.access_token)

        remaining = {row.jti for row in db.query(RevokedSessionDB).all()}
        assert "expired-jti" not in remaining
        assert "live-jti" in remaining
        assert len(remaining) == 2

    def test_sign_out_with_invalid_token(self, identity):
        with pytest.raises(AuthenticationError):
            identity.sign_out("not.a.jwt")
