"""
Shared fixtures: in-memory SQLite store, profile factories, API client.
"""
import os

# Tests never touch PostgreSQL or wait on the simulated ledger
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["VERIFICATION_LATENCY_SECONDS"] = "0"

from uuid import uuid4

import pytest
from sqlalchemy.orm import sessionmaker

from credverify.context import RequestContext
from credverify.database import Base, build_engine
from credverify.models.db_models import AppRole, InstitutionDB, ProfileDB, UserRoleDB


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture
def engine():
    """Fresh in-memory database per test."""
    engine = build_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    """Database session for service-level tests."""
    session = session_factory()
    yield session
    session.close()


# =============================================================================
# IDENTITY FIXTURES
# =============================================================================

@pytest.fixture
def make_profile(db):
    """Insert a profile with a role and return its RequestContext."""
    def _make(role: AppRole, full_name: str = "Test User", email: str = None) -> RequestContext:
        user_id = str(uuid4())
        email = email or f"{user_id[:8]}@university.edu"
        profile = ProfileDB(id=user_id, email=email, full_name=full_name, password_hash="x")
        profile.role_assignment = UserRoleDB(id=str(uuid4()), role=role)
        db.add(profile)
        db.commit()
        return RequestContext(user_id=user_id, email=email, role=role)
    return _make


@pytest.fixture
def student(make_profile):
    return make_profile(AppRole.STUDENT, "Rahul Kumar Singh")


@pytest.fixture
def other_student(make_profile):
    return make_profile(AppRole.STUDENT, "Priya Sharma")


@pytest.fixture
def recruiter(make_profile):
    return make_profile(AppRole.RECRUITER, "Hiring Manager")


@pytest.fixture
def institution(db):
    inst = InstitutionDB(
        id=str(uuid4()),
        name="Birla Institute of Technology, Mesra",
        code="BITM",
        city="Ranchi",
        is_verified=True,
    )
    db.add(inst)
    db.commit()
    return inst


# =============================================================================
# API FIXTURES
# =============================================================================

@pytest.fixture
def client(session_factory):
    """TestClient bound to the per-test database with zero verification latency."""
    from fastapi import Depends
    from fastapi.testclient import TestClient

    from credverify.database import get_db
    from credverify.main import app
    from credverify.routers.recruiter import get_verification_service
    from credverify.services import VerificationService

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    def override_verification_service(session=Depends(get_db)):
        return VerificationService(session, latency_seconds=0)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_verification_service] = override_verification_service
    yield TestClient(app)
    app.dependency_overrides.clear()
