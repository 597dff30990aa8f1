"""
CredVerify - Database Configuration
PostgreSQL connection using SQLAlchemy
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from .config import DATABASE_URL


def build_engine(url: str):
    """Create an engine; in-memory SQLite shares one connection across threads."""
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=False, **kwargs)
    return create_engine(url, echo=False, pool_pre_ping=True)


# Create engine
engine = build_engine(DATABASE_URL)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for ORM models
Base = declarative_base()


def get_db():
    """Dependency for FastAPI - yields database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Initialize database - create all tables."""
    from .models import db_models  # noqa: F401  registers tables on Base
    Base.metadata.create_all(bind=engine)
