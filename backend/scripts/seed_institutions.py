#!/usr/bin/env python3
"""
Institution Seed Script
Creates the verified institutions offered on the submit form and,
optionally, an institution admin account.

Usage:
    python -m scripts.seed_institutions [<admin_email> <admin_password> <full_name>]

Example:
    python -m scripts.seed_institutions registrar@bitmesra.ac.in securepassword "Registrar Office"
"""
import sys
import os
from uuid import uuid4

# Add the parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy.orm import Session
from credverify.database import SessionLocal, init_db
from credverify.exceptions import CredVerifyError
from credverify.models.db_models import AppRole, InstitutionDB
from credverify.services.identity import IdentityService

INSTITUTIONS = [
    {"name": "Birla Institute of Technology, Mesra", "code": "BITM", "city": "Ranchi", "state": "Jharkhand"},
    {"name": "Birla Institute of Technology, Sindri", "code": "BITS", "city": "Dhanbad", "state": "Jharkhand"},
    {"name": "National Institute of Technology, Jamshedpur", "code": "NITJSR", "city": "Jamshedpur", "state": "Jharkhand"},
    {"name": "RVS College of Engineering, Jamshedpur", "code": "RVSCE", "city": "Jamshedpur", "state": "Jharkhand"},
    {"name": "XLRI - Xavier School of Management", "code": "XLRI", "city": "Jamshedpur", "state": "Jharkhand"},
]


def seed_institutions(db: Session) -> int:
    """Insert missing institutions; returns how many were created."""
    created = 0
    for entry in INSTITUTIONS:
        exists = db.query(InstitutionDB).filter(InstitutionDB.code == entry["code"]).first()
        if exists:
            continue
        db.add(InstitutionDB(id=str(uuid4()), is_verified=True, **entry))
        created += 1
    db.commit()
    return created


def main():
    if len(sys.argv) not in (1, 4):
        print(__doc__)
        sys.exit(1)

    # Ensure tables exist
    init_db()

    db: Session = SessionLocal()
    try:
        created = seed_institutions(db)
        print(f"Institutions created: {created}")

        if len(sys.argv) == 4:
            email, password, full_name = sys.argv[1:4]
            IdentityService(db).sign_up(email, password, full_name, AppRole.INSTITUTION_ADMIN)
            print(f"Institution admin created: {email}")
    except CredVerifyError as e:
        print(f"Error: {e.message}")
        db.rollback()
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
