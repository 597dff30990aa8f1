"""CredVerify - API Routers"""
from .auth import router as auth_router
from .certificates import router as certificates_router
from .recruiter import router as recruiter_router

__all__ = [
    "auth_router",
    "certificates_router",
    "recruiter_router",
]
