"""
CredVerify - FastAPI Application

Main entry point for the certificate verification backend.

Architecture:
- IdentityService → RequestContext (who is acting, which role)
- Access gate → role-specific routes
- CertificateService → submit / list / delete (role-scoped reads)
- VerificationService → digest comparison → VerificationRecord + status, one commit
"""
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .config import CORS_ORIGINS, LOG_LEVEL
from .database import init_db
from .exceptions import CredVerifyError
from .routers import auth_router, certificates_router, recruiter_router

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database on startup."""
    init_db()
    yield

# Create FastAPI app
app = FastAPI(
    lifespan=lifespan,
    title="CredVerify",
    description="""
    CredVerify - Academic Certificate Verification

    Students upload credentials, recruiters review and verify them.

    ## Lifecycle
    1. **Submit** (student): certificate created as `pending`
    2. **Verify** (recruiter): file digest compared with the reference digest
       - match → `verified`, mismatch → `flagged`
       - every decision appends an immutable verification record
    3. **Delete** (owning student)
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(CredVerifyError)
async def domain_error_handler(request: Request, exc: CredVerifyError):
    """Map domain errors to JSON responses."""
    body = {"detail": exc.message, "retryable": exc.retryable}
    field = getattr(exc, "field", None)
    if field:
        body["field"] = field
    return JSONResponse(status_code=exc.status_code, content=body)


# Include routers
app.include_router(auth_router)
app.include_router(certificates_router)
app.include_router(recruiter_router)


@app.get("/")
async def root():
    """Root endpoint - API information."""
    return {
        "name": "CredVerify",
        "version": __version__,
        "description": "Certificate Verification System",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}


# For running with: python -m credverify.main
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
