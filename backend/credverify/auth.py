"""
CredVerify - Authentication Dependencies
Resolves the bearer token to a RequestContext and gates routes by role
"""
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from .context import RequestContext
from .database import get_db
from .models.db_models import AppRole
from .services.access_gate import GateDecision, evaluate_access
from .services.identity import IdentityService

# Bearer token security; missing header is handled by the gate
security = HTTPBearer(auto_error=False)


def get_identity_service(db: Session = Depends(get_db)) -> IdentityService:
    return IdentityService(db)


async def get_optional_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    identity: IdentityService = Depends(get_identity_service),
) -> Optional[RequestContext]:
    """Current identity, or None when signed out or the token is invalid."""
    if credentials is None:
        return None
    return identity.current_identity(credentials.credentials)


async def get_current_context(
    ctx: Optional[RequestContext] = Depends(get_optional_context),
) -> RequestContext:
    """
    Dependency to get the current authenticated identity.
    Validates JWT token, revocation and profile existence.
    """
    if ctx is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return ctx


def require_roles(*roles: AppRole):
    """
    Dependency factory enforcing the access gate on a route.

    Signed out -> 401 pointing at the login route.
    Wrong role -> 403 pointing at the caller's own dashboard.
    """
    async def dependency(
        ctx: Optional[RequestContext] = Depends(get_optional_context),
    ) -> RequestContext:
        result = evaluate_access(ctx, ctx.role if ctx else None, roles)

        if result.decision == GateDecision.REDIRECT_LOGIN:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail={"message": "Could not validate credentials", "redirect_to": result.redirect_to},
                headers={"WWW-Authenticate": "Bearer"},
            )
        if result.decision != GateDecision.ALLOW:
            names = ", ".join(role.value for role in roles)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={"message": f"{names.capitalize()} access required", "redirect_to": result.redirect_to},
            )
        return ctx

    return dependency


require_student = require_roles(AppRole.STUDENT)
require_recruiter = require_roles(AppRole.RECRUITER)
