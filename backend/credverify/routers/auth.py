"""
CredVerify - Authentication Router
Handles registration, login, logout, session identity and the view access gate.
"""
from datetime import datetime
from typing import Optional, Literal
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.security import HTTPAuthorizationCredentials
from pydantic import BaseModel, EmailStr, field_validator

from ..auth import security, get_current_context, get_identity_service, get_optional_context
from ..context import RequestContext
from ..models.db_models import AppRole
from ..services.access_gate import VIEW_ROLES, evaluate_access, home_route_for
from ..services.identity import AuthSession, IdentityService, MIN_PASSWORD_LENGTH

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


# =============================================================================
# PYDANTIC MODELS
# =============================================================================

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str
    full_name: str
    # institution_admin accounts are provisioned by script, not self-service
    role: Literal["student", "recruiter"] = "student"

    @field_validator('password')
    @classmethod
    def validate_password_strength(cls, v):
        if len(v) < MIN_PASSWORD_LENGTH:
            raise ValueError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters')
        return v

    @field_validator('full_name')
    @classmethod
    def validate_full_name(cls, v):
        if not v.strip():
            raise ValueError('Full name is required')
        return v.strip()


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str
    role: Optional[str] = None
    expires_at: datetime
    redirect_to: str


class MessageResponse(BaseModel):
    message: str


class UserResponse(BaseModel):
    id: str
    email: str
    role: Optional[str] = None
    home: str


class GateResponse(BaseModel):
    view: str
    decision: str
    redirect_to: Optional[str] = None


def _token_response(session: AuthSession) -> TokenResponse:
    return TokenResponse(
        access_token=session.access_token,
        token_type=session.token_type,
        user_id=session.user_id,
        role=session.role.value if session.role else None,
        expires_at=session.expires_at,
        redirect_to=home_route_for(session.role),
    )


# =============================================================================
# API ENDPOINTS
# =============================================================================

@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(request: RegisterRequest, identity: IdentityService = Depends(get_identity_service)):
    """
    Register a new account with a single role and sign it in.
    """
    session = identity.sign_up(
        email=request.email,
        password=request.password,
        display_name=request.full_name,
        role=AppRole(request.role),
    )
    return _token_response(session)


@router.post("/login", response_model=TokenResponse)
async def login(request: LoginRequest, identity: IdentityService = Depends(get_identity_service)):
    """
    Authenticate and return a JWT token plus the role's landing route.
    """
    return _token_response(identity.sign_in(request.email, request.password))


@router.post("/logout", response_model=MessageResponse)
async def logout(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    _: RequestContext = Depends(get_current_context),
    identity: IdentityService = Depends(get_identity_service),
):
    """
    Revoke the current session token.
    """
    identity.sign_out(credentials.credentials)
    return MessageResponse(message="Signed out")


@router.get("/me", response_model=UserResponse)
async def get_me(ctx: RequestContext = Depends(get_current_context)):
    """
    Get current authenticated identity and role.
    """
    return UserResponse(
        id=ctx.user_id,
        email=ctx.email,
        role=ctx.role.value if ctx.role else None,
        home=home_route_for(ctx.role),
    )


@router.get("/gate", response_model=GateResponse)
async def access_gate(
    view: str = Query(..., description="Role-specific view: student or recruiter"),
    ctx: Optional[RequestContext] = Depends(get_optional_context),
):
    """
    Decide whether the presentation layer may render a role-specific view.
    """
    required = VIEW_ROLES.get(view)
    if required is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown view: {view}")

    result = evaluate_access(ctx, ctx.role if ctx else None, required)
    return GateResponse(view=view, decision=result.decision.value, redirect_to=result.redirect_to)
