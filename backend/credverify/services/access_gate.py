"""
Role-Scoped Access Gate

Pure decision over (identity, role, required roles) deciding whether a
role-specific view may render. Unresolved identity is its own outcome so
the caller can wait instead of redirecting.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Collection, Dict, FrozenSet, Optional

from ..models.db_models import AppRole

LOGIN_ROUTE = "/auth"
DEFAULT_HOME_ROUTE = "/"

HOME_ROUTES: Dict[AppRole, str] = {
    AppRole.STUDENT: "/student",
    AppRole.RECRUITER: "/recruiter",
}

# Role-specific views and who may see them
VIEW_ROLES: Dict[str, FrozenSet[AppRole]] = {
    "student": frozenset({AppRole.STUDENT}),
    "recruiter": frozenset({AppRole.RECRUITER}),
}


class GateDecision(str, Enum):
    ALLOW = "allow"
    LOADING = "loading"
    REDIRECT_LOGIN = "redirect_login"
    REDIRECT_HOME = "redirect_home"


@dataclass(frozen=True)
class GateResult:
    decision: GateDecision
    redirect_to: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.decision == GateDecision.ALLOW


def home_route_for(role: Optional[AppRole]) -> str:
    """Dashboard a role lands on."""
    return HOME_ROUTES.get(role, DEFAULT_HOME_ROUTE)


def evaluate_access(
    identity: Optional[Any],
    role: Optional[AppRole],
    required_roles: Optional[Collection[AppRole]] = None,
    resolving: bool = False,
    login_route: str = LOGIN_ROUTE,
) -> GateResult:
    """
    Decide whether a view may render.

    Args:
        identity: Current identity, or None when signed out
        role: Role claim of the identity, or None when it has none
        required_roles: Roles the view accepts; empty/None accepts any signed-in identity
        resolving: True while identity/role are still being fetched

    Returns:
        GateResult with LOADING, REDIRECT_LOGIN, REDIRECT_HOME or ALLOW
    """
    if resolving:
        return GateResult(GateDecision.LOADING)

    if identity is None:
        return GateResult(GateDecision.REDIRECT_LOGIN, login_route)

    if required_roles and role not in required_roles:
        return GateResult(GateDecision.REDIRECT_HOME, home_route_for(role))

    return GateResult(GateDecision.ALLOW)
