"""
CredVerify - Request Context

The acting identity, resolved once per request and passed explicitly to
every service call.
"""
from dataclasses import dataclass
from typing import Optional

from .models.db_models import AppRole


@dataclass(frozen=True)
class RequestContext:
    """Who is acting: identity subject id, email and role claim."""
    user_id: str
    email: str
    role: Optional[AppRole] = None
    token_id: Optional[str] = None

    def has_role(self, *roles: AppRole) -> bool:
        return self.role in roles
