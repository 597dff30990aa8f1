"""
Certificate Lifecycle State Machine

Single CertificateStatus enum is the source of truth.
State transitions:
    (none) --submit--> PENDING
    PENDING | VERIFIED | FLAGGED --verify_success--> VERIFIED
    PENDING | VERIFIED | FLAGGED --verify_failure--> FLAGGED
    any --delete--> (removed)

REJECTED is enumerated but no event leads into it.

Authority rules:
- submit / delete: student (owner checks happen in the service layer)
- verify_*: recruiter
"""
import hmac
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Protocol, Tuple

from ..exceptions import AuthorizationError, InvalidTransitionError
from ..models.db_models import AppRole, CertificateStatus


class LifecycleEvent(str, Enum):
    """Events that move a certificate through its lifecycle."""
    SUBMIT = "submit"
    VERIFY_SUCCESS = "verify_success"
    VERIFY_FAILURE = "verify_failure"
    DELETE = "delete"


# Target of a delete: the row no longer exists
REMOVED = None

_VERIFIABLE = (CertificateStatus.PENDING, CertificateStatus.VERIFIED, CertificateStatus.FLAGGED)

# State transition map: (current_state, event) -> new_state
TRANSITIONS: Dict[Tuple[Optional[CertificateStatus], LifecycleEvent], Optional[CertificateStatus]] = {
    (None, LifecycleEvent.SUBMIT): CertificateStatus.PENDING,
    **{(state, LifecycleEvent.VERIFY_SUCCESS): CertificateStatus.VERIFIED for state in _VERIFIABLE},
    **{(state, LifecycleEvent.VERIFY_FAILURE): CertificateStatus.FLAGGED for state in _VERIFIABLE},
    **{(state, LifecycleEvent.DELETE): REMOVED for state in CertificateStatus},
}

# Which roles may trigger each event
EVENT_AUTHORITY: Dict[LifecycleEvent, FrozenSet[AppRole]] = {
    LifecycleEvent.SUBMIT: frozenset({AppRole.STUDENT}),
    LifecycleEvent.VERIFY_SUCCESS: frozenset({AppRole.RECRUITER}),
    LifecycleEvent.VERIFY_FAILURE: frozenset({AppRole.RECRUITER}),
    LifecycleEvent.DELETE: frozenset({AppRole.STUDENT}),
}

VERIFY_EVENTS = (LifecycleEvent.VERIFY_SUCCESS, LifecycleEvent.VERIFY_FAILURE)


# =============================================================================
# DIGEST COMPARISON STRATEGY
# =============================================================================

class DigestComparator(Protocol):
    """Decides whether a submitted digest matches the authoritative one."""

    def compare(self, submitted_digest: Optional[str], reference_digest: Optional[str]) -> bool:
        ...


class ExactDigestComparator:
    """Bit-for-bit hex digest equality; a missing side never matches."""

    def compare(self, submitted_digest: Optional[str], reference_digest: Optional[str]) -> bool:
        if not submitted_digest or not reference_digest:
            return False
        return hmac.compare_digest(
            submitted_digest.strip().lower().encode("ascii"),
            reference_digest.strip().lower().encode("ascii"),
        )


# =============================================================================
# STATE MACHINE
# =============================================================================

class CertificateLifecycle:
    """
    Certificate state machine with role gating.

    Transitions are deterministic given current state and event. The
    verification decision itself is delegated to a DigestComparator.
    """

    def __init__(
        self,
        comparator: Optional[DigestComparator] = None,
        protect_verified: bool = False,
    ):
        self.comparator = comparator or ExactDigestComparator()
        self.protect_verified = protect_verified

    def authorize(self, event: LifecycleEvent, role: Optional[AppRole]) -> None:
        """Raise AuthorizationError unless role may trigger event."""
        allowed = EVENT_AUTHORITY[event]
        if role not in allowed:
            roles = ", ".join(sorted(r.value for r in allowed))
            actor = role.value if role else "anonymous"
            raise AuthorizationError(f"Role '{actor}' cannot {event.value}; requires {roles}")

    def can_transition(
        self,
        current_state: Optional[CertificateStatus],
        event: LifecycleEvent,
    ) -> Tuple[bool, Optional[str]]:
        """
        Check if a state transition is allowed.

        Returns:
            Tuple of (is_allowed, error_message)
        """
        if (current_state, event) not in TRANSITIONS:
            state = current_state.value if current_state else "none"
            return False, f"Invalid transition: {state} + {event.value}"

        if (
            event == LifecycleEvent.DELETE
            and self.protect_verified
            and current_state == CertificateStatus.VERIFIED
        ):
            return False, "Verified certificates are protected from deletion"

        return True, None

    def transition(
        self,
        current_state: Optional[CertificateStatus],
        event: LifecycleEvent,
        role: Optional[AppRole],
    ) -> Optional[CertificateStatus]:
        """
        Perform a state transition.

        Returns:
            New status, or REMOVED (None) for delete

        Raises:
            AuthorizationError: role may not trigger event
            InvalidTransitionError: transition is not allowed from current_state
        """
        self.authorize(event, role)

        is_allowed, error = self.can_transition(current_state, event)
        if not is_allowed:
            raise InvalidTransitionError(error)

        return TRANSITIONS[(current_state, event)]

    def decide_verification(
        self,
        submitted_digest: Optional[str],
        reference_digest: Optional[str],
    ) -> LifecycleEvent:
        """Match -> verify_success, anything else -> verify_failure."""
        if self.comparator.compare(submitted_digest, reference_digest):
            return LifecycleEvent.VERIFY_SUCCESS
        return LifecycleEvent.VERIFY_FAILURE

    def get_available_events(self, current_state: Optional[CertificateStatus]) -> List[LifecycleEvent]:
        """
        Get list of events available from current state.

        Returns events without checking role or protection rules.
        """
        return [event for (state, event) in TRANSITIONS if state == current_state]

    def is_terminal(self, state: CertificateStatus) -> bool:
        """A state is terminal when only deletion can leave it."""
        return all(
            event == LifecycleEvent.DELETE for event in self.get_available_events(state)
        )
