"""
Record Store Helpers

Commit/rollback boundary shared by the services. A failed commit is
rolled back before the domain error is raised, so nothing from the
operation remains visible.
"""
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..exceptions import ConcurrencyConflictError, StoreUnavailableError

logger = logging.getLogger(__name__)


def commit_or_raise(db: Session, operation: str) -> None:
    """
    Commit the session as one unit.

    Raises:
        ConcurrencyConflictError: a versioned row changed underneath us
        StoreUnavailableError: any other store failure
    """
    try:
        db.commit()
    except StaleDataError as exc:
        db.rollback()
        logger.warning(f"{operation}: concurrent modification detected")
        raise ConcurrencyConflictError(
            "Certificate was modified by someone else, reload and retry"
        ) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(f"{operation}: record store failure")
        raise StoreUnavailableError(f"Could not complete {operation}, please retry") from exc
