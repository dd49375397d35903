"""
Actor resolution and role checks.

Authentication happens upstream: the gateway forwards the authenticated user id in
the actor header. These dependencies only turn that id into a User and enforce
coarse role requirements; per-evaluation rules live in the workflow service.
"""
import logging
from typing import Callable, List, Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from appraisal.core.config import settings
from appraisal.core.exceptions import AccessDeniedError, AuthenticationError
from appraisal.database import get_db
from appraisal.models.user import PRIVILEGED_ROLES, User, UserRole

logger = logging.getLogger(__name__)


def get_current_user(
    actor_id: Optional[str] = Header(None, alias=settings.actor_header),
    db: Session = Depends(get_db),
) -> User:
    if not actor_id:
        logger.warning("Authentication failed: missing actor header")
        raise AuthenticationError("Missing actor identity")

    try:
        user_id = int(actor_id)
    except ValueError:
        logger.warning(f"Authentication failed: malformed actor id {actor_id!r}")
        raise AuthenticationError("Malformed actor identity")

    user = db.get(User, user_id)
    if user is None:
        logger.warning(f"Authentication failed: user {user_id} not found")
        raise AuthenticationError("Unknown actor")
    if not user.is_active:
        logger.warning(f"Authentication failed: user {user_id} is inactive")
        raise AccessDeniedError("User is inactive")
    return user


def require_role(allowed_roles: List[UserRole]) -> Callable:
    """
    Dependency factory that checks if the user has one of the allowed roles.

    Usage:
        @router.get("/hr-only")
        def hr_endpoint(user: User = Depends(require_role([UserRole.HR_MANAGER]))):
            ...
    """
    def role_checker(current_user: User = Depends(get_current_user)):
        if current_user.role not in allowed_roles:
            raise AccessDeniedError(
                f"Access denied. Required roles: {[r.value for r in allowed_roles]}"
            )
        return current_user
    return role_checker


def require_hr():
    """Shorthand for the privileged roles that own groups, calendars and campaigns."""
    return require_role(sorted(PRIVILEGED_ROLES, key=lambda r: r.value))


def require_manager():
    """Shorthand for roles that may review others."""
    return require_role([UserRole.SUPER_ADMIN, UserRole.ADMIN, UserRole.HR_MANAGER, UserRole.MANAGER])
