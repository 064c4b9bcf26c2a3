"""
Session context for workflow calls.

The identity provider authenticates users; this module only turns a verified
uid into an explicit context object (uid + role) that is handed to every
workflow call. Nothing here is process-global.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from src.auth.names import generate_display_name
from src.core.errors import AuthorizationError
from src.database.models import User, UserRole

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionContext:
    """Caller identity for one request."""
    user_id: str
    role: UserRole = UserRole.USER
    email: Optional[str] = None
    display_name: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        """Admins and moderators may run moderation actions."""
        return self.role in (UserRole.ADMIN, UserRole.MODERATOR)


def require_admin(ctx: SessionContext) -> None:
    """Reject non-admin callers before any mutation."""
    if not ctx.is_admin:
        logger.warning(f"User {ctx.user_id} attempted an admin action")
        raise AuthorizationError("Only administrators can moderate reports.")


class SessionResolver:
    """Builds SessionContext objects from stored user profiles."""

    def __init__(self, db: Session):
        self.db = db

    def resolve(self, user_id: str) -> SessionContext:
        """
        Look up the caller's profile. Unknown users get the plain user role.

        The role is read on every call, so a role change takes effect on the
        next request.
        """
        user = self.db.get(User, user_id)
        if user is None:
            return SessionContext(user_id=user_id)

        return SessionContext(
            user_id=user.id,
            role=user.role,
            email=user.email,
            display_name=user.display_name,
        )

    def register(
        self,
        user_id: str,
        email: Optional[str] = None,
        display_name: Optional[str] = None
    ) -> User:
        """Create the profile for a newly signed-up user (idempotent)."""
        user = self.db.get(User, user_id)
        if user is not None:
            return user

        user = User(
            id=user_id,
            email=email,
            display_name=display_name or generate_display_name(),
            role=UserRole.USER,
        )
        self.db.add(user)
        self.db.commit()
        logger.info(f"Registered user {user_id} as {user.display_name}")
        return user

    def set_role(self, user_id: str, role: UserRole) -> User:
        user = self.db.get(User, user_id)
        if user is None:
            user = User(id=user_id, display_name=generate_display_name())
            self.db.add(user)
        user.role = role
        self.db.commit()
        logger.info(f"User {user_id} role set to {role.value}")
        return user
