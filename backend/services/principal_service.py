"""Principal resolution - maps a verified credential to an actor."""

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from models.user import ROLE_ADMIN, VALID_ROLES, User
from services.exceptions import AuthenticationError, PermissionDeniedError, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Principal:
    """The authenticated actor attached to every ledger operation."""

    id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


class PrincipalService:
    """Resolves credentials to principals and manages the user store."""

    @staticmethod
    def resolve_principal(db: Session, credential: str | None) -> Principal:
        """Resolve an already-verified credential (a user id) to a Principal.

        Raises:
            AuthenticationError: If the credential is empty, unknown, or
                belongs to a deactivated user.
        """
        if not credential:
            raise AuthenticationError("Missing credential")
        user = db.query(User).filter(User.id == credential).first()
        if user is None or not user.is_active:
            logger.info("Rejected credential for unknown or inactive user %s", credential)
            raise AuthenticationError("Invalid credential")
        return Principal(id=user.id, role=user.role)

    @staticmethod
    def require_admin(principal: Principal) -> Principal:
        """Return the principal if it has the admin role."""
        if not principal.is_admin:
            raise PermissionDeniedError(
                "This operation requires the admin role", principal_id=principal.id
            )
        return principal

    @staticmethod
    def create_user(
        db: Session, username: str, role: str, display_name: str | None = None
    ) -> User:
        """Create a user record. Used by seeding and tests."""
        if role not in VALID_ROLES:
            raise ValidationError(f"role must be one of {VALID_ROLES}", field="role")
        user = User(username=username, role=role, display_name=display_name, is_active=True)
        db.add(user)
        db.flush()
        logger.info("Created user %s with role %s", username, role)
        return user
