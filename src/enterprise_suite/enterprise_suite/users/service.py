from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from werkzeug.security import check_password_hash, generate_password_hash

from ..common.logging_config import get_logger
from ..common.validators import require_email, require_min_length, require_non_empty
from ..core.constants import MIN_PASSWORD_LENGTH
from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError, ValidationError
from .model import SessionUser, User
from .repository import UserRepository

logger = get_logger(__name__)


class AuthService:
    """Use case: authenticate user (login)."""

    def __init__(self, users: UserRepository):
        self._users = users

    def authenticate(self, email: str, password: str) -> SessionUser:
        user = self._users.get_by_email((email or "").strip().lower())
        if not user or not user.is_active:
            raise AuthenticationError("These credentials do not match our records.")

        try:
            ok = check_password_hash(user.password_hash, password or "")
        except ValueError:
            # placeholder hashes like 'CHANGE_ME'
            ok = False

        if not ok:
            logger.info("Failed login for user %s", user.user_id)
            raise AuthenticationError("These credentials do not match our records.")

        return SessionUser(
            user_id=user.user_id,
            name=user.name,
            email=user.email,
            role=user.role,
            department_id=user.department_id,
            permissions=user.permissions,
        )


class UserService:
    """Use case: manage users (admin)."""

    def __init__(self, users: UserRepository):
        self._users = users

    def create_user(
        self,
        *,
        current_user: SessionUser,
        name: str,
        email: str,
        password: str,
        role: Role = Role.EMPLOYEE,
        department_id: Optional[int] = None,
        designation_id: Optional[int] = None,
        date_of_joining: Optional[date] = None,
        permissions: Sequence[str] = (),
    ) -> int:
        if not current_user.is_admin:
            raise AuthorizationError("You do not have permission to create users.")

        name = require_non_empty(name, "name")
        email = require_email(email)
        require_min_length(password, "password", MIN_PASSWORD_LENGTH)

        if role == Role.SUPER_ADMIN and not current_user.is_super_admin:
            raise AuthorizationError("Only a super admin can create another super admin.")
        if self._users.get_by_email(email):
            raise ValidationError("The email has already been taken.")

        user_id = self._users.create_user(
            name=name,
            email=email,
            password_hash=generate_password_hash(password),
            role=role,
            department_id=department_id,
            designation_id=designation_id,
            date_of_joining=date_of_joining,
        )
        if permissions:
            self._users.grant_permissions(user_id, list(permissions))
        logger.info("User %s created by %s", user_id, current_user.user_id)
        return user_id

    def list_active(self) -> Sequence[User]:
        return self._users.list_active()

    def get_permissions(self, user_id: int) -> frozenset[str]:
        return self._users.permissions_for(user_id)
