from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from ..core.enums import Role
from .model import Department, User


class UserRepository(Protocol):
    """Repository interface for tenant users.

    Services depend on this interface, not on a concrete database.
    """

    def get_by_id(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def get_by_email(self, email: str) -> Optional[User]:
        raise NotImplementedError

    def create_user(
        self,
        *,
        name: str,
        email: str,
        password_hash: str,
        role: Role,
        department_id: Optional[int],
        designation_id: Optional[int],
        date_of_joining: Optional[date],
    ) -> int:
        raise NotImplementedError

    def list_active(self) -> Sequence[User]:
        raise NotImplementedError

    def permissions_for(self, user_id: int) -> frozenset[str]:
        raise NotImplementedError

    def grant_permissions(self, user_id: int, permissions: Sequence[str]) -> None:
        raise NotImplementedError

    def ensure_permissions(self, names: Sequence[str]) -> int:
        """Create missing permission names; returns how many were created."""
        raise NotImplementedError

    def get_department(self, department_id: int) -> Optional[Department]:
        raise NotImplementedError
