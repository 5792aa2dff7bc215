from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """A tenant user. Plain data, no database access."""

    user_id: int
    name: str
    email: str
    password_hash: str
    role: Role
    department_id: Optional[int] = None
    designation_id: Optional[int] = None
    is_active: bool = True
    date_of_joining: Optional[date] = None
    permissions: frozenset[str] = field(default_factory=frozenset)

    @property
    def is_super_admin(self) -> bool:
        return self.role == Role.SUPER_ADMIN


@dataclass(frozen=True)
class SessionUser:
    """What we store into the Flask session after login."""

    user_id: int
    name: str
    email: str
    role: Role
    department_id: Optional[int] = None
    permissions: frozenset[str] = field(default_factory=frozenset)

    @property
    def is_super_admin(self) -> bool:
        return self.role == Role.SUPER_ADMIN

    @property
    def is_admin(self) -> bool:
        return self.role in (Role.SUPER_ADMIN, Role.ADMIN)

    def has_permission(self, permission: str) -> bool:
        # super_admin holds every permission
        return self.is_super_admin or permission in self.permissions

    def to_session(self) -> dict:
        return {
            "user_id": self.user_id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
            "department_id": self.department_id,
            "permissions": sorted(self.permissions),
        }

    @classmethod
    def from_session(cls, data) -> Optional["SessionUser"]:
        if not data or "user_id" not in data:
            return None
        return cls(
            user_id=int(data["user_id"]),
            name=data.get("name") or "",
            email=data.get("email") or "",
            role=Role(data.get("role") or Role.EMPLOYEE.value),
            department_id=data.get("department_id"),
            permissions=frozenset(data.get("permissions") or ()),
        )


@dataclass(frozen=True)
class Department:
    id: int
    name: str
    manager_id: Optional[int] = None
