from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..core.enums import Role
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import Department, User
from .repository import UserRepository

_SELECT = """
    SELECT id, name, email, password_hash, role, department_id, designation_id, is_active, date_of_joining
    FROM users
"""


def _row_to_user(row: dict, permissions: frozenset[str] = frozenset()) -> User:
    return User(
        user_id=int(row["id"]),
        name=row["name"],
        email=row["email"],
        password_hash=row["password_hash"],
        role=Role(row["role"]),
        department_id=row.get("department_id"),
        designation_id=row.get("designation_id"),
        is_active=bool(row.get("is_active", True)),
        date_of_joining=row.get("date_of_joining"),
        permissions=permissions,
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory):
        self._conn_factory = conn_factory

    def get_by_id(self, user_id: int) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE id=%s", (int(user_id),))
            row = fetchone(cur)
        if not row:
            return None
        return _row_to_user(row, self.permissions_for(int(row["id"])))

    def get_by_email(self, email: str) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE email=%s", ((email or "").strip().lower(),))
            row = fetchone(cur)
        if not row:
            return None
        return _row_to_user(row, self.permissions_for(int(row["id"])))

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO users(name, email, password_hash, role, department_id, designation_id,
                                  date_of_joining, is_active)
                VALUES(%s,%s,%s,%s,%s,%s,%s,1)
                """,
                (name, email, password_hash, role.value, department_id, designation_id, date_of_joining),
            )
            return int(cur.lastrowid)

    def list_active(self) -> Sequence[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE is_active=1 ORDER BY name")
            return [_row_to_user(r) for r in fetchall(cur)]

    def permissions_for(self, user_id: int) -> frozenset[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT p.name
                FROM user_permissions up
                JOIN permissions p ON p.id = up.permission_id
                WHERE up.user_id=%s
                """,
                (int(user_id),),
            )
            return frozenset(r["name"] for r in fetchall(cur))

    def grant_permissions(self, user_id: int, permissions: Sequence[str]) -> None:
        if not permissions:
            return
        names = tuple(permissions)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                INSERT IGNORE INTO user_permissions(user_id, permission_id)
                SELECT %s, id FROM permissions WHERE name IN ({in_clause(names)})
                """,
                (int(user_id),) + names,
            )

    def ensure_permissions(self, names: Sequence[str]) -> int:
        created = 0
        with db_cursor(self._conn_factory) as (_, cur):
            for name in names:
                cur.execute("INSERT IGNORE INTO permissions(name, created_at) VALUES(%s, NOW())", (name,))
                created += cur.rowcount
        return created

    def get_department(self, department_id: int) -> Optional[Department]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT id, name, manager_id FROM departments WHERE id=%s", (int(department_id),))
            row = fetchone(cur)
            if not row:
                return None
            return Department(id=int(row["id"]), name=row["name"], manager_id=row.get("manager_id"))
