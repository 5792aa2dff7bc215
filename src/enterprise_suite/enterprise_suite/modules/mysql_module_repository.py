from __future__ import annotations

from typing import Optional

from ..core.enums import ComponentType, ModuleCategory, RequirementType
from ..database.mysql_base import db_cursor, fetchall, fetchone, json_dumps, json_loads
from .model import Module, ModuleComponent, PermissionRequirement, RegistrySnapshot, SubModule
from .repository import ModuleRegistryRepository


def _value(v):
    return v.value if hasattr(v, "value") else v


class MySQLModuleRegistryRepository(ModuleRegistryRepository):
    def __init__(self, conn_factory):
        self._conn_factory = conn_factory

    def load(self) -> RegistrySnapshot:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, code, name, description, icon, route_prefix, category, priority, is_active, is_core, settings
                FROM modules
                ORDER BY priority, id
                """
            )
            modules = tuple(
                Module(
                    id=int(r["id"]),
                    code=r["code"],
                    name=r["name"],
                    category=ModuleCategory(r["category"]),
                    description=r.get("description"),
                    icon=r.get("icon"),
                    route_prefix=r.get("route_prefix"),
                    priority=int(r.get("priority") or 100),
                    is_active=bool(r["is_active"]),
                    is_core=bool(r.get("is_core")),
                    settings=json_loads(r.get("settings"), {}),
                )
                for r in fetchall(cur)
            )

            cur.execute(
                """
                SELECT id, module_id, code, name, description, icon, route, priority, is_active
                FROM sub_modules
                ORDER BY priority, id
                """
            )
            sub_modules = tuple(
                SubModule(
                    id=int(r["id"]),
                    module_id=int(r["module_id"]),
                    code=r["code"],
                    name=r["name"],
                    description=r.get("description"),
                    icon=r.get("icon"),
                    route=r.get("route"),
                    priority=int(r.get("priority") or 100),
                    is_active=bool(r["is_active"]),
                )
                for r in fetchall(cur)
            )

            cur.execute(
                "SELECT id, module_id, sub_module_id, code, name, type, route, is_active FROM module_components ORDER BY id"
            )
            components = tuple(
                ModuleComponent(
                    id=int(r["id"]),
                    module_id=int(r["module_id"]),
                    sub_module_id=int(r["sub_module_id"]) if r.get("sub_module_id") is not None else None,
                    code=r["code"],
                    name=r["name"],
                    type=ComponentType(r["type"]),
                    route=r.get("route"),
                    is_active=bool(r["is_active"]),
                )
                for r in fetchall(cur)
            )

            cur.execute(
                """
                SELECT id, module_id, sub_module_id, component_id, permission_name, requirement_type,
                       requirement_group, is_active
                FROM module_permissions
                ORDER BY id
                """
            )
            requirements = tuple(
                PermissionRequirement(
                    id=int(r["id"]),
                    module_id=int(r["module_id"]),
                    sub_module_id=int(r["sub_module_id"]) if r.get("sub_module_id") is not None else None,
                    component_id=int(r["component_id"]) if r.get("component_id") is not None else None,
                    permission=r["permission_name"],
                    requirement_type=RequirementType(r["requirement_type"]),
                    requirement_group=r.get("requirement_group"),
                    is_active=bool(r["is_active"]),
                )
                for r in fetchall(cur)
            )
        return RegistrySnapshot(modules, sub_modules, components, requirements)

    def upsert_module(self, data: dict) -> int:
        values = (
            data["name"],
            data.get("description"),
            data.get("icon"),
            data.get("route_prefix"),
            _value(data.get("category") or ModuleCategory.CORE),
            int(data.get("priority", 100)),
            1 if data.get("is_active", True) else 0,
            1 if data.get("is_core", False) else 0,
            json_dumps(data.get("settings")),
        )
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT id FROM modules WHERE code=%s", (data["code"],))
            row = fetchone(cur)
            if row:
                cur.execute(
                    """
                    UPDATE modules
                    SET name=%s, description=%s, icon=%s, route_prefix=%s, category=%s, priority=%s,
                        is_active=%s, is_core=%s, settings=%s, updated_at=NOW()
                    WHERE id=%s
                    """,
                    values + (int(row["id"]),),
                )
                return int(row["id"])
            cur.execute(
                """
                INSERT INTO modules(code, name, description, icon, route_prefix, category, priority,
                                    is_active, is_core, settings, created_at, updated_at)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,NOW(),NOW())
                """,
                (data["code"],) + values,
            )
            return int(cur.lastrowid)

    def upsert_sub_module(self, module_id: int, data: dict) -> int:
        values = (
            data["name"],
            data.get("description"),
            data.get("icon"),
            data.get("route"),
            int(data.get("priority", 100)),
            1 if data.get("is_active", True) else 0,
        )
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT id FROM sub_modules WHERE module_id=%s AND code=%s", (int(module_id), data["code"]))
            row = fetchone(cur)
            if row:
                cur.execute(
                    """
                    UPDATE sub_modules
                    SET name=%s, description=%s, icon=%s, route=%s, priority=%s, is_active=%s, updated_at=NOW()
                    WHERE id=%s
                    """,
                    values + (int(row["id"]),),
                )
                return int(row["id"])
            cur.execute(
                """
                INSERT INTO sub_modules(module_id, code, name, description, icon, route, priority, is_active,
                                        created_at, updated_at)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,NOW(),NOW())
                """,
                (int(module_id), data["code"]) + values,
            )
            return int(cur.lastrowid)

    def upsert_component(self, module_id: int, sub_module_id: Optional[int], data: dict) -> int:
        values = (
            data["name"],
            _value(data.get("type") or ComponentType.PAGE),
            data.get("route"),
            1 if data.get("is_active", True) else 0,
        )
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT id FROM module_components WHERE module_id=%s AND sub_module_id <=> %s AND code=%s",
                (int(module_id), sub_module_id, data["code"]),
            )
            row = fetchone(cur)
            if row:
                cur.execute(
                    "UPDATE module_components SET name=%s, type=%s, route=%s, is_active=%s, updated_at=NOW() WHERE id=%s",
                    values + (int(row["id"]),),
                )
                return int(row["id"])
            cur.execute(
                """
                INSERT INTO module_components(module_id, sub_module_id, code, name, type, route, is_active,
                                              created_at, updated_at)
                VALUES(%s,%s,%s,%s,%s,%s,%s,NOW(),NOW())
                """,
                (int(module_id), sub_module_id, data["code"]) + values,
            )
            return int(cur.lastrowid)

    def upsert_requirement(
        self,
        *,
        module_id: int,
        sub_module_id: Optional[int],
        component_id: Optional[int],
        permission: str,
        requirement_type: RequirementType,
        requirement_group: Optional[str],
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id FROM module_permissions
                WHERE module_id=%s AND sub_module_id <=> %s AND component_id <=> %s AND permission_name=%s
                """,
                (int(module_id), sub_module_id, component_id, permission),
            )
            row = fetchone(cur)
            if row:
                cur.execute(
                    """
                    UPDATE module_permissions
                    SET requirement_type=%s, requirement_group=%s, is_active=1, updated_at=NOW()
                    WHERE id=%s
                    """,
                    (requirement_type.value, requirement_group, int(row["id"])),
                )
                return int(row["id"])
            cur.execute(
                """
                INSERT INTO module_permissions(module_id, sub_module_id, component_id, permission_name,
                                               requirement_type, requirement_group, is_active, created_at, updated_at)
                VALUES(%s,%s,%s,%s,%s,%s,1,NOW(),NOW())
                """,
                (int(module_id), sub_module_id, component_id, permission, requirement_type.value, requirement_group),
            )
            return int(cur.lastrowid)

    def delete_requirements(
        self,
        *,
        module_id: int,
        sub_module_id: Optional[int],
        component_id: Optional[int],
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM module_permissions WHERE module_id=%s AND sub_module_id <=> %s AND component_id <=> %s",
                (int(module_id), sub_module_id, component_id),
            )
            return int(cur.rowcount)

    def delete_requirement(self, requirement_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM module_permissions WHERE id=%s", (int(requirement_id),))
            return cur.rowcount > 0
