from __future__ import annotations

import time
from collections import Counter
from typing import Any, Callable, Iterable, Optional, Union

from ..common.logging_config import get_logger
from ..core.constants import NAVIGATION_CACHE_SECONDS
from ..core.enums import RequirementType
from ..core.exceptions import NotFoundError, ValidationError
from ..users.model import SessionUser
from .access import evaluate_requirements
from .model import Module, ModuleComponent, RegistrySnapshot, SubModule
from .repository import ModuleRegistryRepository

logger = get_logger(__name__)

PermissionSpec = Union[str, dict]


def _requirement_type(value: Any) -> RequirementType:
    try:
        return RequirementType(value or RequirementType.REQUIRED.value)
    except ValueError:
        raise ValidationError("The requirement type must be one of: required, any, all.")


def _component_dict(c: ModuleComponent) -> dict:
    return {"code": c.code, "name": c.name, "type": c.type.value, "route": c.route}


class ModulePermissionService:
    """Module permission registry: structure, access checks and maintenance.

    ``subscribed_codes`` is the set of module codes the current tenant pays
    for; ``None`` means no subscription gating (central administration).
    Core modules are always available.
    """

    def __init__(
        self,
        repo: ModuleRegistryRepository,
        *,
        ttl_seconds: int = NAVIGATION_CACHE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._repo = repo
        self._ttl = ttl_seconds
        self._clock = clock
        self._snapshot: Optional[RegistrySnapshot] = None
        self._snapshot_at = 0.0
        self._navigation: dict[tuple, tuple[float, list[dict]]] = {}

    def _registry(self) -> RegistrySnapshot:
        now = self._clock()
        if self._snapshot is None or now - self._snapshot_at > self._ttl:
            self._snapshot = self._repo.load()
            self._snapshot_at = now
        return self._snapshot

    def clear_cache(self) -> None:
        self._snapshot = None
        self._navigation.clear()

    # access checks

    def _module_allowed(
        self, reg: RegistrySnapshot, module: Module, user: Optional[SessionUser], subscribed_codes
    ) -> bool:
        if user is None or not module.is_active:
            return False
        if subscribed_codes is not None and not module.is_core and module.code not in subscribed_codes:
            return False
        if user.is_super_admin:
            return True
        return evaluate_requirements(reg.requirements_for(module_id=module.id), user.permissions)

    def _sub_module_allowed(
        self, reg: RegistrySnapshot, module: Module, sub: SubModule, user: Optional[SessionUser], subscribed_codes
    ) -> bool:
        if not sub.is_active or not self._module_allowed(reg, module, user, subscribed_codes):
            return False
        if user.is_super_admin:
            return True
        return evaluate_requirements(reg.requirements_for(module_id=module.id, sub_module_id=sub.id), user.permissions)

    def _component_allowed(
        self,
        reg: RegistrySnapshot,
        module: Module,
        sub: Optional[SubModule],
        component: ModuleComponent,
        user: Optional[SessionUser],
        subscribed_codes,
    ) -> bool:
        if not component.is_active:
            return False
        if sub is not None:
            parent_ok = self._sub_module_allowed(reg, module, sub, user, subscribed_codes)
        else:
            parent_ok = self._module_allowed(reg, module, user, subscribed_codes)
        if not parent_ok:
            return False
        if user.is_super_admin:
            return True
        return evaluate_requirements(
            reg.requirements_for(module_id=module.id, component_id=component.id), user.permissions
        )

    def user_can_access_module(
        self, user: Optional[SessionUser], module_code: str, subscribed_codes: Optional[Iterable[str]] = None
    ) -> bool:
        reg = self._registry()
        module = reg.module_by_code(module_code)
        if not module:
            return False
        return self._module_allowed(reg, module, user, _codes(subscribed_codes))

    def user_can_access_sub_module(
        self,
        user: Optional[SessionUser],
        module_code: str,
        sub_module_code: str,
        subscribed_codes: Optional[Iterable[str]] = None,
    ) -> bool:
        reg = self._registry()
        module = reg.module_by_code(module_code)
        if not module:
            return False
        sub = reg.sub_module_by_code(module.id, sub_module_code)
        if not sub:
            return False
        return self._sub_module_allowed(reg, module, sub, user, _codes(subscribed_codes))

    def user_can_access_component(
        self,
        user: Optional[SessionUser],
        module_code: str,
        sub_module_code: Optional[str],
        component_code: str,
        subscribed_codes: Optional[Iterable[str]] = None,
    ) -> bool:
        reg = self._registry()
        module = reg.module_by_code(module_code)
        if not module:
            return False
        sub = None
        if sub_module_code:
            sub = reg.sub_module_by_code(module.id, sub_module_code)
            if not sub:
                return False
        component = reg.component_by_code(module.id, sub.id if sub else None, component_code)
        if not component:
            return False
        return self._component_allowed(reg, module, sub, component, user, _codes(subscribed_codes))

    # structure and navigation

    def get_structure(self) -> list[dict]:
        reg = self._registry()
        out = []
        for module in (m for m in reg.modules if m.is_active):
            out.append(
                {
                    "id": module.id,
                    "code": module.code,
                    "name": module.name,
                    "description": module.description,
                    "icon": module.icon,
                    "route_prefix": module.route_prefix,
                    "category": module.category.value,
                    "priority": module.priority,
                    "is_core": module.is_core,
                    "permissions": [r.as_dict() for r in reg.requirements_for(module_id=module.id)],
                    "subModules": [
                        {
                            "id": sub.id,
                            "code": sub.code,
                            "name": sub.name,
                            "route": sub.route,
                            "priority": sub.priority,
                            "permissions": [
                                r.as_dict() for r in reg.requirements_for(module_id=module.id, sub_module_id=sub.id)
                            ],
                            "components": [
                                {
                                    **_component_dict(c),
                                    "id": c.id,
                                    "permissions": [
                                        r.as_dict() for r in reg.requirements_for(module_id=module.id, component_id=c.id)
                                    ],
                                }
                                for c in reg.components_of(module.id, sub.id)
                                if c.is_active
                            ],
                        }
                        for sub in reg.sub_modules_of(module.id)
                        if sub.is_active
                    ],
                }
            )
        return out

    def accessible_modules(self, user: Optional[SessionUser], subscribed_codes=None) -> list[Module]:
        reg = self._registry()
        codes = _codes(subscribed_codes)
        return [m for m in reg.modules if self._module_allowed(reg, m, user, codes)]

    def navigation_for_user(
        self,
        user: Optional[SessionUser],
        subscribed_codes=None,
        *,
        tenant_id: Optional[str] = None,
    ) -> list[dict]:
        if user is None:
            return []
        codes = _codes(subscribed_codes)
        key = (tenant_id, user.user_id, codes)
        now = self._clock()
        cached = self._navigation.get(key)
        if cached and now - cached[0] <= self._ttl:
            return cached[1]

        reg = self._registry()
        nav = []
        for module in self.accessible_modules(user, codes):
            subs = [s for s in reg.sub_modules_of(module.id) if self._sub_module_allowed(reg, module, s, user, codes)]
            nav.append(
                {
                    "code": module.code,
                    "name": module.name,
                    "icon": module.icon,
                    "route_prefix": module.route_prefix,
                    "category": module.category.value,
                    "priority": module.priority,
                    "subModules": [
                        {
                            "code": s.code,
                            "name": s.name,
                            "icon": s.icon,
                            "route": s.route,
                            "priority": s.priority,
                            "components": [
                                _component_dict(c)
                                for c in reg.components_of(module.id, s.id)
                                if self._component_allowed(reg, module, s, c, user, codes)
                            ],
                        }
                        for s in subs
                    ],
                    "components": [
                        _component_dict(c)
                        for c in reg.components_of(module.id, None)
                        if self._component_allowed(reg, module, None, c, user, codes)
                    ],
                }
            )
        for stale in [k for k, (at, _) in self._navigation.items() if now - at > self._ttl]:
            del self._navigation[stale]
        self._navigation[key] = (now, nav)
        return nav

    # maintenance

    def _require_module(self, module_id: int) -> Module:
        module = next((m for m in self._registry().modules if m.id == int(module_id)), None)
        if not module:
            raise NotFoundError("Module not found.")
        return module

    def _require_sub_module(self, sub_module_id: int) -> SubModule:
        sub = next((s for s in self._registry().sub_modules if s.id == int(sub_module_id)), None)
        if not sub:
            raise NotFoundError("Sub-module not found.")
        return sub

    def _require_component(self, component_id: int) -> ModuleComponent:
        component = next((c for c in self._registry().components if c.id == int(component_id)), None)
        if not component:
            raise NotFoundError("Component not found.")
        return component

    def assign_permission_to_module(
        self, module_id: int, permission: str, requirement_type: Any = "required", group: Optional[str] = None
    ) -> int:
        self._require_module(module_id)
        requirement_id = self._repo.upsert_requirement(
            module_id=int(module_id),
            sub_module_id=None,
            component_id=None,
            permission=permission,
            requirement_type=_requirement_type(requirement_type),
            requirement_group=group or "default",
        )
        self.clear_cache()
        return requirement_id

    def assign_permission_to_sub_module(
        self, sub_module_id: int, permission: str, requirement_type: Any = "required", group: Optional[str] = None
    ) -> int:
        sub = self._require_sub_module(sub_module_id)
        requirement_id = self._repo.upsert_requirement(
            module_id=sub.module_id,
            sub_module_id=sub.id,
            component_id=None,
            permission=permission,
            requirement_type=_requirement_type(requirement_type),
            requirement_group=group or "default",
        )
        self.clear_cache()
        return requirement_id

    def assign_permission_to_component(
        self, component_id: int, permission: str, requirement_type: Any = "required", group: Optional[str] = None
    ) -> int:
        component = self._require_component(component_id)
        requirement_id = self._repo.upsert_requirement(
            module_id=component.module_id,
            sub_module_id=component.sub_module_id,
            component_id=component.id,
            permission=permission,
            requirement_type=_requirement_type(requirement_type),
            requirement_group=group or "default",
        )
        self.clear_cache()
        return requirement_id

    def remove_requirement(self, requirement_id: int) -> bool:
        removed = self._repo.delete_requirement(requirement_id)
        self.clear_cache()
        return removed

    @staticmethod
    def _normalise_specs(permissions: Iterable[PermissionSpec]) -> list[tuple[str, RequirementType, Optional[str]]]:
        specs = []
        for spec in permissions:
            if isinstance(spec, str):
                spec = {"permission": spec}
            if not isinstance(spec, dict):
                raise ValidationError("Permissions must be names or {permission, type, group} objects.")
            name = str(spec.get("permission") or "").strip()
            if not name:
                raise ValidationError("Every permission entry needs a permission name.")
            specs.append((name, _requirement_type(spec.get("type")), spec.get("group")))
        return specs

    def _sync(
        self,
        assign: Callable[..., int],
        entity_id: int,
        specs: list[tuple[str, RequirementType, Optional[str]]],
    ) -> int:
        for name, requirement_type, group in specs:
            assign(entity_id, name, requirement_type, group)
        return len(specs)

    def sync_module_permissions(self, module_id: int, permissions: Iterable[PermissionSpec]) -> int:
        self._require_module(module_id)
        specs = self._normalise_specs(permissions)
        self._repo.delete_requirements(module_id=int(module_id), sub_module_id=None, component_id=None)
        self.clear_cache()
        return self._sync(self.assign_permission_to_module, module_id, specs)

    def sync_sub_module_permissions(self, sub_module_id: int, permissions: Iterable[PermissionSpec]) -> int:
        sub = self._require_sub_module(sub_module_id)
        specs = self._normalise_specs(permissions)
        self._repo.delete_requirements(module_id=sub.module_id, sub_module_id=sub.id, component_id=None)
        self.clear_cache()
        return self._sync(self.assign_permission_to_sub_module, sub_module_id, specs)

    def sync_component_permissions(self, component_id: int, permissions: Iterable[PermissionSpec]) -> int:
        component = self._require_component(component_id)
        specs = self._normalise_specs(permissions)
        self._repo.delete_requirements(
            module_id=component.module_id, sub_module_id=component.sub_module_id, component_id=component.id
        )
        self.clear_cache()
        return self._sync(self.assign_permission_to_component, component_id, specs)

    def create_or_update_module(self, data: dict) -> int:
        if not (data.get("code") and data.get("name")):
            raise ValidationError("A module needs a code and a name.")
        module_id = self._repo.upsert_module(data)
        self.clear_cache()
        return module_id

    def create_or_update_sub_module(self, module_id: int, data: dict) -> int:
        if not (data.get("code") and data.get("name")):
            raise ValidationError("A sub-module needs a code and a name.")
        sub_module_id = self._repo.upsert_sub_module(int(module_id), data)
        self.clear_cache()
        return sub_module_id

    def create_or_update_component(self, module_id: int, sub_module_id: Optional[int], data: dict) -> int:
        if not (data.get("code") and data.get("name")):
            raise ValidationError("A component needs a code and a name.")
        component_id = self._repo.upsert_component(int(module_id), sub_module_id, data)
        self.clear_cache()
        return component_id

    def requirements_for(self, module_code: str) -> dict:
        reg = self._registry()
        module = reg.module_by_code(module_code)
        if not module:
            return {}

        def _component_entry(c: ModuleComponent) -> dict:
            return {
                "code": c.code,
                "name": c.name,
                "permissions": [r.as_dict() for r in reg.requirements_for(module_id=module.id, component_id=c.id)],
            }

        return {
            "module": {
                "code": module.code,
                "name": module.name,
                "permissions": [r.as_dict() for r in reg.requirements_for(module_id=module.id)],
            },
            "subModules": [
                {
                    "code": s.code,
                    "name": s.name,
                    "permissions": [r.as_dict() for r in reg.requirements_for(module_id=module.id, sub_module_id=s.id)],
                    "components": [_component_entry(c) for c in reg.components_of(module.id, s.id)],
                }
                for s in reg.sub_modules_of(module.id)
            ],
            "components": [_component_entry(c) for c in reg.components_of(module.id, None)],
        }

    def statistics(self) -> dict:
        reg = self._registry()
        return {
            "total_modules": len(reg.modules),
            "active_modules": sum(1 for m in reg.modules if m.is_active),
            "total_sub_modules": len(reg.sub_modules),
            "active_sub_modules": sum(1 for s in reg.sub_modules if s.is_active),
            "total_components": len(reg.components),
            "active_components": sum(1 for c in reg.components if c.is_active),
            "total_requirements": len(reg.requirements),
            "active_requirements": sum(1 for r in reg.requirements if r.is_active),
            "modules_by_category": dict(Counter(m.category.value for m in reg.modules if m.is_active)),
            "components_by_type": dict(Counter(c.type.value for c in reg.components if c.is_active)),
        }


def _codes(subscribed_codes) -> Optional[frozenset[str]]:
    return None if subscribed_codes is None else frozenset(subscribed_codes)
