from __future__ import annotations

from typing import Iterable

from ..common.logging_config import get_logger
from ..core.enums import RequirementType
from .definitions import REGISTRY_PERMISSIONS
from .service import ModulePermissionService

logger = get_logger(__name__)

_ENTITY_KEYS = ("code", "name", "description", "icon", "route_prefix", "route", "category", "priority", "is_core", "type")


def ensure_permissions(repo, names: Iterable[str] = REGISTRY_PERMISSIONS) -> int:
    """Create the named permissions in the bound tenant database; returns how many were new."""
    created = repo.ensure_permissions(list(names))
    logger.info("Permissions ensured created=%s", created)
    return created


def _entity(data: dict) -> dict:
    return {k: data[k] for k in _ENTITY_KEYS if k in data}


def _either(permissions: Iterable[str]) -> list[dict]:
    # Any listed permission opens a module or sub-module.
    return [{"permission": p, "type": RequirementType.ANY.value, "group": "default"} for p in permissions]


def seed_module_registry(service: ModulePermissionService, definitions: list[dict]) -> dict:
    """Upsert the nested module definitions and replace their permission requirements."""
    for module in definitions:
        module_id = service.create_or_update_module(_entity(module))
        service.sync_module_permissions(module_id, _either(module.get("permissions", ())))

        for component in module.get("components", ()):
            component_id = service.create_or_update_component(module_id, None, _entity(component))
            service.sync_component_permissions(component_id, component.get("permissions", ()))

        for sub in module.get("sub_modules", ()):
            sub_module_id = service.create_or_update_sub_module(module_id, _entity(sub))
            service.sync_sub_module_permissions(sub_module_id, _either(sub.get("permissions", ())))

            for component in sub.get("components", ()):
                component_id = service.create_or_update_component(module_id, sub_module_id, _entity(component))
                service.sync_component_permissions(component_id, component.get("permissions", ()))

        logger.info("Module seeded code=%s", module["code"])

    stats = service.statistics()
    logger.info(
        "Module registry seeded modules=%s sub_modules=%s components=%s requirements=%s",
        stats["total_modules"],
        stats["total_sub_modules"],
        stats["total_components"],
        stats["total_requirements"],
    )
    return stats
