from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from ..core.enums import ComponentType, ModuleCategory, RequirementType


@dataclass(frozen=True)
class Module:
    id: int
    code: str
    name: str
    category: ModuleCategory
    description: Optional[str] = None
    icon: Optional[str] = None
    route_prefix: Optional[str] = None
    priority: int = 100
    is_active: bool = True
    is_core: bool = False
    settings: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SubModule:
    id: int
    module_id: int
    code: str
    name: str
    description: Optional[str] = None
    icon: Optional[str] = None
    route: Optional[str] = None
    priority: int = 100
    is_active: bool = True


@dataclass(frozen=True)
class ModuleComponent:
    id: int
    module_id: int
    sub_module_id: Optional[int]
    code: str
    name: str
    type: ComponentType = ComponentType.PAGE
    route: Optional[str] = None
    is_active: bool = True


@dataclass(frozen=True)
class PermissionRequirement:
    """One permission a module, sub-module or component asks for.

    The most specific non-null id decides which level it belongs to.
    """

    id: int
    module_id: int
    sub_module_id: Optional[int]
    component_id: Optional[int]
    permission: str
    requirement_type: RequirementType = RequirementType.REQUIRED
    requirement_group: Optional[str] = None
    is_active: bool = True

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "permission": self.permission,
            "type": self.requirement_type.value,
            "group": self.requirement_group,
        }


@dataclass(frozen=True)
class RegistrySnapshot:
    """Every registry row, loaded at once."""

    modules: tuple[Module, ...]
    sub_modules: tuple[SubModule, ...]
    components: tuple[ModuleComponent, ...]
    requirements: tuple[PermissionRequirement, ...]

    def module_by_code(self, code: str) -> Optional[Module]:
        return next((m for m in self.modules if m.code == code), None)

    def sub_modules_of(self, module_id: int) -> list[SubModule]:
        return sorted((s for s in self.sub_modules if s.module_id == module_id), key=lambda s: (s.priority, s.id))

    def sub_module_by_code(self, module_id: int, code: str) -> Optional[SubModule]:
        return next((s for s in self.sub_modules if s.module_id == module_id and s.code == code), None)

    def components_of(self, module_id: int, sub_module_id: Optional[int]) -> list[ModuleComponent]:
        return [c for c in self.components if c.module_id == module_id and c.sub_module_id == sub_module_id]

    def component_by_code(self, module_id: int, sub_module_id: Optional[int], code: str) -> Optional[ModuleComponent]:
        return next((c for c in self.components_of(module_id, sub_module_id) if c.code == code), None)

    def requirements_for(
        self,
        *,
        module_id: int,
        sub_module_id: Optional[int] = None,
        component_id: Optional[int] = None,
    ) -> list[PermissionRequirement]:
        if component_id is not None:
            return [r for r in self.requirements if r.component_id == component_id]
        if sub_module_id is not None:
            return [r for r in self.requirements if r.sub_module_id == sub_module_id and r.component_id is None]
        return [
            r
            for r in self.requirements
            if r.module_id == module_id and r.sub_module_id is None and r.component_id is None
        ]
