from __future__ import annotations

from typing import Optional, Protocol

from ..core.enums import RequirementType
from .model import RegistrySnapshot


class ModuleRegistryRepository(Protocol):
    def load(self) -> RegistrySnapshot:
        raise NotImplementedError

    def upsert_module(self, data: dict) -> int:
        """Insert or update by ``code``; returns the module id."""
        raise NotImplementedError

    def upsert_sub_module(self, module_id: int, data: dict) -> int:
        raise NotImplementedError

    def upsert_component(self, module_id: int, sub_module_id: Optional[int], data: dict) -> int:
        raise NotImplementedError

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
        raise NotImplementedError

    def delete_requirements(
        self,
        *,
        module_id: int,
        sub_module_id: Optional[int],
        component_id: Optional[int],
    ) -> int:
        """Delete the requirements that sit exactly at the given level."""
        raise NotImplementedError

    def delete_requirement(self, requirement_id: int) -> bool:
        raise NotImplementedError
