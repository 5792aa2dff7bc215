from __future__ import annotations

from collections import defaultdict
from typing import Iterable

from ..core.enums import RequirementType
from .model import PermissionRequirement

DEFAULT_GROUP = "default"


def evaluate_requirements(requirements: Iterable[PermissionRequirement], user_permissions: Iterable[str]) -> bool:
    """Check a user's permissions against one entity's requirements.

    ``required`` entries must all be held. ``any`` entries need at least one
    per group, ``all`` entries need every one per group. An entity with no
    active requirement is open.
    """
    active = [r for r in requirements if r.is_active]
    if not active:
        return True

    held = set(user_permissions)

    required = [r.permission for r in active if r.requirement_type == RequirementType.REQUIRED]
    if any(p not in held for p in required):
        return False

    any_groups: dict[str, list[str]] = defaultdict(list)
    all_groups: dict[str, list[str]] = defaultdict(list)
    for r in active:
        group = r.requirement_group or DEFAULT_GROUP
        if r.requirement_type == RequirementType.ANY:
            any_groups[group].append(r.permission)
        elif r.requirement_type == RequirementType.ALL:
            all_groups[group].append(r.permission)

    for perms in any_groups.values():
        if not any(p in held for p in perms):
            return False
    for perms in all_groups.values():
        if not all(p in held for p in perms):
            return False
    return True
