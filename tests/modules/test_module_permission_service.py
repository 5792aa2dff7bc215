import pytest

from src.enterprise_suite.enterprise_suite.core.enums import RequirementType, Role
from src.enterprise_suite.enterprise_suite.core.exceptions import NotFoundError, ValidationError
from src.enterprise_suite.enterprise_suite.modules.service import ModulePermissionService
from src.enterprise_suite.enterprise_suite.users.model import SessionUser

from tests.modules.registry_fakes import FakeRegistryRepo


def _user(*perms, role=Role.EMPLOYEE):
    return SessionUser(user_id=5, name="U", email="u@example.com", role=role, permissions=frozenset(perms))


class Clock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def _service(repo=None, clock=None):
    repo = repo or FakeRegistryRepo()
    return ModulePermissionService(repo, ttl_seconds=60, clock=clock or Clock()), repo


def test_module_access_follows_any_requirements():
    svc, _ = _service()
    assert svc.user_can_access_module(_user("leaves.view"), "hrm")
    assert not svc.user_can_access_module(_user("other"), "hrm")
    assert not svc.user_can_access_module(None, "hrm")
    assert not svc.user_can_access_module(_user("hrm.view"), "missing")


def test_inactive_module_is_closed_even_to_super_admin():
    svc, _ = _service()
    assert not svc.user_can_access_module(_user(role=Role.SUPER_ADMIN), "events")


def test_subscription_gates_non_core_modules():
    svc, _ = _service()
    user = _user("hrm.view")
    assert not svc.user_can_access_module(user, "hrm", subscribed_codes=[])
    assert svc.user_can_access_module(user, "hrm", subscribed_codes=["hrm"])
    assert svc.user_can_access_module(user, "core", subscribed_codes=[])


def test_super_admin_bypasses_requirements_but_not_subscription():
    svc, _ = _service()
    boss = _user(role=Role.SUPER_ADMIN)
    assert svc.user_can_access_component(boss, "hrm", "leaves", "leave-approve")
    assert not svc.user_can_access_module(boss, "hrm", subscribed_codes=["core"])


def test_component_requires_parent_access():
    svc, _ = _service()
    assert svc.user_can_access_component(_user("leaves.view", "leaves.approve"), "hrm", "leaves", "leave-approve")
    assert not svc.user_can_access_component(_user("leaves.view"), "hrm", "leaves", "leave-approve")
    assert not svc.user_can_access_component(_user("leaves.approve"), "hrm", "leaves", "leave-approve")
    assert svc.user_can_access_component(_user("leaves.view"), "hrm", "leaves", "leave-list")


def test_sub_module_checks():
    svc, _ = _service()
    assert svc.user_can_access_sub_module(_user("hrm.view", "leaves.view"), "hrm", "leaves")
    assert not svc.user_can_access_sub_module(_user("hrm.view"), "hrm", "leaves")
    assert svc.user_can_access_sub_module(_user("hrm.view"), "hrm", "attendance")
    assert not svc.user_can_access_sub_module(_user("hrm.view"), "hrm", "payroll")


def test_navigation_lists_only_accessible_entries_in_priority_order():
    svc, _ = _service()
    nav = svc.navigation_for_user(_user("hrm.view"), tenant_id="acme")

    assert [m["code"] for m in nav] == ["core", "hrm"]
    hrm = nav[1]
    assert [s["code"] for s in hrm["subModules"]] == ["attendance"]
    assert svc.navigation_for_user(None) == []


def test_navigation_is_cached_until_ttl_or_clear():
    clock = Clock()
    svc, repo = _service(clock=clock)
    user = _user("hrm.view")
    first = svc.navigation_for_user(user, tenant_id="acme")
    assert svc.navigation_for_user(user, tenant_id="acme") is first
    assert repo.loads == 1

    clock.now = 61
    assert svc.navigation_for_user(user, tenant_id="acme") is not first
    assert repo.loads == 2

    svc.clear_cache()
    svc.user_can_access_module(user, "hrm")
    assert repo.loads == 3


def test_assign_and_sync_permissions():
    svc, repo = _service()
    svc.assign_permission_to_component(101, "leaves.approve")
    assert repo.upserted[-1]["sub_module_id"] == 10
    assert repo.upserted[-1]["requirement_type"] == RequirementType.REQUIRED

    count = svc.sync_sub_module_permissions(
        10, ["leaves.view", {"permission": "leaves.manage", "type": "any", "group": "g"}]
    )
    assert count == 2
    assert repo.deleted[-1] == {"module_id": 2, "sub_module_id": 10, "component_id": None}
    assert repo.upserted[-1]["requirement_group"] == "g"

    with pytest.raises(ValidationError):
        svc.assign_permission_to_module(2, "x", "sometimes")
    with pytest.raises(NotFoundError):
        svc.assign_permission_to_module(999, "x")


def test_sync_rejects_bad_entries_before_touching_requirements():
    svc, repo = _service()
    with pytest.raises(ValidationError):
        svc.sync_module_permissions(2, ["hrm.view", {"permission": "x", "type": "bogus"}])
    with pytest.raises(ValidationError):
        svc.sync_component_permissions(101, [{"type": "any"}])
    with pytest.raises(ValidationError):
        svc.sync_sub_module_permissions(10, ["leaves.view", 42])

    assert repo.deleted == []
    assert repo.upserted == []


def test_navigation_cache_drops_expired_entries():
    clock = Clock()
    svc, _ = _service(clock=clock)
    svc.navigation_for_user(_user("hrm.view"), tenant_id="acme")
    svc.navigation_for_user(_user("hrm.view"), tenant_id="globex")
    assert len(svc._navigation) == 2

    clock.now = 61
    svc.navigation_for_user(_user("hrm.view"), tenant_id="initech")
    assert [key[0] for key in svc._navigation] == ["initech"]

def test_create_module_needs_code_and_name():
    svc, repo = _service()
    with pytest.raises(ValidationError):
        svc.create_or_update_module({"code": "crm"})
    assert svc.create_or_update_module({"code": "crm", "name": "CRM"}) == 1


def test_statistics_and_requirements_view():
    svc, _ = _service()
    stats = svc.statistics()
    assert stats["total_modules"] == 3
    assert stats["active_modules"] == 2
    assert stats["components_by_type"] == {"page": 1, "action": 1}

    view = svc.requirements_for("hrm")
    assert [p["permission"] for p in view["module"]["permissions"]] == ["hrm.view", "leaves.view"]
    assert svc.requirements_for("nope") == {}
