from src.enterprise_suite.enterprise_suite.core.enums import RequirementType
from src.enterprise_suite.enterprise_suite.modules.access import evaluate_requirements
from src.enterprise_suite.enterprise_suite.modules.model import PermissionRequirement


def _req(rid, permission, kind=RequirementType.REQUIRED, group=None, active=True):
    return PermissionRequirement(
        id=rid,
        module_id=1,
        sub_module_id=None,
        component_id=None,
        permission=permission,
        requirement_type=kind,
        requirement_group=group,
        is_active=active,
    )


def test_no_active_requirements_means_open():
    assert evaluate_requirements([], set())
    assert evaluate_requirements([_req(1, "x.view", active=False)], set())


def test_required_needs_every_permission():
    reqs = [_req(1, "a"), _req(2, "b")]
    assert evaluate_requirements(reqs, {"a", "b"})
    assert not evaluate_requirements(reqs, {"a"})


def test_any_needs_one_per_group():
    reqs = [
        _req(1, "a", RequirementType.ANY),
        _req(2, "b", RequirementType.ANY),
        _req(3, "c", RequirementType.ANY, group="other"),
    ]
    assert evaluate_requirements(reqs, {"b", "c"})
    assert not evaluate_requirements(reqs, {"a", "b"})


def test_all_needs_every_permission_in_group():
    reqs = [_req(1, "a", RequirementType.ALL, "g"), _req(2, "b", RequirementType.ALL, "g")]
    assert evaluate_requirements(reqs, {"a", "b"})
    assert not evaluate_requirements(reqs, {"a"})


def test_required_and_any_combine():
    reqs = [_req(1, "base"), _req(2, "x", RequirementType.ANY), _req(3, "y", RequirementType.ANY)]
    assert evaluate_requirements(reqs, {"base", "y"})
    assert not evaluate_requirements(reqs, {"x", "y"})
