from datetime import datetime

import pytest

from src.enterprise_suite.enterprise_suite.core.enums import BillingCycle, SubscriptionStatus
from src.enterprise_suite.enterprise_suite.core.exceptions import ConflictError, NotFoundError, ValidationError
from src.enterprise_suite.enterprise_suite.subscriptions.model import SubscriptionModule, TenantSubscription
from src.enterprise_suite.enterprise_suite.subscriptions.seeder import DEFAULT_PLANS, seed_subscriptions
from src.enterprise_suite.enterprise_suite.subscriptions.service import SubscriptionAdminService

from tests.subscriptions.subscription_fakes import FakeSubscriptionRepo, registry_modules

NOW = datetime(2026, 5, 1, 12, 0)


def _service(**kwargs):
    repo = FakeSubscriptionRepo(**kwargs)
    return SubscriptionAdminService(repo, clock=lambda: NOW), repo


def _plan_data(**overrides):
    data = {"name": "Basic", "slug": "basic", "monthly_price": "10", "yearly_price": 100}
    data.update(overrides)
    return data


def _subscription(tenant_id, status, cycle=BillingCycle.MONTHLY, total=30.0, ends_at=None):
    return TenantSubscription(
        id=0,
        tenant_id=tenant_id,
        plan_id=1,
        billing_cycle=cycle,
        status=status,
        total_amount=total,
        starts_at=datetime(2026, 4, 1),
        ends_at=ends_at,
        modules=(SubscriptionModule(module_id=2, price=15.0, code="HRM"),),
    )


def test_create_plan_validates_slug_and_prices():
    svc, _ = _service()
    plan = svc.create_plan(_plan_data())
    assert plan.monthly_price == 10.0

    with pytest.raises(ValidationError, match="taken"):
        svc.create_plan(_plan_data(name="Other"))
    with pytest.raises(ValidationError):
        svc.create_plan(_plan_data(slug="Bad Slug!"))
    with pytest.raises(ValidationError):
        svc.create_plan(_plan_data(slug="neg", monthly_price=-1))
    with pytest.raises(ValidationError):
        svc.create_plan(_plan_data(slug="disc", module_discount_percentage=150))


def test_update_plan_keeps_its_own_slug():
    svc, _ = _service()
    plan = svc.create_plan(_plan_data())
    updated = svc.update_plan(plan.id, _plan_data(name="Basic+"))
    assert updated.name == "Basic+"


def test_delete_plan_blocked_by_live_subscriptions():
    svc, repo = _service()
    plan = svc.create_plan(_plan_data())
    repo.live_counts[("plan", plan.id)] = 1
    with pytest.raises(ConflictError):
        svc.delete_plan(plan.id)
    repo.live_counts.clear()
    svc.delete_plan(plan.id)
    with pytest.raises(NotFoundError):
        svc.get_plan(plan.id)


def test_set_plan_modules_rejects_unknown_modules():
    svc, repo = _service(modules=registry_modules())
    plan = svc.create_plan(_plan_data())
    with pytest.raises(ValidationError, match="99"):
        svc.set_plan_modules(plan.id, [{"module_id": 2}, {"module_id": 99}])
    assert svc.set_plan_modules(plan.id, [{"module_id": 2, "is_included": True, "custom_monthly_price": "9.5"}]) == 1
    assert repo.pivots[plan.id][0].custom_monthly_price == 9.5


def test_module_crud_rules():
    svc, repo = _service(modules=registry_modules())
    with pytest.raises(ValidationError):
        svc.create_module({"code": "hrm", "name": "Dup"})
    crm = svc.create_module({"code": "crm", "name": "CRM", "monthly_price": 5})
    assert crm.code == "CRM"

    with pytest.raises(ConflictError):
        svc.delete_module(1)
    repo.live_counts[("module", crm.id)] = 2
    with pytest.raises(ConflictError):
        svc.delete_module(crm.id)


def test_stats_normalises_yearly_revenue():
    svc, _ = _service(
        subscriptions=[
            _subscription("a", SubscriptionStatus.ACTIVE, total=30.0),
            _subscription("b", SubscriptionStatus.ACTIVE, BillingCycle.YEARLY, total=120.0),
            _subscription("c", SubscriptionStatus.TRIAL, total=99.0),
            _subscription("d", SubscriptionStatus.CANCELLED, total=99.0),
        ]
    )
    stats = svc.stats()
    assert stats["total_subscribers"] == 3
    assert stats["monthly_revenue"] == 40.0


def test_tenant_module_codes_need_live_subscription():
    svc, _ = _service(subscriptions=[_subscription("a", SubscriptionStatus.ACTIVE)])
    assert svc.tenant_module_codes("a") == frozenset({"HRM"})
    assert svc.tenant_module_codes("nobody") == frozenset()

    svc, _ = _service(subscriptions=[_subscription("a", SubscriptionStatus.ACTIVE, ends_at=datetime(2026, 4, 30))])
    assert svc.tenant_module_codes("a") == frozenset()


def test_seed_prices_modules_and_creates_plans_once():
    svc, repo = _service(modules=registry_modules())
    first = seed_subscriptions(svc, repo)
    assert first == {"modules_priced": 3, "plans_created": len(DEFAULT_PLANS)}
    assert repo.get_module_by_code("PPM").monthly_price == 20.0

    starter = repo.get_plan_by_slug("starter")
    included = {p.module_id for p in repo.pivots[starter.id] if p.is_included}
    assert included == {2}
    assert 1 not in {p.module_id for p in repo.pivots[starter.id]}

    assert seed_subscriptions(svc, repo)["plans_created"] == 0
