from datetime import datetime

import pytest

from src.enterprise_suite.enterprise_suite.core.enums import BillingCycle, SubscriptionStatus
from src.enterprise_suite.enterprise_suite.core.exceptions import ValidationError
from src.enterprise_suite.enterprise_suite.subscriptions.model import PlanModule, SubscriptionPlan
from src.enterprise_suite.enterprise_suite.tenancy.registration_service import TenantRegistrationService

from tests.subscriptions.subscription_fakes import FakeSubscriptionRepo, registry_modules

NOW = datetime(2026, 1, 31, 10, 0)

PLAN = SubscriptionPlan(
    id=1,
    name="Professional",
    slug="professional",
    monthly_price=79.0,
    yearly_price=790.0,
    module_discount_percentage=20.0,
    trial_days=30,
)


class FakeTenantRepo:
    def __init__(self, existing=()):
        self.tenants = {t: None for t in existing}
        self.domains = {}
        self.profiles = {}
        self.deleted = []

    def exists(self, tenant_id):
        return tenant_id in self.tenants

    def create(self, tenant):
        self.tenants[tenant.id] = tenant

    def add_domain(self, tenant_id, domain):
        self.domains[domain] = tenant_id

    def save_company_profile(self, profile):
        self.profiles[profile.tenant_id] = profile

    def delete(self, tenant_id):
        self.deleted.append(tenant_id)
        self.tenants.pop(tenant_id, None)


class Provisioner:
    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []
        self.dropped = []

    def provision(self, database, name, email, password):
        self.calls.append((database, name, email))
        if self.fail:
            raise RuntimeError("mysql down")
        return 1

    def drop(self, database):
        self.dropped.append(database)


def _service(tenants=None, provisioner=None):
    tenants = tenants or FakeTenantRepo()
    subs = FakeSubscriptionRepo(modules=registry_modules(), plans=[PLAN])
    subs.pivots[1] = [PlanModule(plan_id=1, module_id=2, is_included=True)]
    provisioner = provisioner or Provisioner()
    svc = TenantRegistrationService(
        tenants,
        subs,
        provision_database=provisioner.provision,
        drop_database=provisioner.drop,
        base_domain="Suite.Test",
        clock=lambda: NOW,
    )
    return svc, tenants, subs, provisioner


def _form(**overrides):
    data = {
        "company_name": "Acme Builders",
        "slug": "acme-builders",
        "contact_email": "info@acme.test",
        "admin_name": "Ada",
        "admin_email": "ada@acme.test",
        "password": "secret123",
        "password_confirmation": "secret123",
        "plan_id": "1",
        "billing_cycle": "monthly",
        "module_ids": ["2", "3"],
        "accept_terms": "on",
    }
    data.update(overrides)
    return data


def test_slug_availability():
    svc, _, _, _ = _service(FakeTenantRepo(existing=["taken"]))
    assert svc.check_slug_availability("taken")["available"] is False
    assert svc.check_slug_availability("Bad_Slug")["available"] is False
    assert svc.check_slug_availability("fresh")["available"] is True


def test_register_creates_tenant_subscription_and_database():
    svc, tenants, subs, provisioner = _service()
    result = svc.register(_form())

    assert result.tenant.database == "tenant_acme_builders"
    assert tenants.domains == {"acme-builders.suite.test": "acme-builders"}
    assert provisioner.calls == [("tenant_acme_builders", "Ada", "ada@acme.test")]
    # HRM included, PPM at 20 less the 20% plan discount
    assert result.total_amount == 79.0 + 16.0

    sub = subs.latest_subscription("acme-builders")
    assert sub.status == SubscriptionStatus.TRIAL
    assert sub.billing_cycle == BillingCycle.MONTHLY
    assert sub.ends_at == datetime(2026, 2, 28, 10, 0)
    assert sub.trial_ends_at == datetime(2026, 3, 2, 10, 0)
    assert [(m.code, m.price, m.is_included) for m in sub.modules] == [("HRM", 0.0, True), ("PPM", 16.0, False)]


@pytest.mark.parametrize(
    "overrides",
    [
        {"slug": "Acme"},
        {"password_confirmation": "other"},
        {"password": "short", "password_confirmation": "short"},
        {"plan_id": "9"},
        {"billing_cycle": "weekly"},
        {"module_ids": []},
        {"module_ids": ["2", "42"]},
        {"accept_terms": None},
        {"admin_email": "not-an-email"},
    ],
)
def test_register_validation(overrides):
    svc, tenants, _, _ = _service()
    with pytest.raises(ValidationError):
        svc.register(_form(**overrides))
    assert tenants.tenants == {}


def test_failed_provisioning_rolls_everything_back():
    svc, tenants, subs, provisioner = _service(provisioner=Provisioner(fail=True))
    with pytest.raises(RuntimeError):
        svc.register(_form())

    assert tenants.deleted == ["acme-builders"]
    assert provisioner.dropped == ["tenant_acme_builders"]
    assert subs.latest_subscription("acme-builders") is None


class BrokenDropProvisioner(Provisioner):
    def drop(self, database):
        raise RuntimeError("cannot drop " + database)


def test_rollback_continues_past_a_failed_drop_and_keeps_the_original_error():
    svc, tenants, subs, _ = _service(provisioner=BrokenDropProvisioner(fail=True))
    with pytest.raises(RuntimeError, match="mysql down"):
        svc.register(_form())

    assert tenants.deleted == ["acme-builders"]
    assert subs.latest_subscription("acme-builders") is None
