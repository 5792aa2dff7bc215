import pytest

from src.enterprise_suite.enterprise_suite.core.enums import TenantStatus
from src.enterprise_suite.enterprise_suite.core.exceptions import AuthorizationError, NotFoundError
from src.enterprise_suite.enterprise_suite.tenancy.model import Tenant
from src.enterprise_suite.enterprise_suite.tenancy.resolver import TenantResolver, normalize_host


class FakeTenants:
    def __init__(self, tenants):
        self.by_domain = {d: t for t in tenants for d in t.domains}

    def find_by_domain(self, domain):
        return self.by_domain.get(domain)


ACME = Tenant(id="acme", name="Acme", database="tenant_acme", domains=("acme.suite.test",))
FROZEN = Tenant(
    id="frozen", name="Frozen", database="tenant_frozen", status=TenantStatus.SUSPENDED, domains=("frozen.suite.test",)
)


def _resolver():
    return TenantResolver(FakeTenants([ACME, FROZEN]), ["suite.test", "localhost"])


def test_normalize_host_strips_port_and_case():
    assert normalize_host("ACME.Suite.test:8000") == "acme.suite.test"
    assert normalize_host("") == ""


def test_central_domains_resolve_to_none():
    assert _resolver().resolve("localhost:5000") is None
    assert _resolver().is_central("Suite.Test")


def test_tenant_domain_resolves():
    assert _resolver().resolve("acme.suite.test") == ACME


def test_unknown_and_inactive_tenants():
    with pytest.raises(NotFoundError):
        _resolver().resolve("ghost.suite.test")
    with pytest.raises(AuthorizationError):
        _resolver().resolve("frozen.suite.test")
