from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import CompanyProfile, Tenant


class TenantRepository(Protocol):
    def get(self, tenant_id: str) -> Optional[Tenant]:
        raise NotImplementedError

    def find_by_domain(self, domain: str) -> Optional[Tenant]:
        raise NotImplementedError

    def exists(self, tenant_id: str) -> bool:
        raise NotImplementedError

    def create(self, tenant: Tenant) -> None:
        raise NotImplementedError

    def add_domain(self, tenant_id: str, domain: str) -> None:
        raise NotImplementedError

    def save_company_profile(self, profile: CompanyProfile) -> None:
        raise NotImplementedError

    def get_company_profile(self, tenant_id: str) -> Optional[CompanyProfile]:
        raise NotImplementedError

    def list_active(self) -> Sequence[Tenant]:
        raise NotImplementedError

    def delete(self, tenant_id: str) -> None:
        """Remove the tenant with its domains and company profile."""
        raise NotImplementedError
