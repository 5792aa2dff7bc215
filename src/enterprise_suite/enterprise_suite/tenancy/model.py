from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from ..core.enums import TenantStatus


@dataclass(frozen=True)
class Tenant:
    """A customer organization. ``id`` is its slug."""

    id: str
    name: str
    database: str
    email: Optional[str] = None
    plan: Optional[str] = None
    status: TenantStatus = TenantStatus.ACTIVE
    domains: tuple[str, ...] = ()
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def is_active(self) -> bool:
        return self.status == TenantStatus.ACTIVE

    @property
    def primary_domain(self) -> Optional[str]:
        return self.domains[0] if self.domains else None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "plan": self.plan,
            "status": self.status.value,
            "domains": list(self.domains),
            "primary_domain": self.primary_domain,
        }


@dataclass(frozen=True)
class CompanyProfile:
    tenant_id: str
    company_name: str
    contact_email: str
    phone: Optional[str] = None
    industry: Optional[str] = None
    size: Optional[str] = None
    website: Optional[str] = None
    description: Optional[str] = None
    timezone: str = "UTC"
