from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import BillingCycle, SubscriptionStatus


@dataclass(frozen=True)
class SubscriptionPlan:
    id: int
    name: str
    slug: str
    monthly_price: float
    yearly_price: float
    description: Optional[str] = None
    max_employees: Optional[int] = None
    max_storage_gb: Optional[int] = None
    module_discount_percentage: float = 0.0
    is_popular: bool = False
    is_active: bool = True
    sort_order: int = 0
    trial_days: Optional[int] = None

    def price_for_cycle(self, cycle: BillingCycle) -> float:
        return self.monthly_price if cycle == BillingCycle.MONTHLY else self.yearly_price

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "monthly_price": self.monthly_price,
            "yearly_price": self.yearly_price,
            "max_employees": self.max_employees,
            "max_storage_gb": self.max_storage_gb,
            "module_discount_percentage": self.module_discount_percentage,
            "is_popular": self.is_popular,
            "is_active": self.is_active,
            "sort_order": self.sort_order,
            "trial_days": self.trial_days,
        }


@dataclass(frozen=True)
class BillableModule:
    """A registry module as sold on the price list."""

    id: int
    code: str
    name: str
    monthly_price: float = 0.0
    yearly_price: float = 0.0
    description: Optional[str] = None
    is_active: bool = True
    is_core: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "description": self.description,
            "monthly_price": self.monthly_price,
            "yearly_price": self.yearly_price,
            "is_active": self.is_active,
            "is_core": self.is_core,
        }


@dataclass(frozen=True)
class PlanModule:
    """Plan/module pivot: custom prices and whether the plan includes the module."""

    plan_id: int
    module_id: int
    custom_monthly_price: Optional[float] = None
    custom_yearly_price: Optional[float] = None
    discount_percentage: Optional[float] = None
    is_included: bool = False
    is_available: bool = True


@dataclass(frozen=True)
class SubscriptionModule:
    module_id: int
    price: float
    is_included: bool = False
    code: Optional[str] = None


@dataclass(frozen=True)
class TenantSubscription:
    id: int
    tenant_id: str
    plan_id: int
    billing_cycle: BillingCycle
    status: SubscriptionStatus
    total_amount: float
    starts_at: datetime
    ends_at: Optional[datetime] = None
    trial_ends_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    modules: tuple[SubscriptionModule, ...] = ()

    def is_on_trial(self, now: datetime) -> bool:
        return (
            self.status == SubscriptionStatus.TRIAL
            and self.trial_ends_at is not None
            and self.trial_ends_at > now
        )

    def is_expired(self, now: datetime) -> bool:
        return self.ends_at is not None and self.ends_at < now

    def days_until_expiry(self, now: datetime) -> int:
        if self.ends_at is None:
            return 0
        return max(0, (self.ends_at - now).days)

    def is_live(self, now: datetime) -> bool:
        """Trial or active, and not past its end date."""
        return self.status in (SubscriptionStatus.TRIAL, SubscriptionStatus.ACTIVE) and not self.is_expired(now)

    def calculate_total(self) -> float:
        return round(sum(m.price for m in self.modules if not m.is_included), 2)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "plan_id": self.plan_id,
            "billing_cycle": self.billing_cycle.value,
            "status": self.status.value,
            "total_amount": self.total_amount,
            "starts_at": self.starts_at.isoformat() if self.starts_at else None,
            "ends_at": self.ends_at.isoformat() if self.ends_at else None,
            "trial_ends_at": self.trial_ends_at.isoformat() if self.trial_ends_at else None,
            "modules": [
                {"module_id": m.module_id, "code": m.code, "price": m.price, "is_included": m.is_included}
                for m in self.modules
            ],
        }
