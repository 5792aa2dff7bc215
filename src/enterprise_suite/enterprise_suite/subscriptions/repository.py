from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import BillableModule, PlanModule, SubscriptionPlan, TenantSubscription


class SubscriptionRepository(Protocol):
    """Central-database access for plans, billable modules and tenant subscriptions."""

    def list_plans(self, *, active_only: bool = False) -> Sequence[SubscriptionPlan]:
        raise NotImplementedError

    def get_plan(self, plan_id: int) -> Optional[SubscriptionPlan]:
        raise NotImplementedError

    def get_plan_by_slug(self, slug: str) -> Optional[SubscriptionPlan]:
        raise NotImplementedError

    def create_plan(self, data: dict) -> int:
        raise NotImplementedError

    def update_plan(self, plan_id: int, data: dict) -> bool:
        raise NotImplementedError

    def delete_plan(self, plan_id: int) -> bool:
        raise NotImplementedError

    def plan_modules(self, plan_id: int) -> Sequence[PlanModule]:
        raise NotImplementedError

    def set_plan_modules(self, plan_id: int, pivots: Sequence[PlanModule]) -> None:
        """Replace the plan's module pivots."""
        raise NotImplementedError

    def list_modules(self, *, active_only: bool = False) -> Sequence[BillableModule]:
        raise NotImplementedError

    def get_modules(self, module_ids: Sequence[int]) -> Sequence[BillableModule]:
        raise NotImplementedError

    def get_module_by_code(self, code: str) -> Optional[BillableModule]:
        raise NotImplementedError

    def create_module(self, data: dict) -> int:
        raise NotImplementedError

    def update_module(self, module_id: int, data: dict) -> bool:
        raise NotImplementedError

    def delete_module(self, module_id: int) -> bool:
        raise NotImplementedError

    def count_live_subscriptions(self, *, plan_id: Optional[int] = None, module_id: Optional[int] = None) -> int:
        """Count trial or active subscriptions on a plan, or including a module."""
        raise NotImplementedError

    def create_subscription(self, subscription: TenantSubscription) -> int:
        raise NotImplementedError

    def latest_subscription(self, tenant_id: str) -> Optional[TenantSubscription]:
        raise NotImplementedError

    def list_subscriptions(self, *, statuses: Optional[Sequence[str]] = None) -> Sequence[TenantSubscription]:
        raise NotImplementedError

    def delete_subscriptions_for_tenant(self, tenant_id: str) -> int:
        raise NotImplementedError
