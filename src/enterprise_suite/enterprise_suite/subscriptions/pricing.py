"""Subscription price calculations."""
from __future__ import annotations

from typing import Iterable, Optional

from ..core.enums import BillingCycle
from .model import BillableModule, PlanModule, SubscriptionPlan


def module_price_for_cycle(module: BillableModule, cycle: BillingCycle) -> float:
    return module.monthly_price if cycle == BillingCycle.MONTHLY else module.yearly_price


def plan_module_price(
    plan: SubscriptionPlan,
    module: BillableModule,
    pivot: Optional[PlanModule],
    cycle: BillingCycle,
) -> float:
    """Price of a module bought on top of a plan.

    A pivot's custom price replaces the module list price, and its discount
    replaces the plan-wide module discount.
    """
    custom = None
    if pivot is not None:
        custom = pivot.custom_monthly_price if cycle == BillingCycle.MONTHLY else pivot.custom_yearly_price
    base = custom if custom is not None else module_price_for_cycle(module, cycle)

    discount = plan.module_discount_percentage
    if pivot is not None and pivot.discount_percentage is not None:
        discount = pivot.discount_percentage

    return round(base * (1 - (discount or 0) / 100), 2)


def calculate_total_price(
    plan: SubscriptionPlan,
    modules_with_pivots: Iterable[tuple[BillableModule, Optional[PlanModule]]],
    cycle: BillingCycle,
) -> float:
    total = plan.price_for_cycle(cycle)
    for module, pivot in modules_with_pivots:
        if pivot is not None and pivot.is_included:
            continue
        total += plan_module_price(plan, module, pivot, cycle)
    return round(total, 2)
