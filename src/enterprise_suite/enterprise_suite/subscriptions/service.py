from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Callable, Iterable, Optional, Sequence

from ..common.datetime_utils import now_local
from ..common.logging_config import get_logger
from ..common.validators import require_max_length, require_non_empty
from ..core.enums import BillingCycle, SubscriptionStatus
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from .model import BillableModule, PlanModule, SubscriptionPlan
from .repository import SubscriptionRepository

logger = get_logger(__name__)

SLUG_RE = re.compile(r"^[a-z0-9-]+$")


def _money(value: Any, field_name: str) -> float:
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"The {field_name} must be a number.")
    if amount < 0:
        raise ValidationError(f"The {field_name} must be at least 0.")
    return round(amount, 2)


def _percentage(value: Any, field_name: str) -> Optional[float]:
    if value in (None, ""):
        return None
    amount = _money(value, field_name)
    if amount > 100:
        raise ValidationError(f"The {field_name} may not be greater than 100.")
    return amount


def _optional_int(value: Any, field_name: str) -> Optional[int]:
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"The {field_name} must be an integer.")


class SubscriptionAdminService:
    """Plans, billable modules and subscription statistics (central admin)."""

    def __init__(self, repo: SubscriptionRepository, *, clock: Callable[[], datetime] = now_local):
        self._repo = repo
        self._clock = clock

    # plans

    def list_plans(self, *, active_only: bool = False) -> list[dict]:
        out = []
        for plan in self._repo.list_plans(active_only=active_only):
            d = plan.to_dict()
            d["modules"] = [
                {
                    "module_id": p.module_id,
                    "is_included": p.is_included,
                    "is_available": p.is_available,
                    "custom_monthly_price": p.custom_monthly_price,
                    "custom_yearly_price": p.custom_yearly_price,
                    "discount_percentage": p.discount_percentage,
                }
                for p in self._repo.plan_modules(plan.id)
            ]
            out.append(d)
        return out

    def get_plan(self, plan_id: int) -> SubscriptionPlan:
        plan = self._repo.get_plan(plan_id)
        if not plan:
            raise NotFoundError("Subscription plan not found.")
        return plan

    def _clean_plan(self, data: dict, *, plan_id: Optional[int] = None) -> dict:
        name = require_max_length(require_non_empty(data.get("name"), "name"), "name", 255)
        slug = require_non_empty(data.get("slug"), "slug").lower()
        if not SLUG_RE.match(slug):
            raise ValidationError("The slug may only contain lowercase letters, numbers, and hyphens.")
        existing = self._repo.get_plan_by_slug(slug)
        if existing and existing.id != plan_id:
            raise ValidationError("The slug has already been taken.")
        return {
            "name": name,
            "slug": slug,
            "description": data.get("description"),
            "monthly_price": _money(data.get("monthly_price"), "monthly price"),
            "yearly_price": _money(data.get("yearly_price"), "yearly price"),
            "max_employees": _optional_int(data.get("max_employees"), "max employees"),
            "max_storage_gb": _optional_int(data.get("max_storage_gb"), "max storage"),
            "module_discount_percentage": _percentage(data.get("module_discount_percentage"), "module discount") or 0.0,
            "is_popular": 1 if data.get("is_popular") else 0,
            "is_active": 0 if data.get("is_active") is False else 1,
            "sort_order": _optional_int(data.get("sort_order"), "sort order") or 0,
            "trial_days": _optional_int(data.get("trial_days"), "trial days"),
        }

    def create_plan(self, data: dict) -> SubscriptionPlan:
        plan_id = self._repo.create_plan(self._clean_plan(data))
        logger.info("Subscription plan created id=%s", plan_id)
        return self.get_plan(plan_id)

    def update_plan(self, plan_id: int, data: dict) -> SubscriptionPlan:
        self.get_plan(plan_id)
        self._repo.update_plan(plan_id, self._clean_plan(data, plan_id=plan_id))
        return self.get_plan(plan_id)

    def delete_plan(self, plan_id: int) -> None:
        plan = self.get_plan(plan_id)
        if self._repo.count_live_subscriptions(plan_id=plan.id) > 0:
            raise ConflictError("Cannot delete a plan with active subscriptions.")
        self._repo.delete_plan(plan.id)
        logger.info("Subscription plan deleted id=%s slug=%s", plan.id, plan.slug)

    def set_plan_modules(self, plan_id: int, modules: Iterable[dict]) -> int:
        self.get_plan(plan_id)
        pivots: list[PlanModule] = []
        for entry in modules:
            module_id = _optional_int(entry.get("module_id"), "module")
            if module_id is None:
                raise ValidationError("The module field is required.")
            pivots.append(
                PlanModule(
                    plan_id=int(plan_id),
                    module_id=module_id,
                    custom_monthly_price=(
                        _money(entry["custom_monthly_price"], "custom monthly price")
                        if entry.get("custom_monthly_price") not in (None, "")
                        else None
                    ),
                    custom_yearly_price=(
                        _money(entry["custom_yearly_price"], "custom yearly price")
                        if entry.get("custom_yearly_price") not in (None, "")
                        else None
                    ),
                    discount_percentage=_percentage(entry.get("discount_percentage"), "discount"),
                    is_included=bool(entry.get("is_included")),
                    is_available=entry.get("is_available", True) is not False,
                )
            )
        known = {m.id for m in self._repo.get_modules([p.module_id for p in pivots])}
        missing = sorted({p.module_id for p in pivots} - known)
        if missing:
            raise ValidationError(f"The selected modules are invalid: {', '.join(map(str, missing))}.")
        self._repo.set_plan_modules(int(plan_id), pivots)
        return len(pivots)

    # modules

    def list_modules(self, *, active_only: bool = False) -> Sequence[BillableModule]:
        return self._repo.list_modules(active_only=active_only)

    def _get_module(self, module_id: int) -> BillableModule:
        found = self._repo.get_modules([int(module_id)])
        if not found:
            raise NotFoundError("Module not found.")
        return found[0]

    def create_module(self, data: dict) -> BillableModule:
        code = require_non_empty(data.get("code"), "code").upper()
        if self._repo.get_module_by_code(code):
            raise ValidationError("The code has already been taken.")
        module_id = self._repo.create_module(
            {
                "code": code,
                "name": require_non_empty(data.get("name"), "name"),
                "description": data.get("description"),
                "monthly_price": _money(data.get("monthly_price", 0), "monthly price"),
                "yearly_price": _money(data.get("yearly_price", 0), "yearly price"),
                "is_active": 0 if data.get("is_active") is False else 1,
                "is_core": 1 if data.get("is_core") else 0,
                "category": data.get("category"),
            }
        )
        return self._get_module(module_id)

    def update_module(self, module_id: int, data: dict) -> BillableModule:
        self._get_module(module_id)
        changes: dict[str, Any] = {}
        if "name" in data:
            changes["name"] = require_non_empty(data.get("name"), "name")
        if "description" in data:
            changes["description"] = data.get("description")
        for key, label in (("monthly_price", "monthly price"), ("yearly_price", "yearly price")):
            if key in data:
                changes[key] = _money(data[key], label)
        if "is_active" in data:
            changes["is_active"] = 1 if data["is_active"] else 0
        self._repo.update_module(int(module_id), changes)
        return self._get_module(module_id)

    def delete_module(self, module_id: int) -> None:
        module = self._get_module(module_id)
        if module.is_core:
            raise ConflictError("Core modules cannot be deleted.")
        if self._repo.count_live_subscriptions(module_id=module.id) > 0:
            raise ConflictError("Cannot delete a module with active subscriptions.")
        self._repo.delete_module(module.id)
        logger.info("Module deleted id=%s code=%s", module.id, module.code)

    # reporting and gating

    def stats(self) -> dict:
        live = self._repo.list_subscriptions(
            statuses=[SubscriptionStatus.ACTIVE.value, SubscriptionStatus.TRIAL.value]
        )
        monthly = 0.0
        for sub in live:
            if sub.status != SubscriptionStatus.ACTIVE:
                continue
            if sub.billing_cycle == BillingCycle.MONTHLY:
                monthly += sub.total_amount
            else:
                monthly += sub.total_amount / 12
        return {
            "active_plans": len(self._repo.list_plans(active_only=True)),
            "active_modules": len(self._repo.list_modules(active_only=True)),
            "total_subscribers": len({s.tenant_id for s in live}),
            "monthly_revenue": round(monthly, 2),
        }

    def tenant_module_codes(self, tenant_id: str) -> frozenset[str]:
        """Module codes a tenant may use now; empty without a live subscription."""
        sub = self._repo.latest_subscription(tenant_id)
        if sub is None or not sub.is_live(self._clock()):
            return frozenset()
        return frozenset(m.code for m in sub.modules if m.code)
