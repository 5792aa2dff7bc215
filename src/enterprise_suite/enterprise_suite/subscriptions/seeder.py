from __future__ import annotations

from ..common.logging_config import get_logger
from .repository import SubscriptionRepository
from .service import SubscriptionAdminService

logger = get_logger(__name__)

# registry code -> (monthly, yearly)
MODULE_PRICES = {
    "HRM": (15.00, 150.00),
    "PPM": (20.00, 200.00),
    "EVENTS": (12.00, 120.00),
    "ADMIN": (0.00, 0.00),
}

DEFAULT_PLANS = [
    {
        "name": "Starter",
        "slug": "starter",
        "description": "Perfect for small businesses getting started with HR management",
        "monthly_price": 29.00,
        "yearly_price": 290.00,
        "max_employees": 25,
        "max_storage_gb": 10,
        "module_discount_percentage": 10.00,
        "is_popular": False,
        "sort_order": 1,
        "trial_days": 14,
        "included": ("HRM",),
    },
    {
        "name": "Professional",
        "slug": "professional",
        "description": "Comprehensive solution for growing businesses with advanced features",
        "monthly_price": 79.00,
        "yearly_price": 790.00,
        "max_employees": 100,
        "max_storage_gb": 100,
        "module_discount_percentage": 20.00,
        "is_popular": True,
        "sort_order": 2,
        "trial_days": 30,
        "included": ("HRM", "PPM"),
    },
    {
        "name": "Enterprise",
        "slug": "enterprise",
        "description": "Full-featured enterprise solution with unlimited users and storage",
        "monthly_price": 149.00,
        "yearly_price": 1490.00,
        "max_employees": None,
        "max_storage_gb": None,
        "module_discount_percentage": 30.00,
        "is_popular": False,
        "sort_order": 3,
        "trial_days": 30,
        "included": ("HRM", "PPM", "EVENTS"),
    },
]


def seed_subscriptions(service: SubscriptionAdminService, repo: SubscriptionRepository) -> dict:
    """Price the registry modules and create the default plans that do not exist yet.

    Run after the module registry is seeded; unknown module codes are skipped.
    """
    priced = 0
    for code, (monthly, yearly) in MODULE_PRICES.items():
        module = repo.get_module_by_code(code)
        if module is None:
            logger.warning("Billable module %s missing; seed the module registry first", code)
            continue
        service.update_module(module.id, {"monthly_price": monthly, "yearly_price": yearly})
        priced += 1

    modules = list(repo.list_modules(active_only=True))
    created = 0
    for definition in DEFAULT_PLANS:
        if repo.get_plan_by_slug(definition["slug"]):
            continue
        data = {k: v for k, v in definition.items() if k != "included"}
        plan = service.create_plan(data)
        service.set_plan_modules(
            plan.id,
            [
                {"module_id": m.id, "is_included": m.code in definition["included"]}
                for m in modules
                if not m.is_core
            ],
        )
        created += 1

    logger.info("Subscriptions seeded modules_priced=%s plans_created=%s", priced, created)
    return {"modules_priced": priced, "plans_created": created}
