from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from ..common.datetime_utils import add_months, add_years, now_local
from ..common.logging_config import get_logger
from ..common.validators import require_email, require_max_length, require_min_length, require_non_empty
from ..core.constants import DEFAULT_TRIAL_DAYS, MAX_TENANT_SLUG_LENGTH, MIN_PASSWORD_LENGTH, TENANT_DB_PREFIX
from ..core.enums import BillingCycle, SubscriptionStatus, TenantStatus
from ..core.exceptions import ValidationError
from ..subscriptions.model import SubscriptionModule, TenantSubscription
from ..subscriptions.pricing import calculate_total_price, plan_module_price
from ..subscriptions.repository import SubscriptionRepository
from .model import CompanyProfile, Tenant
from .repository import TenantRepository

logger = get_logger(__name__)

SLUG_RE = re.compile(r"^[a-z0-9-]+$")

# (database, admin_name, admin_email, admin_password) -> admin user id
Provisioner = Callable[[str, str, str, str], int]
Dropper = Callable[[str], None]


@dataclass(frozen=True)
class RegistrationResult:
    tenant: Tenant
    subscription_id: int
    admin_user_id: int
    total_amount: float


class TenantRegistrationService:
    """Self-service sign-up: tenant, domain, profile, subscription, tenant database."""

    def __init__(
        self,
        tenants: TenantRepository,
        subscriptions: SubscriptionRepository,
        *,
        provision_database: Provisioner,
        drop_database: Dropper,
        base_domain: str,
        db_prefix: str = TENANT_DB_PREFIX,
        trial_days: int = DEFAULT_TRIAL_DAYS,
        clock: Callable[[], datetime] = now_local,
    ):
        self._tenants = tenants
        self._subscriptions = subscriptions
        self._provision = provision_database
        self._drop = drop_database
        self._base_domain = base_domain.lower()
        self._db_prefix = db_prefix
        self._trial_days = int(trial_days)
        self._clock = clock

    def check_slug_availability(self, slug: Optional[str]) -> dict:
        if not slug or not SLUG_RE.match(slug) or len(slug) > MAX_TENANT_SLUG_LENGTH:
            return {"available": False, "message": "Invalid subdomain format"}
        if self._tenants.exists(slug):
            return {"available": False, "message": "This subdomain is already taken"}
        return {"available": True, "message": "Subdomain is available"}

    def _validate(self, data: dict) -> dict:
        company_name = require_max_length(require_non_empty(data.get("company_name"), "company name"), "company name", 255)

        slug = require_non_empty(data.get("slug"), "subdomain")
        if not SLUG_RE.match(slug):
            raise ValidationError("Subdomain can only contain lowercase letters, numbers, and hyphens.")
        require_max_length(slug, "subdomain", MAX_TENANT_SLUG_LENGTH)
        if self._tenants.exists(slug):
            raise ValidationError("This subdomain is already taken. Please choose another.")

        contact_email = require_email(data.get("contact_email"), "contact email")
        admin_name = require_non_empty(data.get("admin_name"), "admin name")
        admin_email = require_email(data.get("admin_email"), "admin email")

        password = data.get("password") or ""
        require_min_length(password, "password", MIN_PASSWORD_LENGTH)
        if data.get("password_confirmation") != password:
            raise ValidationError("The password confirmation does not match.")

        plan_id = data.get("plan_id")
        plan = self._subscriptions.get_plan(int(plan_id)) if str(plan_id or "").isdigit() else None
        if plan is None or not plan.is_active:
            raise ValidationError("The selected plan is invalid.")

        try:
            cycle = BillingCycle(data.get("billing_cycle"))
        except ValueError:
            raise ValidationError("The billing cycle must be monthly or yearly.")

        module_ids = [int(m) for m in (data.get("module_ids") or [])]
        if not module_ids:
            raise ValidationError("Please select at least one module.")
        modules = list(self._subscriptions.get_modules(module_ids))
        if len({m.id for m in modules if m.is_active}) != len(set(module_ids)):
            raise ValidationError("The selected modules are invalid.")

        if data.get("accept_terms") not in (True, "1", "true", "yes", "on", 1):
            raise ValidationError("You must agree to the terms and conditions.")

        return {
            "company_name": company_name,
            "slug": slug,
            "contact_email": contact_email,
            "admin_name": admin_name,
            "admin_email": admin_email,
            "password": password,
            "plan": plan,
            "cycle": cycle,
            "modules": modules,
        }

    def register(self, data: dict[str, Any]) -> RegistrationResult:
        clean = self._validate(data)
        plan, cycle, slug = clean["plan"], clean["cycle"], clean["slug"]
        now = self._clock()

        pivots = {p.module_id: p for p in self._subscriptions.plan_modules(plan.id)}
        modules_with_pivots = [(m, pivots.get(m.id)) for m in clean["modules"]]
        total = calculate_total_price(plan, modules_with_pivots, cycle)

        tenant = Tenant(
            id=slug,
            name=clean["company_name"],
            database=f"{self._db_prefix}{slug.replace('-', '_')}",
            email=clean["contact_email"],
            plan=plan.slug,
            status=TenantStatus.ACTIVE,
            domains=(f"{slug}.{self._base_domain}",),
        )

        self._tenants.create(tenant)
        database_created = False
        try:
            self._tenants.add_domain(tenant.id, tenant.primary_domain)
            self._tenants.save_company_profile(
                CompanyProfile(
                    tenant_id=tenant.id,
                    company_name=clean["company_name"],
                    contact_email=clean["contact_email"],
                    phone=data.get("contact_phone"),
                    industry=data.get("industry"),
                    size=data.get("company_size"),
                    website=data.get("website"),
                    description=data.get("description"),
                    timezone=data.get("timezone") or "UTC",
                )
            )

            subscription_id = self._subscriptions.create_subscription(
                TenantSubscription(
                    id=0,
                    tenant_id=tenant.id,
                    plan_id=plan.id,
                    billing_cycle=cycle,
                    status=SubscriptionStatus.TRIAL,
                    total_amount=total,
                    starts_at=now,
                    ends_at=add_months(now, 1) if cycle == BillingCycle.MONTHLY else add_years(now, 1),
                    trial_ends_at=now + timedelta(days=plan.trial_days or self._trial_days),
                    modules=tuple(
                        SubscriptionModule(
                            module_id=m.id,
                            code=m.code,
                            is_included=bool(p and p.is_included),
                            price=0.0 if (p and p.is_included) else plan_module_price(plan, m, p, cycle),
                        )
                        for m, p in modules_with_pivots
                    ),
                )
            )

            database_created = True
            admin_user_id = self._provision(
                tenant.database, clean["admin_name"], clean["admin_email"], clean["password"]
            )
        except Exception:
            logger.exception("Tenant registration failed tenant=%s", tenant.id)
            self._roll_back(tenant, drop_database=database_created)
            raise

        logger.info("Tenant registered tenant=%s plan=%s cycle=%s total=%s", tenant.id, plan.slug, cycle.value, total)
        return RegistrationResult(
            tenant=tenant,
            subscription_id=subscription_id,
            admin_user_id=admin_user_id,
            total_amount=total,
        )

    def _roll_back(self, tenant: Tenant, *, drop_database: bool) -> None:
        """Undo a partial registration; each step runs even when an earlier one fails."""
        steps = [
            ("delete subscriptions", lambda: self._subscriptions.delete_subscriptions_for_tenant(tenant.id)),
            ("delete tenant", lambda: self._tenants.delete(tenant.id)),
        ]
        if drop_database:
            steps.insert(0, ("drop database", lambda: self._drop(tenant.database)))
        for name, step in steps:
            try:
                step()
            except Exception:
                logger.exception("Registration rollback step failed tenant=%s step=%s", tenant.id, name)
