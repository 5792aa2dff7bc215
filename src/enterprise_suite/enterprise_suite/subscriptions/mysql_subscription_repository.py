from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import BillingCycle, ModuleCategory, SubscriptionStatus
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause, to_float
from .model import BillableModule, PlanModule, SubscriptionModule, SubscriptionPlan, TenantSubscription
from .repository import SubscriptionRepository

_PLAN_SELECT = """
    SELECT id, name, slug, description, monthly_price, yearly_price, max_employees, max_storage_gb,
           module_discount_percentage, is_popular, is_active, sort_order, trial_days
    FROM subscription_plans
"""

_MODULE_SELECT = """
    SELECT id, code, name, description, monthly_price, yearly_price, is_active, is_core
    FROM modules
"""

_PLAN_COLUMNS = (
    "name",
    "slug",
    "description",
    "monthly_price",
    "yearly_price",
    "max_employees",
    "max_storage_gb",
    "module_discount_percentage",
    "is_popular",
    "is_active",
    "sort_order",
    "trial_days",
)

_MODULE_COLUMNS = ("code", "name", "description", "monthly_price", "yearly_price", "is_active", "is_core")


def _row_to_plan(row: dict) -> SubscriptionPlan:
    return SubscriptionPlan(
        id=int(row["id"]),
        name=row["name"],
        slug=row["slug"],
        description=row.get("description"),
        monthly_price=to_float(row.get("monthly_price")) or 0.0,
        yearly_price=to_float(row.get("yearly_price")) or 0.0,
        max_employees=row.get("max_employees"),
        max_storage_gb=row.get("max_storage_gb"),
        module_discount_percentage=to_float(row.get("module_discount_percentage")) or 0.0,
        is_popular=bool(row.get("is_popular")),
        is_active=bool(row.get("is_active")),
        sort_order=int(row.get("sort_order") or 0),
        trial_days=row.get("trial_days"),
    )


def _row_to_module(row: dict) -> BillableModule:
    return BillableModule(
        id=int(row["id"]),
        code=row["code"],
        name=row["name"],
        description=row.get("description"),
        monthly_price=to_float(row.get("monthly_price")) or 0.0,
        yearly_price=to_float(row.get("yearly_price")) or 0.0,
        is_active=bool(row.get("is_active")),
        is_core=bool(row.get("is_core")),
    )


def _assignments(data: dict, columns: Sequence[str]) -> tuple[str, list]:
    keys = [c for c in columns if c in data]
    return ", ".join(f"{k}=%s" for k in keys), [data[k] for k in keys]


class MySQLSubscriptionRepository(SubscriptionRepository):
    def __init__(self, conn_factory):
        self._conn_factory = conn_factory

    # plans

    def list_plans(self, *, active_only: bool = False) -> Sequence[SubscriptionPlan]:
        where = " WHERE is_active=1" if active_only else ""
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_PLAN_SELECT + where + " ORDER BY sort_order, id")
            rows = fetchall(cur)
        return [_row_to_plan(r) for r in rows]

    def get_plan(self, plan_id: int) -> Optional[SubscriptionPlan]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_PLAN_SELECT + " WHERE id=%s", (int(plan_id),))
            row = fetchone(cur)
        return _row_to_plan(row) if row else None

    def get_plan_by_slug(self, slug: str) -> Optional[SubscriptionPlan]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_PLAN_SELECT + " WHERE slug=%s", (slug,))
            row = fetchone(cur)
        return _row_to_plan(row) if row else None

    def create_plan(self, data: dict) -> int:
        keys = [c for c in _PLAN_COLUMNS if c in data]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO subscription_plans({', '.join(keys)}, created_at, updated_at) "
                f"VALUES({in_clause(keys)}, NOW(), NOW())",
                tuple(data[k] for k in keys),
            )
            return int(cur.lastrowid)

    def update_plan(self, plan_id: int, data: dict) -> bool:
        sets, params = _assignments(data, _PLAN_COLUMNS)
        if not sets:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE subscription_plans SET {sets}, updated_at=NOW() WHERE id=%s",
                tuple(params) + (int(plan_id),),
            )
            return cur.rowcount > 0

    def delete_plan(self, plan_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM plan_module WHERE plan_id=%s", (int(plan_id),))
            cur.execute("DELETE FROM subscription_plans WHERE id=%s", (int(plan_id),))
            return cur.rowcount > 0

    def plan_modules(self, plan_id: int) -> Sequence[PlanModule]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT plan_id, module_id, custom_monthly_price, custom_yearly_price, discount_percentage,
                       is_included, is_available
                FROM plan_module
                WHERE plan_id=%s
                """,
                (int(plan_id),),
            )
            rows = fetchall(cur)
        return [
            PlanModule(
                plan_id=int(r["plan_id"]),
                module_id=int(r["module_id"]),
                custom_monthly_price=to_float(r.get("custom_monthly_price")),
                custom_yearly_price=to_float(r.get("custom_yearly_price")),
                discount_percentage=to_float(r.get("discount_percentage")),
                is_included=bool(r.get("is_included")),
                is_available=bool(r.get("is_available")),
            )
            for r in rows
        ]

    def set_plan_modules(self, plan_id: int, pivots: Sequence[PlanModule]) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM plan_module WHERE plan_id=%s", (int(plan_id),))
            for p in pivots:
                cur.execute(
                    """
                    INSERT INTO plan_module(plan_id, module_id, custom_monthly_price, custom_yearly_price,
                                            discount_percentage, is_included, is_available, created_at, updated_at)
                    VALUES(%s,%s,%s,%s,%s,%s,%s,NOW(),NOW())
                    """,
                    (
                        int(plan_id),
                        p.module_id,
                        p.custom_monthly_price,
                        p.custom_yearly_price,
                        p.discount_percentage,
                        1 if p.is_included else 0,
                        1 if p.is_available else 0,
                    ),
                )

    # modules

    def list_modules(self, *, active_only: bool = False) -> Sequence[BillableModule]:
        where = " WHERE is_active=1" if active_only else ""
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_MODULE_SELECT + where + " ORDER BY priority, id")
            rows = fetchall(cur)
        return [_row_to_module(r) for r in rows]

    def get_modules(self, module_ids: Sequence[int]) -> Sequence[BillableModule]:
        if not module_ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_MODULE_SELECT + f" WHERE id IN ({in_clause(module_ids)})", tuple(int(i) for i in module_ids))
            rows = fetchall(cur)
        return [_row_to_module(r) for r in rows]

    def get_module_by_code(self, code: str) -> Optional[BillableModule]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_MODULE_SELECT + " WHERE code=%s", (code,))
            row = fetchone(cur)
        return _row_to_module(row) if row else None

    def create_module(self, data: dict) -> int:
        keys = [c for c in _MODULE_COLUMNS if c in data]
        category = data.get("category") or ModuleCategory.CORE
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO modules({', '.join(keys)}, category, created_at, updated_at) "
                f"VALUES({in_clause(keys)}, %s, NOW(), NOW())",
                tuple(data[k] for k in keys) + (getattr(category, "value", category),),
            )
            return int(cur.lastrowid)

    def update_module(self, module_id: int, data: dict) -> bool:
        sets, params = _assignments(data, _MODULE_COLUMNS)
        if not sets:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"UPDATE modules SET {sets}, updated_at=NOW() WHERE id=%s", tuple(params) + (int(module_id),))
            return cur.rowcount > 0

    def delete_module(self, module_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM plan_module WHERE module_id=%s", (int(module_id),))
            cur.execute("DELETE FROM modules WHERE id=%s", (int(module_id),))
            return cur.rowcount > 0

    # subscriptions

    def count_live_subscriptions(self, *, plan_id: Optional[int] = None, module_id: Optional[int] = None) -> int:
        sql = "SELECT COUNT(DISTINCT s.id) AS c FROM tenant_subscriptions s"
        where = ["s.status IN ('trial','active')"]
        params: list = []
        if module_id is not None:
            sql += " JOIN tenant_subscription_modules m ON m.tenant_subscription_id=s.id"
            where.append("m.module_id=%s")
            params.append(int(module_id))
        if plan_id is not None:
            where.append("s.subscription_plan_id=%s")
            params.append(int(plan_id))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql + " WHERE " + " AND ".join(where), tuple(params))
            row = fetchone(cur)
        return int(row["c"]) if row else 0

    def create_subscription(self, subscription: TenantSubscription) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO tenant_subscriptions(tenant_id, subscription_plan_id, billing_cycle, status, total_price,
                                                 starts_at, ends_at, trial_ends_at, created_at, updated_at)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,NOW(),NOW())
                """,
                (
                    subscription.tenant_id,
                    subscription.plan_id,
                    subscription.billing_cycle.value,
                    subscription.status.value,
                    subscription.total_amount,
                    subscription.starts_at,
                    subscription.ends_at,
                    subscription.trial_ends_at,
                ),
            )
            subscription_id = int(cur.lastrowid)
            for m in subscription.modules:
                cur.execute(
                    """
                    INSERT INTO tenant_subscription_modules(tenant_subscription_id, module_id, price, is_included,
                                                            created_at, updated_at)
                    VALUES(%s,%s,%s,%s,NOW(),NOW())
                    """,
                    (subscription_id, m.module_id, m.price, 1 if m.is_included else 0),
                )
            return subscription_id

    def _load_modules(self, cur, subscription_ids: Sequence[int]) -> dict[int, list[SubscriptionModule]]:
        out: dict[int, list[SubscriptionModule]] = {sid: [] for sid in subscription_ids}
        if not subscription_ids:
            return out
        cur.execute(
            f"""
            SELECT sm.tenant_subscription_id, sm.module_id, sm.price, sm.is_included, m.code
            FROM tenant_subscription_modules sm
            JOIN modules m ON m.id=sm.module_id
            WHERE sm.tenant_subscription_id IN ({in_clause(subscription_ids)})
            """,
            tuple(subscription_ids),
        )
        for r in fetchall(cur):
            out[int(r["tenant_subscription_id"])].append(
                SubscriptionModule(
                    module_id=int(r["module_id"]),
                    price=to_float(r.get("price")) or 0.0,
                    is_included=bool(r.get("is_included")),
                    code=r.get("code"),
                )
            )
        return out

    def _select_subscriptions(self, where: str, params: tuple) -> list[TenantSubscription]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT id, tenant_id, subscription_plan_id, billing_cycle, status, total_price,
                       starts_at, ends_at, trial_ends_at, cancelled_at
                FROM tenant_subscriptions
                {where}
                """,
                params,
            )
            rows = fetchall(cur)
            modules = self._load_modules(cur, [int(r["id"]) for r in rows])
        return [
            TenantSubscription(
                id=int(r["id"]),
                tenant_id=r["tenant_id"],
                plan_id=int(r["subscription_plan_id"]),
                billing_cycle=BillingCycle(r["billing_cycle"]),
                status=SubscriptionStatus(r["status"]),
                total_amount=to_float(r.get("total_price")) or 0.0,
                starts_at=r["starts_at"],
                ends_at=r.get("ends_at"),
                trial_ends_at=r.get("trial_ends_at"),
                cancelled_at=r.get("cancelled_at"),
                modules=tuple(modules[int(r["id"])]),
            )
            for r in rows
        ]

    def latest_subscription(self, tenant_id: str) -> Optional[TenantSubscription]:
        rows = self._select_subscriptions("WHERE tenant_id=%s ORDER BY id DESC LIMIT 1", (tenant_id,))
        return rows[0] if rows else None

    def list_subscriptions(self, *, statuses: Optional[Sequence[str]] = None) -> Sequence[TenantSubscription]:
        if statuses:
            return self._select_subscriptions(f"WHERE status IN ({in_clause(statuses)}) ORDER BY id", tuple(statuses))
        return self._select_subscriptions("ORDER BY id", ())

    def delete_subscriptions_for_tenant(self, tenant_id: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                DELETE sm FROM tenant_subscription_modules sm
                JOIN tenant_subscriptions s ON s.id=sm.tenant_subscription_id
                WHERE s.tenant_id=%s
                """,
                (tenant_id,),
            )
            cur.execute("DELETE FROM tenant_subscriptions WHERE tenant_id=%s", (tenant_id,))
            return int(cur.rowcount)
