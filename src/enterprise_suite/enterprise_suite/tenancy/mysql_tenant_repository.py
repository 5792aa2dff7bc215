from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import TenantStatus
from ..database.mysql_base import db_cursor, fetchall, fetchone, json_dumps, json_loads
from .model import CompanyProfile, Tenant
from .repository import TenantRepository


class MySQLTenantRepository(TenantRepository):
    def __init__(self, conn_factory):
        self._conn_factory = conn_factory

    def _domains(self, cur, tenant_id: str) -> tuple[str, ...]:
        cur.execute("SELECT domain FROM domains WHERE tenant_id=%s ORDER BY id", (tenant_id,))
        return tuple(r["domain"] for r in fetchall(cur))

    def _row_to_tenant(self, cur, row: dict) -> Tenant:
        return Tenant(
            id=row["id"],
            name=row["name"],
            database=row["tenancy_db_name"],
            email=row.get("email"),
            plan=row.get("plan"),
            status=TenantStatus(row.get("status") or TenantStatus.ACTIVE.value),
            domains=self._domains(cur, row["id"]),
            data=json_loads(row.get("data"), {}),
        )

    def get(self, tenant_id: str) -> Optional[Tenant]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT id, name, email, plan, status, tenancy_db_name, data FROM tenants WHERE id=%s",
                (tenant_id,),
            )
            row = fetchone(cur)
            return self._row_to_tenant(cur, row) if row else None

    def find_by_domain(self, domain: str) -> Optional[Tenant]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT t.id, t.name, t.email, t.plan, t.status, t.tenancy_db_name, t.data
                FROM domains d
                JOIN tenants t ON t.id=d.tenant_id
                WHERE d.domain=%s
                """,
                (domain,),
            )
            row = fetchone(cur)
            return self._row_to_tenant(cur, row) if row else None

    def exists(self, tenant_id: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT 1 AS found FROM tenants WHERE id=%s", (tenant_id,))
            return fetchone(cur) is not None

    def create(self, tenant: Tenant) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO tenants(id, name, email, plan, status, tenancy_db_name, data, created_at, updated_at)
                VALUES(%s,%s,%s,%s,%s,%s,%s,NOW(),NOW())
                """,
                (
                    tenant.id,
                    tenant.name,
                    tenant.email,
                    tenant.plan,
                    tenant.status.value,
                    tenant.database,
                    json_dumps(tenant.data),
                ),
            )

    def add_domain(self, tenant_id: str, domain: str) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO domains(domain, tenant_id, created_at, updated_at) VALUES(%s,%s,NOW(),NOW())",
                (domain.lower(), tenant_id),
            )

    def save_company_profile(self, profile: CompanyProfile) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO company_profiles(tenant_id, company_name, contact_email, contact_phone, industry,
                                             company_size, website, description, timezone, is_active,
                                             created_at, updated_at)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,1,NOW(),NOW())
                """,
                (
                    profile.tenant_id,
                    profile.company_name,
                    profile.contact_email,
                    profile.phone,
                    profile.industry,
                    profile.size,
                    profile.website,
                    profile.description,
                    profile.timezone,
                ),
            )

    def get_company_profile(self, tenant_id: str) -> Optional[CompanyProfile]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT tenant_id, company_name, contact_email, contact_phone, industry, company_size, website,
                       description, timezone
                FROM company_profiles
                WHERE tenant_id=%s
                """,
                (tenant_id,),
            )
            row = fetchone(cur)
        if not row:
            return None
        return CompanyProfile(
            tenant_id=row["tenant_id"],
            company_name=row["company_name"],
            contact_email=row["contact_email"],
            phone=row.get("contact_phone"),
            industry=row.get("industry"),
            size=row.get("company_size"),
            website=row.get("website"),
            description=row.get("description"),
            timezone=row.get("timezone") or "UTC",
        )

    def list_active(self) -> Sequence[Tenant]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT id, name, email, plan, status, tenancy_db_name, data FROM tenants WHERE status=%s ORDER BY id",
                (TenantStatus.ACTIVE.value,),
            )
            rows = fetchall(cur)
            return [self._row_to_tenant(cur, r) for r in rows]

    def delete(self, tenant_id: str) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM company_profiles WHERE tenant_id=%s", (tenant_id,))
            cur.execute("DELETE FROM domains WHERE tenant_id=%s", (tenant_id,))
            cur.execute("DELETE FROM tenants WHERE id=%s", (tenant_id,))
