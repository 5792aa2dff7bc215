from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..core.enums import LeaveStatus
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause, json_dumps, json_loads, to_float
from .model import Holiday, Leave, LeaveAccrual, LeaveCarryForward, LeaveSetting
from .repository import LeaveRepository

_SETTING_SELECT = """
    SELECT id, type, days, eligibility, carry_forward, earned_leave, is_earned, requires_approval,
           auto_approve, special_conditions
    FROM leave_settings
"""

_SELECT = """
    SELECT l.id, l.user_id, l.leave_type, l.from_date, l.to_date, l.no_of_days, l.reason, l.status,
           l.approval_chain, l.current_approval_level, l.approved_by, l.approved_at, l.rejection_reason,
           l.rejected_by, l.submitted_at, s.type AS leave_type_name, u.name AS employee_name, u.department_id
    FROM leaves l
    JOIN leave_settings s ON s.id = l.leave_type
    JOIN users u ON u.id = l.user_id
"""

_UPDATABLE = (
    "status",
    "approval_chain",
    "current_approval_level",
    "approved_by",
    "approved_at",
    "rejection_reason",
    "rejected_by",
)


def _row_to_setting(row: dict) -> LeaveSetting:
    return LeaveSetting(
        id=int(row["id"]),
        type=row["type"],
        days=int(row["days"]),
        eligibility=row.get("eligibility"),
        carry_forward=bool(row.get("carry_forward")),
        earned_leave=bool(row.get("earned_leave")),
        is_earned=bool(row.get("is_earned")),
        requires_approval=bool(row.get("requires_approval", True)),
        auto_approve=bool(row.get("auto_approve")),
        special_conditions=row.get("special_conditions"),
    )


def _row_to_leave(row: dict) -> Leave:
    return Leave(
        id=int(row["id"]),
        user_id=int(row["user_id"]),
        leave_type_id=int(row["leave_type"]),
        from_date=row["from_date"],
        to_date=row["to_date"],
        no_of_days=int(row["no_of_days"]),
        reason=row.get("reason") or "",
        status=LeaveStatus(row["status"]),
        approval_chain=tuple(json_loads(row.get("approval_chain"), [])),
        current_approval_level=int(row.get("current_approval_level") or 0),
        approved_by=row.get("approved_by"),
        approved_at=row.get("approved_at"),
        rejection_reason=row.get("rejection_reason"),
        rejected_by=row.get("rejected_by"),
        submitted_at=row.get("submitted_at"),
        leave_type=row.get("leave_type_name"),
        employee_name=row.get("employee_name"),
        department_id=row.get("department_id"),
    )


class MySQLLeaveRepository(LeaveRepository):
    def __init__(self, conn_factory):
        self._conn_factory = conn_factory

    def list_settings(self) -> Sequence[LeaveSetting]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SETTING_SELECT + " ORDER BY id")
            return [_row_to_setting(r) for r in fetchall(cur)]

    def get_setting(self, setting_id: int) -> Optional[LeaveSetting]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SETTING_SELECT + " WHERE id=%s", (int(setting_id),))
            row = fetchone(cur)
        return _row_to_setting(row) if row else None

    def get(self, leave_id: int) -> Optional[Leave]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE l.id=%s", (int(leave_id),))
            row = fetchone(cur)
        return _row_to_leave(row) if row else None

    def create(self, leave: Leave) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO leaves(user_id, leave_type, from_date, to_date, no_of_days, reason, status,
                                   approval_chain, current_approval_level, approved_by, approved_at,
                                   submitted_at, created_at, updated_at)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,NOW(),NOW())
                """,
                (
                    leave.user_id,
                    leave.leave_type_id,
                    leave.from_date,
                    leave.to_date,
                    leave.no_of_days,
                    leave.reason,
                    leave.status.value,
                    json_dumps(list(leave.approval_chain)),
                    leave.current_approval_level,
                    leave.approved_by,
                    leave.approved_at,
                    leave.submitted_at,
                ),
            )
            return int(cur.lastrowid)

    def update(self, leave_id: int, data: dict) -> bool:
        keys = [k for k in _UPDATABLE if k in data]
        if not keys:
            return False
        params = []
        for k in keys:
            value = data[k]
            if k == "approval_chain":
                value = json_dumps(list(value))
            elif k == "status":
                value = LeaveStatus(value).value
            params.append(value)
        sets = ", ".join(f"{k}=%s" for k in keys)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"UPDATE leaves SET {sets}, updated_at=NOW() WHERE id=%s", tuple(params) + (int(leave_id),))
            return cur.rowcount > 0

    def delete(self, leave_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM leaves WHERE id=%s", (int(leave_id),))
            return cur.rowcount > 0

    def overlapping(
        self,
        user_id: int,
        start: date,
        end: date,
        *,
        statuses: Sequence[LeaveStatus],
        exclude_id: Optional[int] = None,
    ) -> Sequence[Leave]:
        values = [s.value for s in statuses]
        sql = _SELECT + f" WHERE l.user_id=%s AND l.from_date<=%s AND l.to_date>=%s AND l.status IN ({in_clause(values)})"
        params: tuple = (int(user_id), end, start, *values)
        if exclude_id is not None:
            sql += " AND l.id<>%s"
            params += (int(exclude_id),)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql + " ORDER BY l.from_date", params)
            return [_row_to_leave(r) for r in fetchall(cur)]

    def for_user_year(self, user_id: int, year: int) -> Sequence[Leave]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT + " WHERE l.user_id=%s AND YEAR(l.from_date)=%s ORDER BY l.from_date",
                (int(user_id), int(year)),
            )
            return [_row_to_leave(r) for r in fetchall(cur)]

    def search(self, *, filters: dict, limit: int, offset: int) -> tuple[Sequence[Leave], int]:
        clauses = ["1=1"]
        params: list[object] = []

        if filters.get("user_id"):
            clauses.append("l.user_id=%s")
            params.append(int(filters["user_id"]))
        if filters.get("start"):
            clauses.append("l.from_date>=%s")
            params.append(filters["start"])
        if filters.get("end"):
            clauses.append("l.from_date<=%s")
            params.append(filters["end"])
        if filters.get("employee"):
            clauses.append("u.name LIKE %s")
            params.append(f"%{filters['employee']}%")
        if filters.get("statuses"):
            clauses.append(f"l.status IN ({in_clause(filters['statuses'])})")
            params.extend(filters["statuses"])
        if filters.get("leave_types"):
            clauses.append("(" + " OR ".join(["s.type LIKE %s"] * len(filters["leave_types"])) + ")")
            params.extend(f"%{t}%" for t in filters["leave_types"])
        if filters.get("department_ids"):
            clauses.append(f"u.department_id IN ({in_clause(filters['department_ids'])})")
            params.extend(int(d) for d in filters["department_ids"])

        where = " AND ".join(clauses)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT COUNT(*) AS total FROM leaves l
                JOIN leave_settings s ON s.id = l.leave_type
                JOIN users u ON u.id = l.user_id
                WHERE {where}
                """,
                tuple(params),
            )
            total = int((fetchone(cur) or {}).get("total") or 0)
            cur.execute(
                _SELECT + f" WHERE {where} ORDER BY l.from_date DESC LIMIT %s OFFSET %s",
                tuple(params) + (int(limit), int(offset)),
            )
            return [_row_to_leave(r) for r in fetchall(cur)], total

    def for_year(self, year: int) -> Sequence[Leave]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE YEAR(l.from_date)=%s ORDER BY l.from_date", (int(year),))
            return [_row_to_leave(r) for r in fetchall(cur)]

    def carried_days(self, user_id: int, leave_type_id: int, year: int) -> float:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT carried_days FROM leave_carry_forwards
                WHERE user_id=%s AND leave_type_id=%s AND year=%s AND is_expired=0
                """,
                (int(user_id), int(leave_type_id), int(year)),
            )
            row = fetchone(cur)
        return to_float(row["carried_days"]) if row else 0.0

    def save_carry_forward(self, row: LeaveCarryForward) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO leave_carry_forwards(user_id, leave_type_id, year, carried_days, used_days,
                                                 expiry_date, is_expired, created_at, updated_at)
                VALUES(%s,%s,%s,%s,%s,%s,%s,NOW(),NOW())
                ON DUPLICATE KEY UPDATE carried_days=VALUES(carried_days), expiry_date=VALUES(expiry_date),
                                        is_expired=VALUES(is_expired), updated_at=NOW()
                """,
                (
                    row.user_id,
                    row.leave_type_id,
                    row.year,
                    row.carried_days,
                    row.used_days,
                    row.expiry_date,
                    1 if row.is_expired else 0,
                ),
            )

    def expire_carry_forwards(self, year: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE leave_carry_forwards SET is_expired=1, updated_at=NOW() WHERE year=%s AND is_expired=0",
                (int(year),),
            )
            return int(cur.rowcount)

    def accrued_days(self, user_id: int, leave_type_id: int, year: int) -> float:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COALESCE(SUM(accrued_days), 0) AS total FROM leave_accruals
                WHERE user_id=%s AND leave_type_id=%s AND YEAR(accrual_date)=%s
                """,
                (int(user_id), int(leave_type_id), int(year)),
            )
            row = fetchone(cur)
        return to_float(row["total"]) if row else 0.0

    def add_accrual(self, accrual: LeaveAccrual) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT IGNORE INTO leave_accruals(user_id, leave_type_id, accrual_date, accrued_days,
                                                  balance_after_accrual, accrual_type, notes, created_at, updated_at)
                VALUES(%s,%s,%s,%s,%s,%s,%s,NOW(),NOW())
                """,
                (
                    accrual.user_id,
                    accrual.leave_type_id,
                    accrual.accrual_date,
                    accrual.accrued_days,
                    accrual.balance_after,
                    accrual.accrual_type.value,
                    accrual.notes,
                ),
            )
            return cur.rowcount > 0

    def list_holidays(self, start: date, end: date) -> Sequence[Holiday]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, title, from_date, to_date, is_active, description FROM holidays
                WHERE is_active=1 AND from_date<=%s AND to_date>=%s
                ORDER BY from_date
                """,
                (end, start),
            )
            rows = fetchall(cur)
        return [
            Holiday(
                id=int(r["id"]),
                title=r["title"],
                from_date=r["from_date"],
                to_date=r["to_date"],
                is_active=bool(r["is_active"]),
                description=r.get("description"),
            )
            for r in rows
        ]
