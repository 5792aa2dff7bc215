from __future__ import annotations

import calendar
import math
from collections import defaultdict
from datetime import date, datetime
from typing import Callable, Iterable, Optional, Union

from ..common.datetime_utils import month_bounds, now_local
from ..common.logging_config import get_logger
from ..core.constants import DEFAULT_PAGE_SIZE
from ..core.enums import LeaveStatus
from ..core.exceptions import ValidationError
from ..users.model import SessionUser
from ..users.repository import UserRepository
from .model import Leave, LeaveSetting
from .repository import LeaveRepository

logger = get_logger(__name__)

STATUS_MAP: dict[str, list[str]] = {
    "pending": [LeaveStatus.NEW.value, LeaveStatus.PENDING.value],
    "approved": [LeaveStatus.APPROVED.value],
    "rejected": [LeaveStatus.DECLINED.value, LeaveStatus.REJECTED.value],
    "new": [LeaveStatus.NEW.value],
}

# Leaves that consume balance.
COUNTED_STATUSES = (LeaveStatus.NEW, LeaveStatus.PENDING, LeaveStatus.APPROVED)

MONTH_KEYS = [calendar.month_abbr[m].upper() for m in range(1, 13)]


def map_statuses(status: Union[None, str, Iterable[str]]) -> list[str]:
    """Expand UI status keys to stored statuses; unknown keys are capitalized."""
    if not status or status == "all":
        return []
    keys = [status] if isinstance(status, str) else [s for s in status if s]
    out: list[str] = []
    for key in keys:
        for value in STATUS_MAP.get(key, [key[:1].upper() + key[1:]]):
            if value not in out:
                out.append(value)
    return out


def _list_filter(value: Union[None, str, Iterable]) -> list:
    if value in (None, "", "all"):
        return []
    values = [value] if isinstance(value, (str, int)) else list(value)
    if "all" in values:
        return []
    return [v for v in values if v not in (None, "")]


class LeaveQueryService:
    """Leave listings, balances, statistics and holiday calendars."""

    def __init__(
        self,
        leaves: LeaveRepository,
        users: UserRepository,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._leaves = leaves
        self._users = users
        self._clock = clock

    def filter(
        self,
        *,
        filters: dict,
        current_user: SessionUser,
        page: int = 1,
        per_page: int = DEFAULT_PAGE_SIZE,
    ) -> dict:
        query: dict = {}

        specific_user = filters.get("user_id")
        if specific_user and (current_user.is_admin or int(specific_user) == current_user.user_id):
            query["user_id"] = int(specific_user)
        elif not (current_user.is_admin and filters.get("admin_view")):
            query["user_id"] = current_user.user_id

        month = filters.get("month")
        year = filters.get("year")
        if month:
            try:
                y, m = (int(p) for p in str(month).split("-", 1))
                query["start"], query["end"] = month_bounds(y, m)
            except ValueError:
                logger.warning("Invalid month filter month=%s", month)
                if year:
                    query["start"], query["end"] = date(int(year), 1, 1), date(int(year), 12, 31)
        elif year:
            query["start"], query["end"] = date(int(year), 1, 1), date(int(year), 12, 31)

        if filters.get("employee"):
            query["employee"] = str(filters["employee"]).strip()
        query["statuses"] = map_statuses(filters.get("status"))
        query["leave_types"] = [str(t) for t in _list_filter(filters.get("leave_type"))]
        query["department_ids"] = [int(d) for d in _list_filter(filters.get("department"))]

        page = max(1, int(page or 1))
        per_page = max(1, int(per_page or DEFAULT_PAGE_SIZE))
        rows, total = self._leaves.search(filters=query, limit=per_page, offset=(page - 1) * per_page)

        message = None
        if not rows:
            if specific_user:
                message = "No leave records found for the selected user."
            elif "user_id" in query:
                message = "You have no leave records for the selected period."
            else:
                message = "No leave records found for the selected criteria."

        return {
            "data": [leave.to_dict() for leave in rows],
            "total": total,
            "page": page,
            "per_page": per_page,
            "last_page": max(1, math.ceil(total / per_page)),
            "message": message,
        }

    def used_days(self, user_id: int, leave_type_id: int, year: int, *, exclude_id: Optional[int] = None) -> int:
        return sum(
            leave.no_of_days
            for leave in self._leaves.for_user_year(user_id, year)
            if leave.leave_type_id == leave_type_id and leave.status in COUNTED_STATUSES and leave.id != exclude_id
        )

    def remaining_days(self, user_id: int, setting: LeaveSetting, year: int) -> float:
        carried = self._leaves.carried_days(user_id, setting.id, year)
        return max(0.0, setting.days + carried - self.used_days(user_id, setting.id, year))

    def balances(self, user_id: int, year: Optional[int] = None) -> list[dict]:
        year = year or self._clock().year
        out = []
        for setting in self._leaves.list_settings():
            carried = self._leaves.carried_days(user_id, setting.id, year)
            used = self.used_days(user_id, setting.id, year)
            out.append(
                {
                    "leave_type_id": setting.id,
                    "leave_type": setting.type,
                    "days": setting.days,
                    "carried": carried,
                    "used": used,
                    "remaining": max(0.0, setting.days + carried - used),
                }
            )
        return out

    def statistics(self, year: Optional[int] = None) -> dict:
        year = year or self._clock().year
        leaves = self._leaves.for_year(year)
        by_status = {key: 0 for key in ("pending", "approved", "rejected")}
        by_type: dict[str, int] = defaultdict(int)
        for leave in leaves:
            for key in by_status:
                if leave.status.value in STATUS_MAP[key]:
                    by_status[key] += 1
            if leave.status == LeaveStatus.APPROVED:
                by_type[leave.leave_type or str(leave.leave_type_id)] += leave.no_of_days
        return {
            "year": year,
            "total_leaves": len(leaves),
            "total_days": sum(l.no_of_days for l in leaves if l.status in COUNTED_STATUSES),
            "by_status": by_status,
            "approved_days_by_type": dict(by_type),
        }

    def holiday_dates(self, start: date, end: date) -> list[date]:
        if end < start:
            raise ValidationError("The end date must be a date after or equal to start date.")
        dates = set()
        for holiday in self._leaves.list_holidays(start, end):
            dates.update(d for d in holiday.dates() if start <= d <= end)
        return sorted(dates)

    def holidays_by_date(self, start: date, end: date) -> dict[date, str]:
        out: dict[date, str] = {}
        for holiday in self._leaves.list_holidays(start, end):
            for d in holiday.dates():
                if start <= d <= end:
                    out.setdefault(d, holiday.title)
        return out

    def summary(self, year: Optional[int] = None, *, department_id: Optional[int] = None) -> list[dict]:
        """Per employee approved days per month, totals and usage for the year."""
        year = year or self._clock().year
        settings = self._leaves.list_settings()
        entitlement = sum(s.days for s in settings)
        by_user: dict[int, list[Leave]] = defaultdict(list)
        for leave in self._leaves.for_year(year):
            by_user[leave.user_id].append(leave)

        rows = []
        for user in self._users.list_active():
            if department_id is not None and user.department_id != department_id:
                continue
            leaves = by_user.get(user.user_id, [])
            department = self._users.get_department(user.department_id) if user.department_id else None
            row: dict = {
                "employee_name": user.name,
                "department": department.name if department else "N/A",
            }
            row.update({key: 0 for key in MONTH_KEYS})
            approved = pending = 0
            for leave in leaves:
                if leave.status == LeaveStatus.APPROVED:
                    row[MONTH_KEYS[leave.from_date.month - 1]] += leave.no_of_days
                    approved += leave.no_of_days
                elif leave.status.value in STATUS_MAP["pending"]:
                    pending += leave.no_of_days
            carried = sum(self._leaves.carried_days(user.user_id, s.id, year) for s in settings)
            total = entitlement + carried
            row["total_approved"] = approved
            row["total_pending"] = pending
            row["total_balance"] = max(0.0, total - approved - pending)
            row["usage_percentage"] = round(approved / total * 100, 1) if total else 0
            rows.append(row)
        return rows
