"""Validation and creation of leave requests for a batch of dates.

Each date gets one of three statuses:

- ``ok``: can be taken.
- ``warning``: weekend or public holiday; allowed but not charged to the
  balance and not included in the created leaves.
- ``conflict``: blocks the whole batch (past date, duplicate, overlap with an
  existing leave, or beyond the remaining balance).
"""
from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Callable, Iterable, Optional

from ..common.datetime_utils import is_weekend, now_local
from ..core.exceptions import ValidationError
from ..users.model import SessionUser
from .model import BulkDateResult, Leave
from .query_service import COUNTED_STATUSES, LeaveQueryService
from .repository import LeaveRepository
from .service import LeaveService


def group_consecutive(dates: Iterable[date]) -> list[tuple[date, date]]:
    """Collapse dates into inclusive (start, end) runs of consecutive days."""
    runs: list[tuple[date, date]] = []
    for d in sorted(set(dates)):
        if runs and d == runs[-1][1] + timedelta(days=1):
            runs[-1] = (runs[-1][0], d)
        else:
            runs.append((d, d))
    return runs


class BulkLeaveValidator:
    def __init__(
        self,
        leaves: LeaveRepository,
        query: LeaveQueryService,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._leaves = leaves
        self._query = query
        self._clock = clock

    def validate(self, user_id: int, dates: Iterable[str | date], leave_type_id: int) -> dict:
        setting = self._leaves.get_setting(int(leave_type_id))
        if not setting:
            raise ValidationError("The selected leave type is invalid.")

        today = self._clock().date()
        results: list[BulkDateResult] = []
        parsed: list[tuple[BulkDateResult, Optional[date]]] = []
        seen: set[date] = set()

        for raw in dates:
            label = raw.isoformat() if isinstance(raw, date) else str(raw).strip()
            result = BulkDateResult(date=label)
            results.append(result)
            try:
                d = raw if isinstance(raw, date) else date.fromisoformat(label)
            except ValueError:
                result.conflict("Invalid date format.")
                parsed.append((result, None))
                continue
            if d in seen:
                result.conflict("Duplicate date in selection.")
            seen.add(d)
            if d < today:
                result.conflict("Cannot apply leave for past dates.")
            parsed.append((result, d))

        valid_dates = [d for _, d in parsed if d is not None]
        existing: list[Leave] = []
        holidays: dict[date, str] = {}
        if valid_dates:
            start, end = min(valid_dates), max(valid_dates)
            existing = list(self._leaves.overlapping(user_id, start, end, statuses=COUNTED_STATUSES))
            holidays = self._query.holidays_by_date(start, end)

        for result, d in parsed:
            if d is None:
                continue
            clash = next((leave for leave in existing if leave.overlaps(d, d)), None)
            if clash:
                result.conflict(
                    f"Overlaps with an existing {clash.status.value} leave "
                    f"({clash.from_date.isoformat()} to {clash.to_date.isoformat()})."
                )
            if is_weekend(d):
                result.warn("Date falls on a weekend.")
            if d in holidays:
                result.warn(f"Date is a public holiday ({holidays[d]}).")

        chargeable = [(r, d) for r, d in parsed if d is not None and r.status == "ok"]
        years = {d.year for _, d in chargeable}
        remaining = {y: self._query.remaining_days(user_id, setting, y) for y in years}
        impact = 0
        for result, d in sorted(chargeable, key=lambda item: item[1]):
            if remaining[d.year] >= 1:
                remaining[d.year] -= 1
                impact += 1
            else:
                result.conflict(f"Insufficient {setting.type} balance.")

        conflicts = sum(1 for r in results if r.status == "conflict")
        warnings = sum(1 for r in results if r.status == "warning")
        return {
            "validation_results": [r.to_dict() for r in results],
            "summary": {
                "total": len(results),
                "valid": len(results) - conflicts,
                "conflicts": conflicts,
                "warnings": warnings,
                "estimated_balance_impact": impact,
            },
        }

    def bulk_create(
        self,
        service: LeaveService,
        *,
        user_id: int,
        dates: Iterable[str | date],
        leave_type_id: int,
        reason: Optional[str],
        current_user: SessionUser,
    ) -> dict:
        dates = list(dates)
        if not dates:
            raise ValidationError("Please select at least one date.")
        report = self.validate(user_id, dates, leave_type_id)
        if report["summary"]["conflicts"]:
            error = ValidationError("Some selected dates have conflicts.")
            error.errors = {r["date"]: r["errors"] for r in report["validation_results"] if r["errors"]}
            raise error

        chargeable = [date.fromisoformat(r["date"]) for r in report["validation_results"] if r["status"] == "ok"]
        created = []
        for start, end in group_consecutive(chargeable):
            leave = service.apply(
                leave_type_id=leave_type_id,
                from_date=start,
                to_date=end,
                reason=reason,
                current_user=current_user,
                user_id=user_id,
            )
            created.append(leave)
        return {
            "created": [leave.to_dict() for leave in created],
            "created_count": len(created),
            "summary": report["summary"],
        }
