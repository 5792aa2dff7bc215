from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from ..core.enums import LeaveStatus
from .model import Holiday, Leave, LeaveAccrual, LeaveCarryForward, LeaveSetting


class LeaveRepository(Protocol):
    def list_settings(self) -> Sequence[LeaveSetting]:
        raise NotImplementedError

    def get_setting(self, setting_id: int) -> Optional[LeaveSetting]:
        raise NotImplementedError

    def get(self, leave_id: int) -> Optional[Leave]:
        raise NotImplementedError

    def create(self, leave: Leave) -> int:
        raise NotImplementedError

    def update(self, leave_id: int, data: dict) -> bool:
        raise NotImplementedError

    def delete(self, leave_id: int) -> bool:
        raise NotImplementedError

    def overlapping(
        self,
        user_id: int,
        start: date,
        end: date,
        *,
        statuses: Sequence[LeaveStatus],
        exclude_id: Optional[int] = None,
    ) -> Sequence[Leave]:
        raise NotImplementedError

    def for_user_year(self, user_id: int, year: int) -> Sequence[Leave]:
        raise NotImplementedError

    def search(self, *, filters: dict, limit: int, offset: int) -> tuple[Sequence[Leave], int]:
        """Filters: user_id, start/end (from_date range), employee, statuses, leave_types, department_ids."""
        raise NotImplementedError

    def for_year(self, year: int) -> Sequence[Leave]:
        raise NotImplementedError

    def carried_days(self, user_id: int, leave_type_id: int, year: int) -> float:
        """Non-expired carried-forward days into ``year``."""
        raise NotImplementedError

    def save_carry_forward(self, row: LeaveCarryForward) -> None:
        """Insert or replace by (user, leave type, year)."""
        raise NotImplementedError

    def expire_carry_forwards(self, year: int) -> int:
        raise NotImplementedError

    def accrued_days(self, user_id: int, leave_type_id: int, year: int) -> float:
        raise NotImplementedError

    def add_accrual(self, accrual: LeaveAccrual) -> bool:
        """False when an accrual already exists for that user, type and date."""
        raise NotImplementedError

    def list_holidays(self, start: date, end: date) -> Sequence[Holiday]:
        """Active holidays overlapping [start, end]."""
        raise NotImplementedError
