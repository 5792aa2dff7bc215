from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from .model import AttendanceRecord, AttendanceType, Notification


class AttendanceRepository(Protocol):
    def list_types(self, *, active_only: bool = True) -> Sequence[AttendanceType]:
        raise NotImplementedError

    def get_type(self, type_id: int) -> Optional[AttendanceType]:
        raise NotImplementedError

    def update_type_config(self, type_id: int, config: dict) -> bool:
        raise NotImplementedError

    def get_for_user_and_date(self, user_id: int, work_date: date) -> Optional[AttendanceRecord]:
        """Latest record of the day for the user."""
        raise NotImplementedError

    def recent_for_user(self, user_id: int, limit: int) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def create_punchin(
        self,
        *,
        user_id: int,
        work_date: date,
        punchin: datetime,
        attendance_type_id: Optional[int],
        location: Optional[dict],
    ) -> int:
        raise NotImplementedError

    def update_punchout(self, *, attendance_id: int, punchout: datetime, location: Optional[dict]) -> bool:
        raise NotImplementedError

    def users_punched_on(self, work_date: date) -> set[int]:
        raise NotImplementedError

    def mark_qr_code_used(self, type_id: int, code: str, used_at: datetime) -> None:
        """Record a one-time QR code as consumed."""
        raise NotImplementedError

    def qr_code_used(self, type_id: int, code: str) -> bool:
        raise NotImplementedError

    def add_notification(self, notification: Notification) -> int:
        raise NotImplementedError
