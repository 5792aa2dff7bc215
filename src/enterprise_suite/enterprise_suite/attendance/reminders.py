from __future__ import annotations

from datetime import date

from ..common.datetime_utils import is_weekend
from ..common.logging_config import get_logger
from ..core.enums import LeaveStatus
from ..leaves.repository import LeaveRepository
from ..users.repository import UserRepository
from .model import Notification
from .repository import AttendanceRepository

logger = get_logger(__name__)

REMINDER_TYPE = "attendance_reminder"


def send_punch_reminders(
    attendance: AttendanceRepository,
    users: UserRepository,
    leaves: LeaveRepository,
    today: date,
) -> dict:
    """Notify active users who have not punched in today.

    Weekends and holidays are skipped entirely; users on approved leave are
    not reminded.
    """
    if is_weekend(today):
        return {"date": today.isoformat(), "sent": 0, "skipped": "weekend"}
    holidays = [h for h in leaves.list_holidays(today, today) if today in h.dates()]
    if holidays:
        return {"date": today.isoformat(), "sent": 0, "skipped": "holiday"}

    punched = attendance.users_punched_on(today)
    sent = 0
    for user in users.list_active():
        if user.user_id in punched:
            continue
        if leaves.overlapping(user.user_id, today, today, statuses=(LeaveStatus.APPROVED,)):
            continue
        attendance.add_notification(
            Notification(
                user_id=user.user_id,
                type=REMINDER_TYPE,
                title="Attendance reminder",
                message="You have not punched in today. Please record your attendance.",
                data={"date": today.isoformat()},
            )
        )
        sent += 1
    logger.info("Punch reminders for %s: %s sent", today.isoformat(), sent)
    return {"date": today.isoformat(), "sent": sent, "skipped": None}
