from datetime import date, datetime

from src.enterprise_suite.enterprise_suite.attendance.model import AttendanceRecord
from src.enterprise_suite.enterprise_suite.attendance.reminders import REMINDER_TYPE, send_punch_reminders
from src.enterprise_suite.enterprise_suite.core.enums import LeaveStatus, Role
from src.enterprise_suite.enterprise_suite.leaves.model import Holiday, Leave
from src.enterprise_suite.enterprise_suite.users.model import User

from tests.attendance.attendance_fakes import FakeAttendanceRepo
from tests.leaves.leave_fakes import FakeLeaveRepo, FakeUsers

MONDAY = date(2026, 3, 2)


def _user(user_id):
    return User(user_id=user_id, name=f"U{user_id}", email=f"u{user_id}@example.com", password_hash="x", role=Role.EMPLOYEE)


def _leave(user_id, status):
    return Leave(
        id=user_id,
        user_id=user_id,
        leave_type_id=1,
        from_date=MONDAY,
        to_date=MONDAY,
        no_of_days=1,
        reason="x",
        status=status,
    )


def test_reminds_only_absent_users_not_on_approved_leave():
    attendance = FakeAttendanceRepo(records=[AttendanceRecord(id=1, user_id=1, date=MONDAY, punchin=datetime(2026, 3, 2, 8))])
    leaves = FakeLeaveRepo(leaves=[_leave(2, LeaveStatus.APPROVED), _leave(3, LeaveStatus.PENDING)])
    users = FakeUsers([_user(1), _user(2), _user(3), _user(4)])

    result = send_punch_reminders(attendance, users, leaves, MONDAY)

    assert result["sent"] == 2
    assert [n.user_id for n in attendance.notifications] == [3, 4]
    assert attendance.notifications[0].type == REMINDER_TYPE


def test_weekends_and_holidays_are_skipped():
    attendance = FakeAttendanceRepo()
    users = FakeUsers([_user(1)])
    assert send_punch_reminders(attendance, users, FakeLeaveRepo(), date(2026, 3, 7))["skipped"] == "weekend"

    holiday = Holiday(id=1, title="Independence Day", from_date=MONDAY, to_date=MONDAY)
    assert send_punch_reminders(attendance, users, FakeLeaveRepo(holidays=[holiday]), MONDAY)["skipped"] == "holiday"
    assert attendance.notifications == []
