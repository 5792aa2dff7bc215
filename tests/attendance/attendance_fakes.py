from dataclasses import replace

from src.enterprise_suite.enterprise_suite.attendance.model import AttendanceRecord


class FakeAttendanceRepo:
    def __init__(self, types=(), records=()):
        self.types = {t.id: t for t in types}
        self.records = list(records)
        self.used_codes = set()
        self.notifications = []

    def list_types(self, *, active_only=True):
        return [t for t in self.types.values() if t.is_active or not active_only]

    def get_type(self, type_id):
        return self.types.get(type_id)

    def update_type_config(self, type_id, config):
        self.types[type_id] = replace(self.types[type_id], config=config)
        return True

    def get_for_user_and_date(self, user_id, work_date):
        mine = [r for r in self.records if r.user_id == user_id and r.date == work_date]
        return mine[-1] if mine else None

    def recent_for_user(self, user_id, limit):
        return [r for r in reversed(self.records) if r.user_id == user_id][:limit]

    def create_punchin(self, *, user_id, work_date, punchin, attendance_type_id, location):
        record = AttendanceRecord(
            id=len(self.records) + 1,
            user_id=user_id,
            date=work_date,
            punchin=punchin,
            attendance_type_id=attendance_type_id,
            punchin_location=location,
        )
        self.records.append(record)
        return record.id

    def update_punchout(self, *, attendance_id, punchout, location):
        index = next(i for i, r in enumerate(self.records) if r.id == attendance_id)
        self.records[index] = replace(self.records[index], punchout=punchout, punchout_location=location)
        return True

    def users_punched_on(self, work_date):
        return {r.user_id for r in self.records if r.date == work_date}

    def mark_qr_code_used(self, type_id, code, used_at):
        self.used_codes.add((type_id, code))

    def qr_code_used(self, type_id, code):
        return (type_id, code) in self.used_codes

    def add_notification(self, notification):
        self.notifications.append(notification)
        return len(self.notifications)
