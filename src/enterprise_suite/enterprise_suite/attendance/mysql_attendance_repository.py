from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..database.mysql_base import db_cursor, fetchall, fetchone, json_dumps, json_loads
from .model import AttendanceRecord, AttendanceType, Notification
from .repository import AttendanceRepository

_RECORD_SELECT = """
    SELECT id, user_id, date, punchin, punchout, attendance_type_id, punchin_location, punchout_location
    FROM attendances
"""


def _row_to_type(r: dict) -> AttendanceType:
    return AttendanceType(
        id=int(r["id"]),
        name=r["name"],
        slug=r["slug"],
        config=json_loads(r.get("config"), {}),
        is_active=bool(r.get("is_active")),
        description=r.get("description"),
    )


def _row_to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        id=int(r["id"]),
        user_id=int(r["user_id"]),
        date=r["date"],
        punchin=r["punchin"],
        punchout=r.get("punchout"),
        attendance_type_id=int(r["attendance_type_id"]) if r.get("attendance_type_id") else None,
        punchin_location=json_loads(r.get("punchin_location")),
        punchout_location=json_loads(r.get("punchout_location")),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory):
        self._conn_factory = conn_factory

    def list_types(self, *, active_only: bool = True) -> Sequence[AttendanceType]:
        sql = "SELECT id, name, slug, config, is_active, description FROM attendance_types"
        if active_only:
            sql += " WHERE is_active=1"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql + " ORDER BY id")
            return [_row_to_type(r) for r in fetchall(cur)]

    def get_type(self, type_id: int) -> Optional[AttendanceType]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT id, name, slug, config, is_active, description FROM attendance_types WHERE id=%s",
                (int(type_id),),
            )
            r = fetchone(cur)
        return _row_to_type(r) if r else None

    def update_type_config(self, type_id: int, config: dict) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE attendance_types SET config=%s, updated_at=NOW() WHERE id=%s",
                (json_dumps(config), int(type_id)),
            )
            return cur.rowcount > 0

    def get_for_user_and_date(self, user_id: int, work_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _RECORD_SELECT + " WHERE user_id=%s AND date=%s ORDER BY punchin DESC, id DESC LIMIT 1",
                (int(user_id), work_date),
            )
            r = fetchone(cur)
        return _row_to_record(r) if r else None

    def recent_for_user(self, user_id: int, limit: int) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _RECORD_SELECT + " WHERE user_id=%s ORDER BY date DESC, punchin DESC LIMIT %s",
                (int(user_id), int(limit)),
            )
            return [_row_to_record(r) for r in fetchall(cur)]

    def create_punchin(
        self,
        *,
        user_id: int,
        work_date: date,
        punchin: datetime,
        attendance_type_id: Optional[int],
        location: Optional[dict],
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendances(user_id, date, punchin, attendance_type_id, punchin_location, created_at, updated_at)
                VALUES(%s,%s,%s,%s,%s,NOW(),NOW())
                """,
                (int(user_id), work_date, punchin, attendance_type_id, json_dumps(location)),
            )
            return int(cur.lastrowid)

    def update_punchout(self, *, attendance_id: int, punchout: datetime, location: Optional[dict]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendances SET punchout=%s, punchout_location=%s, updated_at=NOW()
                WHERE id=%s AND punchout IS NULL
                """,
                (punchout, json_dumps(location), int(attendance_id)),
            )
            return cur.rowcount > 0

    def users_punched_on(self, work_date: date) -> set[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT DISTINCT user_id FROM attendances WHERE date=%s", (work_date,))
            return {int(r["user_id"]) for r in fetchall(cur)}

    def mark_qr_code_used(self, type_id: int, code: str, used_at: datetime) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT IGNORE INTO attendance_qr_code_uses(attendance_type_id, code, used_at) VALUES(%s,%s,%s)",
                (int(type_id), code, used_at),
            )

    def qr_code_used(self, type_id: int, code: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT 1 AS found FROM attendance_qr_code_uses WHERE attendance_type_id=%s AND code=%s",
                (int(type_id), code),
            )
            return fetchone(cur) is not None

    def add_notification(self, notification: Notification) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO notifications(user_id, type, title, message, data, created_at, updated_at)
                VALUES(%s,%s,%s,%s,%s,NOW(),NOW())
                """,
                (
                    notification.user_id,
                    notification.type,
                    notification.title,
                    notification.message,
                    json_dumps(notification.data),
                ),
            )
            return int(cur.lastrowid)
