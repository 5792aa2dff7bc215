from __future__ import annotations

from typing import Mapping, Optional, Sequence

from ..core.enums import CustomFieldType, Gender, RegistrationStatus
from ..database.mysql_base import (
    db_cursor,
    fetchall,
    fetchone,
    in_clause,
    json_dumps,
    json_loads,
    normalize_mysql_time,
    to_float,
)
from .model import SEAT_STATUSES, ActivityLog, CustomField, Event, EventRegistration, SubEvent
from .repository import EventRepository

def _count_registrations(cur, event_id: int, statuses: Sequence[RegistrationStatus], sub_event_id: Optional[int]) -> int:
    values = [s.value for s in statuses]
    sql = "SELECT COUNT(DISTINCT r.id) AS c FROM event_registrations r"
    params: list = []
    if sub_event_id is not None:
        sql += " JOIN event_registration_sub_events rs ON rs.event_registration_id=r.id AND rs.sub_event_id=%s"
        params.append(int(sub_event_id))
    sql += f" WHERE r.event_id=%s AND r.deleted_at IS NULL AND r.status IN ({in_clause(values)})"
    params.append(int(event_id))
    params.extend(values)
    cur.execute(sql, tuple(params))
    row = fetchone(cur)
    return int(row["c"]) if row else 0


_EVENT_SELECT = """
    SELECT id, title, slug, venue, event_date, event_time, description, registration_deadline, max_participants,
           is_published, is_registration_open, organizer_name, organizer_email, organizer_phone
    FROM events
"""

_EVENT_COLUMNS = (
    "title",
    "slug",
    "venue",
    "event_date",
    "event_time",
    "description",
    "registration_deadline",
    "max_participants",
    "is_published",
    "is_registration_open",
    "organizer_name",
    "organizer_email",
    "organizer_phone",
    "created_by",
    "updated_by",
)

_REGISTRATION_SELECT = """
    SELECT id, event_id, token, full_name, email, phone, gender, payment_verified, status, rejection_reason,
           custom_fields, qr_code, created_at
    FROM event_registrations
"""

_REGISTRATION_COLUMNS = (
    "status",
    "rejection_reason",
    "payment_verified",
    "payment_verified_at",
    "payment_verified_by",
    "qr_code",
    "admin_notes",
)


def _row_to_event(row: dict) -> Event:
    return Event(
        id=int(row["id"]),
        title=row["title"],
        slug=row["slug"],
        venue=row["venue"],
        event_date=row["event_date"],
        event_time=normalize_mysql_time(row["event_time"]),
        description=row.get("description"),
        registration_deadline=row.get("registration_deadline"),
        max_participants=row.get("max_participants"),
        is_published=bool(row.get("is_published")),
        is_registration_open=bool(row.get("is_registration_open")),
        organizer_name=row.get("organizer_name"),
        organizer_email=row.get("organizer_email"),
        organizer_phone=row.get("organizer_phone"),
    )


def _row_to_registration(row: dict, sub_event_ids: Sequence[int] = ()) -> EventRegistration:
    return EventRegistration(
        id=int(row["id"]),
        event_id=int(row["event_id"]),
        token=row["token"],
        full_name=row["full_name"],
        email=row["email"],
        phone=row["phone"],
        gender=Gender(row["gender"]) if row.get("gender") else None,
        payment_verified=bool(row.get("payment_verified")),
        status=RegistrationStatus(row["status"]),
        rejection_reason=row.get("rejection_reason"),
        custom_fields=json_loads(row.get("custom_fields"), {}),
        sub_event_ids=tuple(sub_event_ids),
        qr_code=row.get("qr_code"),
        created_at=row.get("created_at"),
    )


class MySQLEventRepository(EventRepository):
    def __init__(self, conn_factory):
        self._conn_factory = conn_factory

    def list_events(self, *, published_only: bool = False) -> Sequence[Event]:
        where = " WHERE deleted_at IS NULL" + (" AND is_published=1" if published_only else "")
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_EVENT_SELECT + where + " ORDER BY event_date DESC, id DESC")
            return [_row_to_event(r) for r in fetchall(cur)]

    def get(self, event_id: int) -> Optional[Event]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_EVENT_SELECT + " WHERE id=%s AND deleted_at IS NULL", (int(event_id),))
            row = fetchone(cur)
        return _row_to_event(row) if row else None

    def get_by_slug(self, slug: str) -> Optional[Event]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_EVENT_SELECT + " WHERE slug=%s AND deleted_at IS NULL", (slug,))
            row = fetchone(cur)
        return _row_to_event(row) if row else None

    def slug_exists(self, slug: str, *, exclude_id: Optional[int] = None) -> bool:
        sql = "SELECT 1 AS found FROM events WHERE slug=%s"
        params: tuple = (slug,)
        if exclude_id is not None:
            sql += " AND id<>%s"
            params += (int(exclude_id),)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, params)
            return fetchone(cur) is not None

    def create(self, data: dict) -> int:
        keys = [k for k in _EVENT_COLUMNS if k in data]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO events({', '.join(keys)}, created_at, updated_at) VALUES({in_clause(keys)}, NOW(), NOW())",
                tuple(data[k] for k in keys),
            )
            return int(cur.lastrowid)

    def update(self, event_id: int, data: dict) -> bool:
        keys = [k for k in _EVENT_COLUMNS if k in data]
        if not keys:
            return False
        sets = ", ".join(f"{k}=%s" for k in keys)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE events SET {sets}, updated_at=NOW() WHERE id=%s AND deleted_at IS NULL",
                tuple(data[k] for k in keys) + (int(event_id),),
            )
            return cur.rowcount > 0

    def soft_delete(self, event_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE events SET deleted_at=NOW() WHERE id=%s AND deleted_at IS NULL", (int(event_id),))
            return cur.rowcount > 0

    def sub_events(self, event_id: int) -> Sequence[SubEvent]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, event_id, title, description, max_participants, joining_fee, display_order, is_active
                FROM sub_events
                WHERE event_id=%s AND deleted_at IS NULL
                ORDER BY display_order, id
                """,
                (int(event_id),),
            )
            rows = fetchall(cur)
        return [
            SubEvent(
                id=int(r["id"]),
                event_id=int(r["event_id"]),
                title=r["title"],
                description=r.get("description"),
                max_participants=r.get("max_participants"),
                joining_fee=to_float(r.get("joining_fee")) or 0.0,
                display_order=int(r.get("display_order") or 0),
                is_active=bool(r.get("is_active")),
            )
            for r in rows
        ]

    def save_sub_event(self, event_id: int, data: dict, *, sub_event_id: Optional[int] = None) -> int:
        values = (
            data["title"],
            data.get("description"),
            data.get("max_participants"),
            data.get("joining_fee", 0),
            int(data.get("display_order", 0)),
            1 if data.get("is_active", True) else 0,
        )
        with db_cursor(self._conn_factory) as (_, cur):
            if sub_event_id is not None:
                cur.execute(
                    """
                    UPDATE sub_events
                    SET title=%s, description=%s, max_participants=%s, joining_fee=%s, display_order=%s,
                        is_active=%s, updated_at=NOW()
                    WHERE id=%s AND event_id=%s
                    """,
                    values + (int(sub_event_id), int(event_id)),
                )
                return int(sub_event_id)
            cur.execute(
                """
                INSERT INTO sub_events(event_id, title, description, max_participants, joining_fee, display_order,
                                       is_active, created_at, updated_at)
                VALUES(%s,%s,%s,%s,%s,%s,%s,NOW(),NOW())
                """,
                (int(event_id),) + values,
            )
            return int(cur.lastrowid)

    def delete_sub_event(self, sub_event_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE sub_events SET deleted_at=NOW() WHERE id=%s AND deleted_at IS NULL", (int(sub_event_id),))
            return cur.rowcount > 0

    def custom_fields(self, event_id: int) -> Sequence[CustomField]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, event_id, field_name, field_label, field_type, field_options, is_required, display_order
                FROM event_custom_fields
                WHERE event_id=%s
                ORDER BY display_order, id
                """,
                (int(event_id),),
            )
            rows = fetchall(cur)
        return [
            CustomField(
                id=int(r["id"]),
                event_id=int(r["event_id"]),
                field_name=r["field_name"],
                field_label=r["field_label"],
                field_type=CustomFieldType(r["field_type"]),
                is_required=bool(r.get("is_required")),
                options=tuple(json_loads(r.get("field_options"), [])),
                display_order=int(r.get("display_order") or 0),
            )
            for r in rows
        ]

    def replace_custom_fields(self, event_id: int, fields: Sequence[dict]) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM event_custom_fields WHERE event_id=%s", (int(event_id),))
            for order, f in enumerate(fields):
                cur.execute(
                    """
                    INSERT INTO event_custom_fields(event_id, field_name, field_label, field_type, field_options,
                                                    is_required, display_order, created_at, updated_at)
                    VALUES(%s,%s,%s,%s,%s,%s,%s,NOW(),NOW())
                    """,
                    (
                        int(event_id),
                        f["field_name"],
                        f["field_label"],
                        f["field_type"],
                        json_dumps(list(f.get("options") or [])),
                        1 if f.get("is_required") else 0,
                        int(f.get("display_order", order)),
                    ),
                )

    def count_registrations(
        self,
        event_id: int,
        *,
        statuses: Sequence[RegistrationStatus],
        sub_event_id: Optional[int] = None,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            return _count_registrations(cur, event_id, statuses, sub_event_id)

    def email_registered(self, event_id: int, email: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT 1 AS found FROM event_registrations
                WHERE event_id=%s AND email=%s AND status<>'cancelled' AND deleted_at IS NULL
                """,
                (int(event_id), email),
            )
            return fetchone(cur) is not None

    def create_registration(
        self, registration: EventRegistration, *, seat_limits: Optional[Mapping[Optional[int], int]] = None
    ) -> Optional[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            if seat_limits:
                # the event row lock serializes concurrent registrations for the same event
                cur.execute("SELECT id FROM events WHERE id=%s FOR UPDATE", (int(registration.event_id),))
                fetchone(cur)
                for sub_event_id, limit in seat_limits.items():
                    if _count_registrations(cur, registration.event_id, SEAT_STATUSES, sub_event_id) >= limit:
                        return None
            cur.execute(
                """
                INSERT INTO event_registrations(event_id, token, full_name, email, phone, gender, status,
                                                custom_fields, qr_code, created_at, updated_at)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,NOW(),NOW())
                """,
                (
                    registration.event_id,
                    registration.token,
                    registration.full_name,
                    registration.email,
                    registration.phone,
                    registration.gender.value if registration.gender else None,
                    registration.status.value,
                    json_dumps(registration.custom_fields),
                    registration.qr_code,
                ),
            )
            registration_id = int(cur.lastrowid)
            for sub_event_id in registration.sub_event_ids:
                cur.execute(
                    """
                    INSERT INTO event_registration_sub_events(event_registration_id, sub_event_id, created_at, updated_at)
                    VALUES(%s,%s,NOW(),NOW())
                    """,
                    (registration_id, int(sub_event_id)),
                )
            return registration_id

    def _with_sub_events(self, cur, rows: list[dict]) -> list[EventRegistration]:
        if not rows:
            return []
        ids = [int(r["id"]) for r in rows]
        cur.execute(
            f"""
            SELECT event_registration_id, sub_event_id FROM event_registration_sub_events
            WHERE event_registration_id IN ({in_clause(ids)})
            ORDER BY sub_event_id
            """,
            tuple(ids),
        )
        links: dict[int, list[int]] = {i: [] for i in ids}
        for link in fetchall(cur):
            links[int(link["event_registration_id"])].append(int(link["sub_event_id"]))
        return [_row_to_registration(r, links[int(r["id"])]) for r in rows]

    def get_registration(self, registration_id: int) -> Optional[EventRegistration]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_REGISTRATION_SELECT + " WHERE id=%s AND deleted_at IS NULL", (int(registration_id),))
            found = self._with_sub_events(cur, fetchall(cur))
        return found[0] if found else None

    def get_registration_by_token(self, token: str) -> Optional[EventRegistration]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_REGISTRATION_SELECT + " WHERE token=%s AND deleted_at IS NULL", (token,))
            found = self._with_sub_events(cur, fetchall(cur))
        return found[0] if found else None

    def update_registration(self, registration_id: int, data: dict) -> bool:
        keys = [k for k in _REGISTRATION_COLUMNS if k in data]
        if not keys:
            return False
        params = [getattr(data[k], "value", data[k]) for k in keys]
        sets = ", ".join(f"{k}=%s" for k in keys)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE event_registrations SET {sets}, updated_at=NOW() WHERE id=%s",
                tuple(params) + (int(registration_id),),
            )
            return cur.rowcount > 0

    def registrations(self, event_id: int, *, status: Optional[RegistrationStatus] = None) -> Sequence[EventRegistration]:
        sql = _REGISTRATION_SELECT + " WHERE event_id=%s AND deleted_at IS NULL"
        params: tuple = (int(event_id),)
        if status is not None:
            sql += " AND status=%s"
            params += (status.value,)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql + " ORDER BY created_at DESC, id DESC", params)
            return self._with_sub_events(cur, fetchall(cur))

    def add_activity(self, entry: ActivityLog) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO event_activity_logs(event_id, user_id, action, model_type, model_id, old_values,
                                                new_values, created_at, updated_at)
                VALUES(%s,%s,%s,%s,%s,%s,%s,NOW(),NOW())
                """,
                (
                    entry.event_id,
                    entry.user_id,
                    entry.action,
                    entry.model_type,
                    entry.model_id,
                    json_dumps(entry.old_values),
                    json_dumps(entry.new_values),
                ),
            )
