from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import ACTIVE_OBJECTION_STATUSES, ChainageEntryType, ObjectionCategory, ObjectionStatus
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import ObjectionChainage, ObjectionStatusLog, RfiObjection, RfiSubmissionOverrideLog
from .repository import ObjectionRepository

_EDITABLE_COLUMNS = {"title", "category", "description", "reason", "chainage_from", "chainage_to"}

_SELECT = """
    SELECT id, title, category, description, reason, status, chainage_from, chainage_to,
           resolution_notes, resolved_by, resolved_at, created_by, updated_by, created_at
    FROM rfi_objections
"""


def _row_to_objection(r: dict, chainages: Sequence[ObjectionChainage]) -> RfiObjection:
    return RfiObjection(
        id=int(r["id"]),
        title=r["title"],
        category=ObjectionCategory(r["category"]) if r.get("category") else None,
        description=r["description"],
        reason=r["reason"],
        status=ObjectionStatus(r["status"]),
        created_by=int(r["created_by"]),
        chainage_from=r.get("chainage_from"),
        chainage_to=r.get("chainage_to"),
        resolution_notes=r.get("resolution_notes"),
        resolved_by=r.get("resolved_by"),
        resolved_at=r.get("resolved_at"),
        updated_by=r.get("updated_by"),
        created_at=r.get("created_at"),
        chainages=tuple(chainages),
    )


class MySQLObjectionRepository(ObjectionRepository):
    def __init__(self, conn_factory):
        self._conn_factory = conn_factory

    def _load_chainages(self, cur, objection_ids: Sequence[int]) -> dict[int, list[ObjectionChainage]]:
        out: dict[int, list[ObjectionChainage]] = {int(i): [] for i in objection_ids}
        if not objection_ids:
            return out
        cur.execute(
            f"""
            SELECT id, objection_id, chainage, chainage_meters, entry_type
            FROM objection_chainages
            WHERE objection_id IN ({in_clause(objection_ids)})
            ORDER BY chainage_meters
            """,
            tuple(int(i) for i in objection_ids),
        )
        for r in fetchall(cur):
            out[int(r["objection_id"])].append(
                ObjectionChainage(
                    id=int(r["id"]),
                    objection_id=int(r["objection_id"]),
                    chainage=r["chainage"],
                    chainage_meters=int(r["chainage_meters"]),
                    entry_type=ChainageEntryType(r["entry_type"]),
                )
            )
        return out

    def create(
        self,
        *,
        title: str,
        category: Optional[ObjectionCategory],
        description: str,
        reason: str,
        status: ObjectionStatus,
        chainage_from: Optional[str],
        chainage_to: Optional[str],
        created_by: int,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO rfi_objections(
                    title, category, description, reason, status,
                    chainage_from, chainage_to, created_by, created_at, updated_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,NOW(),NOW())
                """,
                (
                    title,
                    category.value if category else None,
                    description,
                    reason,
                    status.value,
                    chainage_from,
                    chainage_to,
                    int(created_by),
                ),
            )
            return int(cur.lastrowid)

    def get(self, objection_id: int) -> Optional[RfiObjection]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE id=%s AND deleted_at IS NULL", (int(objection_id),))
            r = fetchone(cur)
            if not r:
                return None
            chainages = self._load_chainages(cur, [int(r["id"])])
            return _row_to_objection(r, chainages[int(r["id"])])

    def update_fields(self, *, objection_id: int, fields: dict, updated_by: int) -> bool:
        cols = [k for k in fields if k in _EDITABLE_COLUMNS]
        if not cols:
            return False
        assignments = ", ".join(f"{c}=%s" for c in cols)
        values = [fields[c].value if hasattr(fields[c], "value") else fields[c] for c in cols]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE rfi_objections SET {assignments}, updated_by=%s, updated_at=NOW() WHERE id=%s AND deleted_at IS NULL",
                tuple(values + [int(updated_by), int(objection_id)]),
            )
            return cur.rowcount > 0

    def set_status(
        self,
        *,
        objection_id: int,
        status: ObjectionStatus,
        updated_by: int,
        resolved_by: Optional[int] = None,
        resolved_at: Optional[datetime] = None,
        resolution_notes: Optional[str] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE rfi_objections
                SET status=%s, updated_by=%s, updated_at=NOW(),
                    resolved_by=COALESCE(%s, resolved_by),
                    resolved_at=COALESCE(%s, resolved_at),
                    resolution_notes=COALESCE(%s, resolution_notes)
                WHERE id=%s AND deleted_at IS NULL
                """,
                (status.value, int(updated_by), resolved_by, resolved_at, resolution_notes, int(objection_id)),
            )
            return cur.rowcount > 0

    def soft_delete(self, objection_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE rfi_objections SET deleted_at=NOW() WHERE id=%s AND deleted_at IS NULL",
                (int(objection_id),),
            )
            return cur.rowcount > 0

    def replace_chainages(self, *, objection_id: int, entries: Sequence[ObjectionChainage]) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM objection_chainages WHERE objection_id=%s", (int(objection_id),))
            for e in entries:
                cur.execute(
                    """
                    INSERT INTO objection_chainages(objection_id, chainage, chainage_meters, entry_type, created_at, updated_at)
                    VALUES(%s,%s,%s,%s,NOW(),NOW())
                    """,
                    (int(objection_id), e.chainage, int(e.chainage_meters), e.entry_type.value),
                )

    def add_status_log(self, log: ObjectionStatusLog) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO rfi_objection_status_logs(rfi_objection_id, from_status, to_status, notes, changed_by, changed_at)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(log.objection_id),
                    log.from_status.value if log.from_status else None,
                    log.to_status.value,
                    log.notes,
                    int(log.changed_by),
                    log.changed_at,
                ),
            )
            return int(cur.lastrowid)

    def list_status_logs(self, objection_id: int) -> Sequence[ObjectionStatusLog]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, rfi_objection_id, from_status, to_status, notes, changed_by, changed_at
                FROM rfi_objection_status_logs
                WHERE rfi_objection_id=%s
                ORDER BY changed_at, id
                """,
                (int(objection_id),),
            )
            return [
                ObjectionStatusLog(
                    id=int(r["id"]),
                    objection_id=int(r["rfi_objection_id"]),
                    from_status=ObjectionStatus(r["from_status"]) if r.get("from_status") else None,
                    to_status=ObjectionStatus(r["to_status"]),
                    notes=r.get("notes"),
                    changed_by=int(r["changed_by"]),
                    changed_at=r["changed_at"],
                )
                for r in fetchall(cur)
            ]

    def attach_daily_works(
        self,
        *,
        objection_id: int,
        daily_work_ids: Sequence[int],
        attached_by: int,
        attached_at: datetime,
        notes: Optional[str] = None,
    ) -> int:
        attached = 0
        with db_cursor(self._conn_factory) as (_, cur):
            for wid in daily_work_ids:
                cur.execute(
                    """
                    INSERT IGNORE INTO daily_work_objection(
                        daily_work_id, rfi_objection_id, attached_by, attached_at, attachment_notes, created_at, updated_at
                    )
                    VALUES(%s,%s,%s,%s,%s,NOW(),NOW())
                    """,
                    (int(wid), int(objection_id), int(attached_by), attached_at, notes),
                )
                attached += cur.rowcount
        return attached

    def detach_daily_works(self, *, objection_id: int, daily_work_ids: Sequence[int]) -> int:
        if not daily_work_ids:
            return 0
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                DELETE FROM daily_work_objection
                WHERE rfi_objection_id=%s AND daily_work_id IN ({in_clause(daily_work_ids)})
                """,
                tuple([int(objection_id)] + [int(i) for i in daily_work_ids]),
            )
            return cur.rowcount

    def list_attached_daily_work_ids(self, objection_id: int) -> Sequence[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT daily_work_id FROM daily_work_objection WHERE rfi_objection_id=%s ORDER BY daily_work_id",
                (int(objection_id),),
            )
            return [int(r["daily_work_id"]) for r in fetchall(cur)]

    def list_for_daily_work(self, daily_work_id: int) -> Sequence[RfiObjection]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT o.id, o.title, o.category, o.description, o.reason, o.status,
                       o.chainage_from, o.chainage_to, o.resolution_notes, o.resolved_by,
                       o.resolved_at, o.created_by, o.updated_by, o.created_at
                FROM rfi_objections o
                JOIN daily_work_objection p ON p.rfi_objection_id = o.id
                WHERE p.daily_work_id=%s AND o.deleted_at IS NULL
                ORDER BY o.created_at DESC
                """,
                (int(daily_work_id),),
            )
            rows = fetchall(cur)
            chainages = self._load_chainages(cur, [int(r["id"]) for r in rows])
            return [_row_to_objection(r, chainages[int(r["id"])]) for r in rows]

    def active_counts_for_daily_works(self, daily_work_ids: Sequence[int]) -> dict[int, int]:
        if not daily_work_ids:
            return {}
        statuses = [s.value for s in ACTIVE_OBJECTION_STATUSES]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT p.daily_work_id, COUNT(*) AS cnt
                FROM daily_work_objection p
                JOIN rfi_objections o ON o.id = p.rfi_objection_id
                WHERE p.daily_work_id IN ({in_clause(daily_work_ids)})
                  AND o.status IN ({in_clause(statuses)})
                  AND o.deleted_at IS NULL
                GROUP BY p.daily_work_id
                """,
                tuple([int(i) for i in daily_work_ids] + statuses),
            )
            return {int(r["daily_work_id"]): int(r["cnt"]) for r in fetchall(cur)}

    def add_override_log(self, log: RfiSubmissionOverrideLog) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO rfi_submission_override_logs(
                    daily_work_id, old_submission_date, new_submission_date, active_objections_count,
                    override_reason, user_acknowledged, overridden_by, created_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(log.daily_work_id),
                    log.old_submission_date,
                    log.new_submission_date,
                    int(log.active_objections_count),
                    log.override_reason,
                    1 if log.user_acknowledged else 0,
                    int(log.overridden_by),
                    log.created_at,
                ),
            )
            return int(cur.lastrowid)

    def search(self, *, filters: dict, limit: int, offset: int) -> tuple[Sequence[RfiObjection], int]:
        clauses = ["deleted_at IS NULL"]
        params: list[object] = []
        if filters.get("status"):
            clauses.append("status=%s")
            params.append(filters["status"].value if hasattr(filters["status"], "value") else filters["status"])
        if filters.get("category"):
            clauses.append("category=%s")
            params.append(filters["category"].value if hasattr(filters["category"], "value") else filters["category"])
        if filters.get("created_by"):
            clauses.append("created_by=%s")
            params.append(int(filters["created_by"]))
        for word in filters.get("search_words") or []:
            clauses.append("(title LIKE %s OR description LIKE %s OR reason LIKE %s)")
            like = f"%{word}%"
            params.extend([like, like, like])

        where = " AND ".join(clauses)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS total FROM rfi_objections WHERE {where}", tuple(params))
            total = int((fetchone(cur) or {}).get("total") or 0)
            cur.execute(
                _SELECT + f" WHERE {where} ORDER BY created_at DESC, id DESC LIMIT %s OFFSET %s",
                tuple(params) + (int(limit), int(offset)),
            )
            rows = fetchall(cur)
            chainages = self._load_chainages(cur, [int(r["id"]) for r in rows])
            return [_row_to_objection(r, chainages[int(r["id"])]) for r in rows], total

    def count_active(self) -> int:
        statuses = [s.value for s in ACTIVE_OBJECTION_STATUSES]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT COUNT(*) AS total FROM rfi_objections WHERE deleted_at IS NULL AND status IN ({in_clause(statuses)})",
                tuple(statuses),
            )
            return int((fetchone(cur) or {}).get("total") or 0)
