from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..core.enums import ACTIVE_OBJECTION_STATUSES, DailyWorkStatus, DailyWorkType, InspectionResult, WorkSide
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import DailyWork, DailyWorkSummary, Jurisdiction
from .repository import DailyWorkRepository, DailyWorkSummaryRepository, JurisdictionRepository

_COLUMNS = (
    "date", "number", "status", "inspection_result", "type", "description", "location", "side",
    "qty_layer", "planned_time", "incharge", "assigned", "completion_time", "inspection_details",
    "resubmission_count", "resubmission_date", "rfi_submission_date",
)

_ACTIVE_STATUSES = tuple(s.value for s in ACTIVE_OBJECTION_STATUSES)

_SELECT = f"""
    SELECT w.id, {", ".join("w." + c for c in _COLUMNS)},
           (SELECT COUNT(*) FROM daily_work_objection p
              JOIN rfi_objections o ON o.id = p.rfi_objection_id
             WHERE p.daily_work_id = w.id AND o.deleted_at IS NULL
               AND o.status IN ({in_clause(_ACTIVE_STATUSES)})) AS active_objections_count
    FROM daily_works w
"""


def _value(v):
    return v.value if hasattr(v, "value") else v


def _row_to_work(r: dict) -> DailyWork:
    return DailyWork(
        id=int(r["id"]),
        date=r["date"],
        number=r["number"],
        status=DailyWorkStatus(r["status"]),
        type=DailyWorkType(r["type"]),
        description=r["description"],
        location=r["location"],
        side=WorkSide(r["side"]) if r.get("side") else None,
        qty_layer=r.get("qty_layer"),
        planned_time=r.get("planned_time"),
        inspection_result=InspectionResult(r["inspection_result"]) if r.get("inspection_result") else None,
        incharge=r.get("incharge"),
        assigned=r.get("assigned"),
        completion_time=r.get("completion_time"),
        inspection_details=r.get("inspection_details"),
        resubmission_count=int(r.get("resubmission_count") or 0),
        resubmission_date=r.get("resubmission_date"),
        rfi_submission_date=r.get("rfi_submission_date"),
        active_objections_count=int(r.get("active_objections_count") or 0),
    )


class MySQLDailyWorkRepository(DailyWorkRepository):
    def __init__(self, conn_factory):
        self._conn_factory = conn_factory

    def create(self, data: dict) -> int:
        cols = [c for c in _COLUMNS if c in data]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                INSERT INTO daily_works({", ".join(cols)}, created_at, updated_at)
                VALUES({in_clause(cols)}, NOW(), NOW())
                """,
                tuple(_value(data[c]) for c in cols),
            )
            return int(cur.lastrowid)

    def get(self, work_id: int) -> Optional[DailyWork]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE w.id=%s AND w.deleted_at IS NULL", _ACTIVE_STATUSES + (int(work_id),))
            r = fetchone(cur)
            return _row_to_work(r) if r else None

    def get_many(self, work_ids: Sequence[int]) -> Sequence[DailyWork]:
        if not work_ids:
            return []
        ids = tuple(int(i) for i in work_ids)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT + f" WHERE w.id IN ({in_clause(ids)}) AND w.deleted_at IS NULL ORDER BY w.id",
                _ACTIVE_STATUSES + ids,
            )
            return [_row_to_work(r) for r in fetchall(cur)]

    def find_by_number(
        self, number: str, *, work_date: Optional[date] = None, exclude_id: Optional[int] = None
    ) -> Optional[DailyWork]:
        sql = _SELECT + " WHERE w.number=%s AND w.deleted_at IS NULL"
        params: tuple = _ACTIVE_STATUSES + (number,)
        if work_date is not None:
            sql += " AND w.date=%s"
            params += (work_date,)
        if exclude_id is not None:
            sql += " AND w.id<>%s"
            params += (int(exclude_id),)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql + " ORDER BY w.id DESC LIMIT 1", params)
            r = fetchone(cur)
            return _row_to_work(r) if r else None

    def update(self, work_id: int, data: dict) -> bool:
        cols = [c for c in _COLUMNS if c in data]
        if not cols:
            return False
        assignments = ", ".join(f"{c}=%s" for c in cols)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE daily_works SET {assignments}, updated_at=NOW() WHERE id=%s AND deleted_at IS NULL",
                tuple(_value(data[c]) for c in cols) + (int(work_id),),
            )
            return cur.rowcount > 0

    def soft_delete(self, work_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE daily_works SET deleted_at=NOW() WHERE id=%s AND deleted_at IS NULL", (int(work_id),))
            return cur.rowcount > 0

    def search(self, *, filters: dict, limit: int, offset: int) -> tuple[Sequence[DailyWork], int]:
        clauses = ["w.deleted_at IS NULL"]
        params: list[object] = []

        if filters.get("status"):
            clauses.append("w.status=%s")
            params.append(_value(filters["status"]))
        if filters.get("incharge"):
            clauses.append("w.incharge=%s")
            params.append(int(filters["incharge"]))
        if filters.get("assigned"):
            clauses.append("w.assigned=%s")
            params.append(int(filters["assigned"]))
        if filters.get("involved_user"):
            clauses.append("(w.incharge=%s OR w.assigned=%s)")
            params.extend([int(filters["involved_user"])] * 2)
        if filters.get("type"):
            clauses.append("w.type=%s")
            params.append(_value(filters["type"]))
        if filters.get("start_date"):
            clauses.append("w.date>=%s")
            params.append(filters["start_date"])
        if filters.get("end_date"):
            clauses.append("w.date<=%s")
            params.append(filters["end_date"])
        for word in filters.get("search_words") or []:
            clauses.append("(w.number LIKE %s OR w.description LIKE %s OR w.location LIKE %s)")
            like = f"%{word}%"
            params.extend([like, like, like])
        if filters.get("only_objected"):
            clauses.append(
                f"""EXISTS (SELECT 1 FROM daily_work_objection p JOIN rfi_objections o ON o.id = p.rfi_objection_id
                    WHERE p.daily_work_id = w.id AND o.deleted_at IS NULL AND o.status IN ({in_clause(_ACTIVE_STATUSES)}))"""
            )
            params.extend(_ACTIVE_STATUSES)

        where = " AND ".join(clauses)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS total FROM daily_works w WHERE {where}", tuple(params))
            total = int((fetchone(cur) or {}).get("total") or 0)
            cur.execute(
                _SELECT + f" WHERE {where} ORDER BY w.date DESC, w.number LIMIT %s OFFSET %s",
                _ACTIVE_STATUSES + tuple(params) + (int(limit), int(offset)),
            )
            return [_row_to_work(r) for r in fetchall(cur)], total

    def list_with_location(self) -> Sequence[DailyWork]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT + " WHERE w.deleted_at IS NULL AND w.location IS NOT NULL AND w.location<>'' ORDER BY w.date DESC",
                _ACTIVE_STATUSES,
            )
            return [_row_to_work(r) for r in fetchall(cur)]

    def list_for_date(self, work_date: date, *, incharge: Optional[int] = None) -> Sequence[DailyWork]:
        sql = _SELECT + " WHERE w.deleted_at IS NULL AND w.date=%s"
        params: tuple = _ACTIVE_STATUSES + (work_date,)
        if incharge is not None:
            sql += " AND w.incharge=%s"
            params += (int(incharge),)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, params)
            return [_row_to_work(r) for r in fetchall(cur)]


class MySQLJurisdictionRepository(JurisdictionRepository):
    def __init__(self, conn_factory):
        self._conn_factory = conn_factory

    def list_all(self) -> Sequence[Jurisdiction]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT id, location, start_chainage, end_chainage, incharge, assigned FROM jurisdictions ORDER BY id"
            )
            return [
                Jurisdiction(
                    id=int(r["id"]),
                    location=r["location"],
                    start_chainage=r["start_chainage"],
                    end_chainage=r["end_chainage"],
                    incharge=int(r["incharge"]),
                    assigned=r.get("assigned"),
                )
                for r in fetchall(cur)
            ]


class MySQLDailyWorkSummaryRepository(DailyWorkSummaryRepository):
    def __init__(self, conn_factory):
        self._conn_factory = conn_factory

    def upsert(self, summary: DailyWorkSummary) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO daily_work_summaries(
                    date, incharge, totalDailyWorks, resubmissions, embankment, structure, pavement,
                    created_at, updated_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,NOW(),NOW())
                ON DUPLICATE KEY UPDATE
                    totalDailyWorks=VALUES(totalDailyWorks), resubmissions=VALUES(resubmissions),
                    embankment=VALUES(embankment), structure=VALUES(structure),
                    pavement=VALUES(pavement), updated_at=NOW()
                """,
                (
                    summary.date,
                    int(summary.incharge),
                    summary.totalDailyWorks,
                    summary.resubmissions,
                    summary.embankment,
                    summary.structure,
                    summary.pavement,
                ),
            )

    def delete(self, *, summary_date: date, incharge: int) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM daily_work_summaries WHERE date=%s AND incharge=%s",
                (summary_date, int(incharge)),
            )

    def list_between(self, start: date, end: date) -> Sequence[DailyWorkSummary]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT s.date, s.incharge, s.totalDailyWorks, s.resubmissions,
                       s.embankment, s.structure, s.pavement,
                       (SELECT COUNT(*) FROM daily_works w
                         WHERE w.date = s.date AND w.incharge = s.incharge
                           AND w.deleted_at IS NULL AND w.status = 'completed') AS completed,
                       (SELECT COUNT(*) FROM daily_works w
                         WHERE w.date = s.date AND w.incharge = s.incharge
                           AND w.deleted_at IS NULL AND w.status <> 'completed') AS pending,
                       (SELECT COUNT(*) FROM daily_works w
                         WHERE w.date = s.date AND w.incharge = s.incharge
                           AND w.deleted_at IS NULL AND w.rfi_submission_date IS NOT NULL) AS rfiSubmissions
                FROM daily_work_summaries s
                WHERE s.date BETWEEN %s AND %s
                ORDER BY s.date DESC, s.incharge
                """,
                (start, end),
            )
            return [
                DailyWorkSummary(
                    date=r["date"],
                    incharge=int(r["incharge"]),
                    totalDailyWorks=int(r["totalDailyWorks"]),
                    resubmissions=int(r["resubmissions"]),
                    embankment=int(r["embankment"]),
                    structure=int(r["structure"]),
                    pavement=int(r["pavement"]),
                    completed=int(r["completed"] or 0),
                    pending=int(r["pending"] or 0),
                    rfiSubmissions=int(r["rfiSubmissions"] or 0),
                )
                for r in fetchall(cur)
            ]
