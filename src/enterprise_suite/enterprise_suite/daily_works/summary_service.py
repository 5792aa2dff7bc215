from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..common.datetime_utils import iter_days
from ..common.logging_config import get_logger
from ..core.enums import DailyWorkStatus, DailyWorkType
from .model import DailyWork, DailyWorkSummary
from .repository import DailyWorkRepository, DailyWorkSummaryRepository

logger = get_logger(__name__)


def summarize(work_date: date, incharge: int, works: Sequence[DailyWork]) -> DailyWorkSummary:
    by_type = {t: 0 for t in DailyWorkType}
    for w in works:
        by_type[w.type] += 1
    return DailyWorkSummary(
        date=work_date,
        incharge=incharge,
        totalDailyWorks=len(works),
        resubmissions=sum(1 for w in works if w.resubmission_count > 0),
        embankment=by_type[DailyWorkType.EMBANKMENT],
        structure=by_type[DailyWorkType.STRUCTURE],
        pavement=by_type[DailyWorkType.PAVEMENT],
        completed=sum(1 for w in works if w.status == DailyWorkStatus.COMPLETED),
        pending=sum(1 for w in works if w.status != DailyWorkStatus.COMPLETED),
        rfiSubmissions=sum(1 for w in works if w.rfi_submission_date is not None),
    )


class DailyWorkSummaryService:
    """Keeps the per-day, per-incharge summary table in step with daily works."""

    def __init__(self, works: DailyWorkRepository, summaries: DailyWorkSummaryRepository):
        self._works = works
        self._summaries = summaries

    def generate_for(self, work_date: date, incharge: Optional[int] = None) -> list[DailyWorkSummary]:
        works = list(self._works.list_for_date(work_date, incharge=incharge))
        incharges = {incharge} if incharge is not None else {w.incharge for w in works if w.incharge is not None}

        out = []
        for user_id in sorted(incharges):
            mine = [w for w in works if w.incharge == user_id]
            if not mine:
                self._summaries.delete(summary_date=work_date, incharge=user_id)
                continue
            summary = summarize(work_date, user_id, mine)
            self._summaries.upsert(summary)
            out.append(summary)
        return out

    def refresh_range(self, start: date, end: date) -> int:
        count = 0
        for day in iter_days(start, end):
            count += len(self.generate_for(day))
        logger.info("Refreshed %s daily work summaries between %s and %s", count, start, end)
        return count

    def list_between(self, start: date, end: date) -> list[dict]:
        return [display_metrics(s) for s in self._summaries.list_between(start, end)]


def display_metrics(summary: DailyWorkSummary) -> dict:
    d = summary.to_dict()
    total = summary.totalDailyWorks
    d["completionPercentage"] = round(summary.completed / total * 100, 1) if total else 0.0
    return d


def overall_metrics(summaries: Sequence[DailyWorkSummary]) -> dict:
    total_works = sum(s.totalDailyWorks for s in summaries)
    completed = sum(s.completed for s in summaries)
    return {
        "totalWorks": total_works,
        "totalCompleted": completed,
        "totalPending": sum(s.pending for s in summaries),
        "totalRFI": sum(s.rfiSubmissions for s in summaries),
        "avgCompletion": round(completed / total_works * 100, 1) if total_works else 0.0,
    }
