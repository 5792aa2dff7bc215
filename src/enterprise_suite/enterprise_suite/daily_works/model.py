from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import DailyWorkStatus, DailyWorkType, InspectionResult, WorkSide


@dataclass(frozen=True)
class DailyWork:
    id: int
    date: date
    number: str
    status: DailyWorkStatus
    type: DailyWorkType
    description: str
    location: str
    side: Optional[WorkSide] = None
    qty_layer: Optional[str] = None
    planned_time: Optional[str] = None
    inspection_result: Optional[InspectionResult] = None
    incharge: Optional[int] = None
    assigned: Optional[int] = None
    completion_time: Optional[datetime] = None
    inspection_details: Optional[str] = None
    resubmission_count: int = 0
    resubmission_date: Optional[str] = None
    rfi_submission_date: Optional[date] = None
    active_objections_count: int = 0

    def to_dict(self) -> dict:
        d = asdict(self)
        for key in ("status", "type", "side", "inspection_result"):
            value = d[key]
            d[key] = value.value if value is not None else None
        for key in ("date", "completion_time", "rfi_submission_date"):
            value = d[key]
            d[key] = value.isoformat() if value is not None else None
        return d


@dataclass(frozen=True)
class Jurisdiction:
    id: int
    location: str
    start_chainage: str
    end_chainage: str
    incharge: int
    assigned: Optional[int] = None


@dataclass(frozen=True)
class DailyWorkSummary:
    date: date
    incharge: int
    totalDailyWorks: int
    resubmissions: int
    embankment: int
    structure: int
    pavement: int
    completed: int = 0
    pending: int = 0
    rfiSubmissions: int = 0

    def to_dict(self) -> dict:
        d = asdict(self)
        d["date"] = self.date.isoformat()
        return d
