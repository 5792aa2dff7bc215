from __future__ import annotations

from datetime import date, datetime
from typing import Any, BinaryIO, Callable, Union

import pandas as pd

from ..common.datetime_utils import now_local
from ..common.logging_config import get_logger
from ..core.enums import DailyWorkStatus, DailyWorkType, WorkSide
from ..users.model import SessionUser
from .jurisdiction import JurisdictionMatcher
from .repository import DailyWorkRepository
from .service import resubmission_label
from .summary_service import DailyWorkSummaryService
from .validation import validate_import_rows

logger = get_logger(__name__)

COLUMNS = ["date", "number", "type", "description", "location", "side", "qty_layer", "planned_time"]


def read_workbook(stream: Union[BinaryIO, str]) -> list[list[list[Any]]]:
    """Every sheet as a list of rows (header row dropped, NaN cells as None)."""
    sheets = pd.read_excel(stream, sheet_name=None, header=0, engine="openpyxl")
    out = []
    for df in sheets.values():
        df = df.dropna(how="all")
        df = df.astype(object).where(pd.notna(df), None)
        out.append(df.values.tolist())
    return out


def _text(value: Any):
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _cell_time(value: Any):
    if value is None:
        return None
    if isinstance(value, (datetime, pd.Timestamp)):
        return value.strftime("%H:%M")
    return str(value).strip()[:5] or None


class DailyWorkImportService:
    """Imports daily works from an Excel workbook, one reference date per sheet."""

    def __init__(
        self,
        works: DailyWorkRepository,
        jurisdictions: JurisdictionMatcher,
        summaries: DailyWorkSummaryService,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._works = works
        self._jurisdictions = jurisdictions
        self._summaries = summaries
        self._clock = clock

    def import_workbook(self, stream, *, current_user: SessionUser) -> list[dict]:
        return self.import_sheets(read_workbook(stream), current_user=current_user)

    def import_sheets(self, sheets: list[list[list[Any]]], *, current_user: SessionUser) -> list[dict]:
        # validate every sheet before writing anything
        references = [validate_import_rows(rows, i) for i, rows in enumerate(sheets)]

        results = []
        for index, (rows, reference) in enumerate(zip(sheets, references)):
            processed = 0
            skipped = 0
            for row in rows:
                if self._import_row(row, reference):
                    processed += 1
                else:
                    skipped += 1
            summaries = self._summaries.generate_for(reference)
            logger.info(
                "Imported sheet %s for %s: %s processed, %s skipped (by user %s)",
                index + 1, reference, processed, skipped, current_user.user_id,
            )
            results.append(
                {
                    "sheet": index + 1,
                    "date": reference.isoformat(),
                    "summaries": [s.to_dict() for s in summaries],
                    "processed_count": processed,
                    "skipped_count": skipped,
                }
            )
        return results

    def _import_row(self, row: list[Any], reference: date) -> bool:
        values = dict(zip(COLUMNS, list(row) + [None] * (len(COLUMNS) - len(row))))
        location = str(values["location"]).strip().upper()

        jurisdiction = self._jurisdictions.find_for_location(location)
        if not jurisdiction:
            logger.warning("No jurisdiction for location %s (RFI %s); row skipped", location, values["number"])
            return False

        side = _text(values["side"])
        data = {
            "date": reference,
            "number": str(values["number"]).strip(),
            "type": DailyWorkType(str(values["type"]).strip()),
            "description": str(values["description"]).strip(),
            "location": location,
            "side": WorkSide(side) if side in {s.value for s in WorkSide} else None,
            "qty_layer": _text(values["qty_layer"]),
            "planned_time": _cell_time(values["planned_time"]),
            "incharge": jurisdiction.incharge,
            "assigned": jurisdiction.assigned,
        }

        same_day = self._works.find_by_number(data["number"], work_date=reference)
        if same_day:
            self._works.update(same_day.id, data)
            return True

        existing = self._works.find_by_number(data["number"])

        if existing:
            count = existing.resubmission_count + 1
            data["resubmission_count"] = count
            data["resubmission_date"] = resubmission_label(count, self._clock().date())
            if existing.status == DailyWorkStatus.COMPLETED:
                data["date"] = existing.date
                data["status"] = DailyWorkStatus.COMPLETED
            else:
                data["status"] = DailyWorkStatus.NEW
        else:
            data["status"] = DailyWorkStatus.NEW

        self._works.create(data)
        return True
