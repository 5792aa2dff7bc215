from __future__ import annotations

from io import BytesIO
from typing import Iterable

import pandas as pd

from .model import DailyWork

EXPORT_COLUMNS = {
    "date": "Date",
    "number": "RFI Number",
    "status": "Status",
    "type": "Type",
    "description": "Description",
    "location": "Location",
    "side": "Road Type",
    "qty_layer": "Layer No.",
    "planned_time": "RFI Time",
    "inspection_result": "Inspection Result",
    "completion_time": "Completion Time",
    "rfi_submission_date": "RFI Submission Date",
    "resubmission_count": "Resubmissions",
    "active_objections_count": "Active Objections",
}


def export_daily_works(rows: Iterable[DailyWork]) -> bytes:
    df = pd.DataFrame([w.to_dict() for w in rows], columns=list(EXPORT_COLUMNS))
    df = df.rename(columns=EXPORT_COLUMNS)

    output = BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name="Daily Works")
    return output.getvalue()
