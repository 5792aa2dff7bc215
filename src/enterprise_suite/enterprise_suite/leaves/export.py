from __future__ import annotations

import calendar
from io import BytesIO
from typing import Iterable

import pandas as pd

from .query_service import MONTH_KEYS

SUMMARY_COLUMNS = (
    ["No.", "Employee Name", "Department"]
    + [calendar.month_name[m] for m in range(1, 13)]
    + ["Total Approved", "Total Pending", "Total Balance", "Usage Percentage"]
)


def export_leave_summary(rows: Iterable[dict]) -> bytes:
    records = []
    for number, row in enumerate(rows, start=1):
        record = {
            "No.": number,
            "Employee Name": row.get("employee_name") or "N/A",
            "Department": row.get("department") or "N/A",
        }
        for month, key in enumerate(MONTH_KEYS, start=1):
            record[calendar.month_name[month]] = row.get(key, 0)
        record["Total Approved"] = row.get("total_approved", 0)
        record["Total Pending"] = row.get("total_pending", 0)
        record["Total Balance"] = row.get("total_balance", 0)
        record["Usage Percentage"] = f"{row.get('usage_percentage', 0)}%"
        records.append(record)

    df = pd.DataFrame(records, columns=SUMMARY_COLUMNS)
    output = BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name="Leave Summary")
    return output.getvalue()
