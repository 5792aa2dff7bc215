from io import BytesIO

import pandas as pd

from src.enterprise_suite.enterprise_suite.leaves.export import export_leave_summary


def test_export_leave_summary_numbers_rows_and_formats_usage():
    rows = [
        {"employee_name": "Ana", "department": "Civil", "JAN": 2, "total_approved": 2,
         "total_pending": 1, "total_balance": 13, "usage_percentage": 12.5},
        {"employee_name": None, "department": None},
    ]

    data = export_leave_summary(rows)

    assert data.startswith(b"PK")
    df = pd.read_excel(BytesIO(data), sheet_name="Leave Summary")
    assert list(df["No."]) == [1, 2]
    assert list(df["Employee Name"]) == ["Ana", "N/A"]
    assert df["January"][0] == 2
    assert df["Usage Percentage"][0] == "12.5%"
