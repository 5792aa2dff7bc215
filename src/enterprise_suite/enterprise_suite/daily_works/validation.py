from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Optional

from ..common.validators import require_date
from ..core.constants import MAX_CHAINAGE_KM, MAX_INSPECTION_DETAILS_LENGTH, MIN_CHAINAGE_KM
from ..core.enums import DailyWorkStatus, DailyWorkType, InspectionResult, WorkSide
from ..core.exceptions import ValidationError

_LOCATION_KM_RE = re.compile(r"^K(\d+)")

LOCATION_MESSAGE = "The location must start with 'K' and be in the range K0 to K48."


def is_valid_location(location: Optional[str]) -> bool:
    m = _LOCATION_KM_RE.match((location or "").strip().upper())
    if not m:
        return False
    return MIN_CHAINAGE_KM <= int(m.group(1)) <= MAX_CHAINAGE_KM


def _choice(value: Any, enum_cls, message: str):
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(message)


def _parse_datetime(value: Any, field_name: str) -> datetime:
    if isinstance(value, datetime):
        return value
    text = str(value or "").strip()
    for fmt in ("%Y-%m-%dT%H:%M", "%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M", "%Y-%m-%dT%H:%M:%S"):
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise ValidationError(f"The {field_name} is not a valid date time.")


class DailyWorkValidator:
    """Validates and normalizes add/update payloads for daily works."""

    def validate(self, data: dict, *, for_update: bool = False) -> dict:
        if not for_update and not data.get("status"):
            data = {**data, "status": DailyWorkStatus.NEW.value}
        errors: dict[str, str] = {}
        out: dict[str, Any] = {}

        def required(key: str, message: str) -> Optional[str]:
            value = data.get(key)
            if value is None or (isinstance(value, str) and not value.strip()):
                errors.setdefault(key, message)
                return None
            return value.strip() if isinstance(value, str) else value

        raw_date = required("date", "RFI Date is required.")
        if raw_date is not None:
            try:
                out["date"] = require_date(raw_date, "RFI Date")
            except ValidationError as e:
                errors["date"] = str(e)

        number = required("number", "RFI Number is required.")
        if number is not None:
            out["number"] = str(number)

        planned_time = required("planned_time", "RFI Time is required.")
        if planned_time is not None:
            out["planned_time"] = str(planned_time)

        status = None
        raw_status = required("status", "Status is required.")
        if raw_status is not None:
            try:
                status = _choice(
                    raw_status,
                    DailyWorkStatus,
                    "Status must be one of: " + ", ".join(s.value for s in DailyWorkStatus) + ".",
                )
                out["status"] = status
            except ValidationError as e:
                errors["status"] = str(e)

        raw_result = data.get("inspection_result")
        if raw_result:
            try:
                out["inspection_result"] = _choice(
                    raw_result,
                    InspectionResult,
                    "Inspection result must be one of: " + ", ".join(r.value for r in InspectionResult) + ".",
                )
            except ValidationError as e:
                errors["inspection_result"] = str(e)
        elif status == DailyWorkStatus.COMPLETED:
            errors["inspection_result"] = "Inspection result is required for completed work."
        else:
            out["inspection_result"] = None

        work_type = None
        raw_type = required("type", "Type is required.")
        if raw_type is not None:
            try:
                work_type = _choice(
                    raw_type, DailyWorkType, "Type must be one of: " + ", ".join(t.value for t in DailyWorkType) + "."
                )
                out["type"] = work_type
            except ValidationError as e:
                errors["type"] = str(e)

        description = required("description", "Description is required.")
        if description is not None:
            out["description"] = str(description)

        location = required("location", "Location is required.")
        if location is not None:
            if is_valid_location(location):
                out["location"] = str(location).upper()
            else:
                errors["location"] = LOCATION_MESSAGE

        raw_side = required("side", "Road Type is required.")
        if raw_side is not None:
            try:
                out["side"] = _choice(
                    raw_side, WorkSide, "Road Type must be one of: " + ", ".join(s.value for s in WorkSide) + "."
                )
            except ValidationError as e:
                errors["side"] = str(e)

        qty_layer = data.get("qty_layer")
        qty_layer = qty_layer.strip() if isinstance(qty_layer, str) else qty_layer
        if work_type == DailyWorkType.EMBANKMENT and not qty_layer:
            errors["qty_layer"] = "Layer No. is required when the type is Embankment."
        out["qty_layer"] = str(qty_layer) if qty_layer else None

        completion_time = data.get("completion_time")
        if completion_time:
            try:
                out["completion_time"] = _parse_datetime(completion_time, "completion time")
            except ValidationError as e:
                errors["completion_time"] = str(e)
        elif status == DailyWorkStatus.COMPLETED:
            errors["completion_time"] = "Completion time is required when status is completed."
        else:
            out["completion_time"] = None

        details = data.get("inspection_details")
        if details is not None and len(str(details)) > MAX_INSPECTION_DETAILS_LENGTH:
            errors["inspection_details"] = "Inspection details cannot exceed 1000 characters."
        elif details is not None:
            out["inspection_details"] = str(details)

        if errors:
            raise _validation_error(errors)
        return out


def _validation_error(errors: dict[str, str]) -> ValidationError:
    err = ValidationError(next(iter(errors.values())))
    err.errors = errors  # type: ignore[attr-defined]
    return err


def validate_import_rows(rows: list[list[Any]], sheet_index: int) -> date:
    """Check one imported sheet; every row must carry the sheet's reference date.

    Columns: date, number, type, description, location, side, qty_layer, planned_time.
    """
    index = sheet_index + 1
    if not rows or not rows[0] or not rows[0][0]:
        raise ValidationError(f"Sheet {index} is missing a reference date.")

    try:
        reference = require_date(_cell_date(rows[0][0]), "date")
    except ValidationError:
        raise ValidationError(f"Sheet {index} - reference date must be in the format Y-m-d.")

    types = {t.value for t in DailyWorkType}
    for row in rows:
        number = row[1] if len(row) > 1 and row[1] else "unknown"
        label = f"Sheet {index} - Daily Work number {number}"
        try:
            row_date = require_date(_cell_date(row[0] if row else None), "date")
        except ValidationError:
            raise ValidationError(f"{label}'s date must be in the format Y-m-d.")
        if row_date != reference:
            raise ValidationError(f"{label}'s date must match the reference date {reference.isoformat()}.")
        for col, name in ((1, "RFI number"), (2, "type"), (3, "description"), (4, "location")):
            if len(row) <= col or row[col] is None or str(row[col]).strip() == "":
                raise ValidationError(f"{label}'s {name} must have a value.")
        if str(row[2]).strip() not in types:
            raise ValidationError(f"{label}'s type must be one of: " + ", ".join(sorted(types)) + ".")
        if not is_valid_location(str(row[4])):
            raise ValidationError(f"{label}'s location must start with 'K' and be in the range K0 to K48.")
    return reference


def _cell_date(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return str(value).strip()[:10] if value is not None else None
