from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Optional

from ...core.constants import DEFAULT_QR_EXPIRY_HOURS, DEFAULT_QR_MAX_DISTANCE_METERS
from ..model import AttendanceType
from ..repository import AttendanceRepository
from .base import AttendanceValidator, PunchContext, ValidationOutcome, active_entries
from .route_waypoint_validator import haversine_meters


def _as_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).strip())
    except ValueError:
        return None


def code_expires_at(entry: dict, expiry_hours: float) -> Optional[datetime]:
    """Explicit ``expires_at`` wins; otherwise ``created_at`` plus the expiry window."""
    explicit = _as_datetime(entry.get("expires_at"))
    if explicit:
        return explicit
    created = _as_datetime(entry.get("created_at"))
    if created and expiry_hours:
        return created + timedelta(hours=float(expiry_hours))
    return None


class QrCodeValidator(AttendanceValidator):
    def __init__(self, attendance: Optional[AttendanceRepository] = None):
        self._attendance = attendance

    def validate(self, attendance_type: AttendanceType, ctx: PunchContext) -> ValidationOutcome:
        config = attendance_type.config or {}
        if not ctx.code:
            return ValidationOutcome.failure("QR code is required for this attendance type.")

        entry = next((e for e in active_entries(config, "qr_codes") if str(e.get("code")) == ctx.code), None)
        if entry is None:
            return ValidationOutcome.failure("Invalid QR code.", 403)

        expires_at = code_expires_at(entry, config.get("code_expiry_hours", DEFAULT_QR_EXPIRY_HOURS))
        if expires_at is not None and ctx.now > expires_at:
            return ValidationOutcome.failure("This QR code has expired.", 403)

        if config.get("one_time_use") and self._attendance is not None:
            if self._attendance.qr_code_used(attendance_type.id, ctx.code):
                return ValidationOutcome.failure("This QR code has already been used.", 403)

        if config.get("require_location"):
            if not ctx.has_location:
                return ValidationOutcome.failure("Location coordinates are required for this QR code.")
            if entry.get("lat") is not None and entry.get("lng") is not None:
                max_distance = float(config.get("max_distance") or DEFAULT_QR_MAX_DISTANCE_METERS)
                distance = haversine_meters(ctx.lat, ctx.lng, float(entry["lat"]), float(entry["lng"]))
                if distance > max_distance:
                    return ValidationOutcome.failure(
                        f"You are {round(distance)} meters away from the QR code location.", 403
                    )
        return ValidationOutcome.success(f"QR code verified: {entry.get('name') or entry.get('code')}.")
