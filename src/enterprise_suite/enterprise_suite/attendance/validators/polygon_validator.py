from __future__ import annotations

from typing import Sequence

from ..model import AttendanceType
from .base import AttendanceValidator, PunchContext, ValidationOutcome, active_entries


def point_in_polygon(lat: float, lng: float, points: Sequence[dict]) -> bool:
    """Ray casting with lng as x and lat as y."""
    inside = False
    count = len(points)
    j = count - 1
    for i in range(count):
        yi, xi = float(points[i]["lat"]), float(points[i]["lng"])
        yj, xj = float(points[j]["lat"]), float(points[j]["lng"])
        if (yi > lat) != (yj > lat) and lng < (xj - xi) * (lat - yi) / (yj - yi) + xi:
            inside = not inside
        j = i
    return inside


class PolygonLocationValidator(AttendanceValidator):
    def validate(self, attendance_type: AttendanceType, ctx: PunchContext) -> ValidationOutcome:
        config = attendance_type.config or {}
        if not ctx.has_location:
            if config.get("allow_without_location"):
                return ValidationOutcome.success(
                    "Attendance recorded without location validation (location access denied)."
                )
            return ValidationOutcome.failure(
                "Location coordinates are required for polygon validation. "
                "Please enable location access and try again."
            )

        polygons = [p for p in active_entries(config, "polygons") if len(p.get("points") or []) >= 3]
        if not polygons:
            return ValidationOutcome.failure("No polygon boundary configured for this attendance type.")

        hits = [p for p in polygons if point_in_polygon(ctx.lat, ctx.lng, p["points"])]
        if config.get("validation_mode") == "all":
            ok = len(hits) == len(polygons)
        else:
            ok = bool(hits)
        if not ok:
            return ValidationOutcome.failure("You are not within the allowed location boundary.", 403)
        return ValidationOutcome.success(f"Location verified within {hits[0].get('name') or 'polygon boundary'}.")
