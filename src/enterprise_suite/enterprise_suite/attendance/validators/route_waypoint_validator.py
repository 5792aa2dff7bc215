from __future__ import annotations

import math

from ...core.constants import DEFAULT_ROUTE_TOLERANCE_METERS
from ..model import AttendanceType
from .base import AttendanceValidator, PunchContext, ValidationOutcome, active_entries

EARTH_RADIUS_METERS = 6371000


def haversine_meters(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * math.atan2(math.sqrt(a), math.sqrt(1 - a))


class RouteWaypointValidator(AttendanceValidator):
    def validate(self, attendance_type: AttendanceType, ctx: PunchContext) -> ValidationOutcome:
        config = attendance_type.config or {}
        if not ctx.has_location:
            if config.get("allow_without_location"):
                return ValidationOutcome.success("Attendance recorded without route validation.")
            return ValidationOutcome.failure(
                "Location coordinates are required for route validation. Please enable location access and try again."
            )

        routes = [r for r in active_entries(config, "routes") if r.get("waypoints")]
        if not routes:
            return ValidationOutcome.failure("No route waypoints configured for this attendance type.")

        nearest = None
        for route in routes:
            tolerance = float(route.get("tolerance") or DEFAULT_ROUTE_TOLERANCE_METERS)
            for waypoint in route["waypoints"]:
                distance = haversine_meters(ctx.lat, ctx.lng, float(waypoint["lat"]), float(waypoint["lng"]))
                if distance <= tolerance:
                    return ValidationOutcome.success(f"Location verified on {route.get('name') or 'route'}.")
                nearest = distance if nearest is None else min(nearest, distance)
        return ValidationOutcome.failure(
            f"You are {round(nearest)} meters away from the nearest route waypoint.", 403
        )
