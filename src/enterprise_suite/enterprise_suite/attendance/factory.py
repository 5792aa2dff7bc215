from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import AttendanceTypeSlug
from ..core.exceptions import ValidationError
from .repository import AttendanceRepository
from .validators.base import AttendanceValidator
from .validators.polygon_validator import PolygonLocationValidator
from .validators.qr_code_validator import QrCodeValidator
from .validators.route_waypoint_validator import RouteWaypointValidator
from .validators.wifi_ip_validator import WifiIpValidator

# Legacy slug spellings still found in older tenant data.
_ALIASES = {"route-waypoint": AttendanceTypeSlug.ROUTE_WAYPOINT.value}


@dataclass
class AttendanceValidatorFactory:
    """Factory Pattern: choose the validator for an attendance type slug."""

    attendance: Optional[AttendanceRepository] = None

    def for_slug(self, slug: str) -> AttendanceValidator:
        slug = _ALIASES.get(slug, slug)
        if slug == AttendanceTypeSlug.GEO_POLYGON.value:
            return PolygonLocationValidator()
        if slug == AttendanceTypeSlug.WIFI_IP.value:
            return WifiIpValidator()
        if slug == AttendanceTypeSlug.ROUTE_WAYPOINT.value:
            return RouteWaypointValidator()
        if slug == AttendanceTypeSlug.QR_CODE.value:
            return QrCodeValidator(self.attendance)
        raise ValidationError(f"Unsupported attendance type: {slug}")
