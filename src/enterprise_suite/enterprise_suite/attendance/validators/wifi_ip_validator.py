from __future__ import annotations

import ipaddress

from ..model import AttendanceType
from .base import AttendanceValidator, PunchContext, ValidationOutcome, active_entries


def ip_allowed(ip: str, allowed_ips, allowed_ranges) -> bool:
    try:
        address = ipaddress.ip_address(ip.strip())
    except ValueError:
        return False
    for candidate in allowed_ips or []:
        try:
            if address == ipaddress.ip_address(str(candidate).strip()):
                return True
        except ValueError:
            continue
    for cidr in allowed_ranges or []:
        try:
            if address in ipaddress.ip_network(str(cidr).strip(), strict=False):
                return True
        except ValueError:
            continue
    return False


class WifiIpValidator(AttendanceValidator):
    def validate(self, attendance_type: AttendanceType, ctx: PunchContext) -> ValidationOutcome:
        config = attendance_type.config or {}
        if not ctx.ip:
            if config.get("allow_without_network"):
                return ValidationOutcome.success("Attendance recorded without network validation.")
            return ValidationOutcome.failure("Unable to determine your network address.")

        locations = active_entries(config, "ip_locations")
        if not locations:
            return ValidationOutcome.failure("No network locations configured for this attendance type.")

        for location in locations:
            if ip_allowed(ctx.ip, location.get("allowed_ips"), location.get("allowed_ranges")):
                return ValidationOutcome.success(f"Network verified at {location.get('name') or 'office'}.")
        return ValidationOutcome.failure("You are not connected to an allowed office network.", 403)
