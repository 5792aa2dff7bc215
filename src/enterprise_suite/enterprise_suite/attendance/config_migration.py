from __future__ import annotations

from typing import Any, Optional

from ..common.logging_config import get_logger
from ..core.constants import (
    DEFAULT_QR_EXPIRY_HOURS,
    DEFAULT_QR_MAX_DISTANCE_METERS,
    DEFAULT_ROUTE_TOLERANCE_METERS,
)
from .repository import AttendanceRepository

logger = get_logger(__name__)

UP = "up"
DOWN = "down"

_ROUTE_SLUGS = ("route_waypoint", "route-waypoint")


def _legacy_points(polygon: Any) -> Optional[list[dict]]:
    """``[[lat, lng], ...]`` to ``[{lat, lng}, ...]``; None when not that shape."""
    if isinstance(polygon, list) and polygon and isinstance(polygon[0], (list, tuple)):
        return [{"lat": p[0], "lng": p[1]} for p in polygon]
    return None


def _upgrade_polygon(config: dict) -> dict:
    polygons = config.get("polygons")
    if isinstance(polygons, list) and all(isinstance(p, dict) and "points" in p for p in polygons) and "polygon" not in config:
        return config
    if config.get("polygon"):
        return {
            "polygons": [
                {"id": "polygon_1", "name": "Primary Location", "points": config["polygon"], "is_active": True}
            ],
            "validation_mode": "any",
            "allow_without_location": bool(config.get("allow_without_location", False)),
        }
    if isinstance(config.get("polygons"), list):
        polygons = []
        for index, polygon in enumerate(config["polygons"]):
            points = _legacy_points(polygon)
            if points is not None:
                polygons.append(
                    {"id": f"polygon_{index + 1}", "name": f"Location {index + 1}", "points": points, "is_active": True}
                )
            elif isinstance(polygon, dict) and "points" in polygon:
                polygons.append(polygon)
        return {
            "polygons": polygons,
            "validation_mode": config.get("validation_mode", "any"),
            "allow_without_location": bool(config.get("allow_without_location", False)),
        }
    return {"polygons": [], "validation_mode": "any", "allow_without_location": False}


def _upgrade_wifi(config: dict) -> dict:
    if isinstance(config.get("ip_locations"), list):
        return config
    allowed_ips = config.get("allowed_ips") or []
    allowed_ranges = config.get("allowed_ranges") or []
    if allowed_ips or allowed_ranges:
        return {
            "ip_locations": [
                {
                    "id": "office_1",
                    "name": "Primary Office",
                    "allowed_ips": allowed_ips,
                    "allowed_ranges": allowed_ranges,
                    "is_active": True,
                }
            ],
            "validation_mode": "any",
            "allow_without_network": bool(config.get("allow_without_network", False)),
        }
    return {"ip_locations": [], "validation_mode": "any", "allow_without_network": False}


def _upgrade_route(config: dict) -> dict:
    if isinstance(config.get("routes"), list):
        return config
    waypoints = config.get("waypoints") or []
    if waypoints:
        return {
            "routes": [
                {
                    "id": "route_1",
                    "name": "Primary Route",
                    "waypoints": waypoints,
                    "tolerance": config.get("tolerance", DEFAULT_ROUTE_TOLERANCE_METERS),
                    "is_active": True,
                }
            ],
            "validation_mode": "any",
            "allow_without_location": bool(config.get("allow_without_location", False)),
        }
    return {"routes": [], "validation_mode": "any", "allow_without_location": False}


def _upgrade_qr(config: dict) -> dict:
    config.setdefault("qr_codes", [])
    config.setdefault("code_expiry_hours", DEFAULT_QR_EXPIRY_HOURS)
    config.setdefault("one_time_use", False)
    config.setdefault("require_location", False)
    config.setdefault("max_distance", DEFAULT_QR_MAX_DISTANCE_METERS)
    return config


def upgrade_config(slug: str, config: Optional[dict]) -> dict:
    """Convert a single-location config into the multi-location shape."""
    config = dict(config or {})
    if slug == "geo_polygon":
        return _upgrade_polygon(config)
    if slug == "wifi_ip":
        return _upgrade_wifi(config)
    if slug in _ROUTE_SLUGS:
        return _upgrade_route(config)
    if slug == "qr_code":
        return _upgrade_qr(config)
    return config


def downgrade_config(slug: str, config: Optional[dict]) -> dict:
    """Restore the single-location shape from the first configured entry."""
    config = dict(config or {})
    multi_key = {"geo_polygon": "polygons", "wifi_ip": "ip_locations"}.get(slug, "routes" if slug in _ROUTE_SLUGS else None)
    if multi_key and multi_key not in config:
        return config
    if slug == "geo_polygon":
        polygons = config.get("polygons") or []
        if polygons and isinstance(polygons[0], dict) and "points" in polygons[0]:
            return {
                "polygon": polygons[0]["points"],
                "allow_without_location": bool(config.get("allow_without_location", False)),
            }
        return {}
    if slug == "wifi_ip":
        locations = config.get("ip_locations") or []
        if locations:
            return {
                "allowed_ips": locations[0].get("allowed_ips") or [],
                "allowed_ranges": locations[0].get("allowed_ranges") or [],
            }
        return {}
    if slug in _ROUTE_SLUGS:
        routes = config.get("routes") or []
        if routes:
            return {
                "waypoints": routes[0].get("waypoints") or [],
                "tolerance": routes[0].get("tolerance", DEFAULT_ROUTE_TOLERANCE_METERS),
                "allow_without_location": bool(config.get("allow_without_location", False)),
            }
        return {}
    return config


def migrate_attendance_types(repo: AttendanceRepository, direction: str = UP) -> int:
    """Rewrite every attendance type config; returns how many rows changed."""
    if direction not in (UP, DOWN):
        raise ValueError(f"Unknown migration direction: {direction}")
    convert = upgrade_config if direction == UP else downgrade_config
    changed = 0
    for attendance_type in repo.list_types(active_only=False):
        new_config = convert(attendance_type.slug, attendance_type.config)
        if new_config != attendance_type.config:
            repo.update_type_config(attendance_type.id, new_config)
            changed += 1
    logger.info("Attendance type configs migrated %s: %s changed", direction, changed)
    return changed
