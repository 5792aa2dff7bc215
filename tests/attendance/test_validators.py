from datetime import datetime

import pytest

from src.enterprise_suite.enterprise_suite.attendance.factory import AttendanceValidatorFactory
from src.enterprise_suite.enterprise_suite.attendance.model import AttendanceType
from src.enterprise_suite.enterprise_suite.attendance.validators.base import PunchContext
from src.enterprise_suite.enterprise_suite.attendance.validators.polygon_validator import (
    PolygonLocationValidator,
    point_in_polygon,
)
from src.enterprise_suite.enterprise_suite.attendance.validators.qr_code_validator import (
    QrCodeValidator,
    code_expires_at,
)
from src.enterprise_suite.enterprise_suite.attendance.validators.route_waypoint_validator import (
    RouteWaypointValidator,
    haversine_meters,
)
from src.enterprise_suite.enterprise_suite.attendance.validators.wifi_ip_validator import WifiIpValidator, ip_allowed
from src.enterprise_suite.enterprise_suite.core.exceptions import ValidationError

from tests.attendance.attendance_fakes import FakeAttendanceRepo

NOW = datetime(2026, 3, 2, 8, 30)
SQUARE = [{"lat": 0, "lng": 0}, {"lat": 0, "lng": 1}, {"lat": 1, "lng": 1}, {"lat": 1, "lng": 0}]
FAR_SQUARE = [{"lat": 5, "lng": 5}, {"lat": 5, "lng": 6}, {"lat": 6, "lng": 6}, {"lat": 6, "lng": 5}]


def _type(slug, config, type_id=1):
    return AttendanceType(id=type_id, name=slug, slug=slug, config=config)


def _ctx(**kwargs):
    return PunchContext(now=NOW, **kwargs)


def test_point_in_polygon():
    assert point_in_polygon(0.5, 0.5, SQUARE)
    assert not point_in_polygon(1.5, 0.5, SQUARE)


def test_polygon_validator_modes():
    config = {
        "polygons": [
            {"name": "Site", "points": SQUARE},
            {"name": "Yard", "points": FAR_SQUARE},
            {"name": "Old", "points": SQUARE, "is_active": False},
        ]
    }
    validator = PolygonLocationValidator()
    outcome = validator.validate(_type("geo_polygon", config), _ctx(lat=0.5, lng=0.5))
    assert outcome.ok
    assert outcome.message == "Location verified within Site."

    strict = validator.validate(_type("geo_polygon", dict(config, validation_mode="all")), _ctx(lat=0.5, lng=0.5))
    assert (strict.ok, strict.status_code) == (False, 403)


def test_polygon_without_location():
    validator = PolygonLocationValidator()
    refused = validator.validate(_type("geo_polygon", {"polygons": [{"points": SQUARE}]}), _ctx())
    assert (refused.ok, refused.status_code) == (False, 422)
    allowed = validator.validate(_type("geo_polygon", {"allow_without_location": True}), _ctx())
    assert allowed.ok


def test_ip_allowed_matches_exact_and_cidr():
    assert ip_allowed("10.0.0.7", ["10.0.0.7"], [])
    assert ip_allowed("192.168.1.20", [], ["192.168.1.0/24"])
    assert not ip_allowed("192.168.2.20", ["bogus"], ["192.168.1.0/24", "nope"])
    assert not ip_allowed("not-an-ip", ["10.0.0.7"], [])


def test_wifi_validator():
    config = {"ip_locations": [{"name": "HQ", "allowed_ranges": ["10.1.0.0/16"]}]}
    validator = WifiIpValidator()
    assert validator.validate(_type("wifi_ip", config), _ctx(ip="10.1.2.3")).message == "Network verified at HQ."
    outside = validator.validate(_type("wifi_ip", config), _ctx(ip="8.8.8.8"))
    assert outside.status_code == 403
    assert not validator.validate(_type("wifi_ip", config), _ctx()).ok


def test_haversine_one_degree_of_latitude():
    assert round(haversine_meters(0, 0, 1, 0)) == 111195


def test_route_validator_tolerance():
    config = {"routes": [{"name": "Main road", "tolerance": 200, "waypoints": [{"lat": 23.0, "lng": 90.0}]}]}
    validator = RouteWaypointValidator()
    near = validator.validate(_type("route_waypoint", config), _ctx(lat=23.001, lng=90.0))
    assert near.message == "Location verified on Main road."
    far = validator.validate(_type("route_waypoint", config), _ctx(lat=23.01, lng=90.0))
    assert far.status_code == 403
    assert far.message.startswith("You are 1112 meters away")


def test_code_expiry_rules():
    assert code_expires_at({"expires_at": "2026-03-01T00:00"}, 24) == datetime(2026, 3, 1)
    assert code_expires_at({"created_at": "2026-03-01T08:00"}, 12) == datetime(2026, 3, 1, 20, 0)
    assert code_expires_at({}, 24) is None


def test_qr_validator():
    config = {
        "one_time_use": True,
        "qr_codes": [
            {"code": "GATE-1", "name": "Gate", "created_at": "2026-03-02T07:00"},
            {"code": "OLD", "created_at": "2026-02-01T07:00"},
        ],
    }
    repo = FakeAttendanceRepo()
    validator = QrCodeValidator(repo)
    qr_type = _type("qr_code", config)

    assert validator.validate(qr_type, _ctx(code="GATE-1")).message == "QR code verified: Gate."
    assert validator.validate(qr_type, _ctx(code="NOPE")).status_code == 403
    assert validator.validate(qr_type, _ctx(code="OLD")).message == "This QR code has expired."
    assert validator.validate(qr_type, _ctx()).status_code == 422

    repo.mark_qr_code_used(1, "GATE-1", NOW)
    assert validator.validate(qr_type, _ctx(code="GATE-1")).message == "This QR code has already been used."


def test_qr_validator_distance():
    config = {
        "require_location": True,
        "max_distance": 50,
        "qr_codes": [{"code": "SITE", "lat": 23.0, "lng": 90.0}],
    }
    validator = QrCodeValidator()
    assert validator.validate(_type("qr_code", config), _ctx(code="SITE", lat=23.0002, lng=90.0)).ok
    assert validator.validate(_type("qr_code", config), _ctx(code="SITE", lat=23.01, lng=90.0)).status_code == 403
    assert validator.validate(_type("qr_code", config), _ctx(code="SITE")).status_code == 422


def test_factory_resolves_slugs_and_aliases():
    factory = AttendanceValidatorFactory()
    assert isinstance(factory.for_slug("route-waypoint"), RouteWaypointValidator)
    assert isinstance(factory.for_slug("wifi_ip"), WifiIpValidator)
    with pytest.raises(ValidationError):
        factory.for_slug("face_scan")
