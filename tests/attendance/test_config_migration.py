import pytest

from src.enterprise_suite.enterprise_suite.attendance.config_migration import (
    DOWN,
    UP,
    downgrade_config,
    migrate_attendance_types,
    upgrade_config,
)
from src.enterprise_suite.enterprise_suite.attendance.model import AttendanceType

from tests.attendance.attendance_fakes import FakeAttendanceRepo

POINTS = [{"lat": 0, "lng": 0}, {"lat": 0, "lng": 1}, {"lat": 1, "lng": 1}]


def test_single_polygon_becomes_named_polygon_list():
    upgraded = upgrade_config("geo_polygon", {"polygon": POINTS, "allow_without_location": 1})
    assert upgraded == {
        "polygons": [{"id": "polygon_1", "name": "Primary Location", "points": POINTS, "is_active": True}],
        "validation_mode": "any",
        "allow_without_location": True,
    }
    assert downgrade_config("geo_polygon", upgraded) == {"polygon": POINTS, "allow_without_location": True}


def test_pair_lists_are_converted_to_points():
    upgraded = upgrade_config("geo_polygon", {"polygons": [[[0, 0], [0, 1], [1, 1]]]})
    assert upgraded["polygons"][0]["points"] == POINTS
    assert upgraded["polygons"][0]["name"] == "Location 1"


def test_wifi_and_route_upgrades():
    wifi = upgrade_config("wifi_ip", {"allowed_ips": ["10.0.0.1"]})
    assert wifi["ip_locations"][0]["name"] == "Primary Office"
    assert wifi["ip_locations"][0]["allowed_ranges"] == []

    route = upgrade_config("route-waypoint", {"waypoints": [{"lat": 1, "lng": 2}], "tolerance": 150})
    assert route["routes"][0]["tolerance"] == 150
    assert downgrade_config("route_waypoint", route)["waypoints"] == [{"lat": 1, "lng": 2}]


def test_qr_defaults_and_already_migrated_configs():
    qr = upgrade_config("qr_code", None)
    assert qr["qr_codes"] == []
    assert qr["one_time_use"] is False

    migrated = {"ip_locations": []}
    assert upgrade_config("wifi_ip", migrated) == migrated
    assert downgrade_config("wifi_ip", {"allowed_ips": ["1.1.1.1"]}) == {"allowed_ips": ["1.1.1.1"]}


def test_migrate_counts_changed_rows_and_round_trips():
    repo = FakeAttendanceRepo(
        [
            AttendanceType(id=1, name="Site", slug="geo_polygon", config={"polygon": POINTS}),
            AttendanceType(id=2, name="Office", slug="wifi_ip", config={"ip_locations": []}, is_active=False),
        ]
    )
    assert migrate_attendance_types(repo, UP) == 1
    assert "polygons" in repo.get_type(1).config
    assert migrate_attendance_types(repo, UP) == 0

    migrate_attendance_types(repo, DOWN)
    assert repo.get_type(1).config == {"polygon": POINTS, "allow_without_location": False}

    with pytest.raises(ValueError):
        migrate_attendance_types(repo, "sideways")
