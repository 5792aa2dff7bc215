import pytest

from src.enterprise_suite.enterprise_suite.daily_works.jurisdiction import (
    JurisdictionMatcher,
    chainage_to_float,
    find_jurisdiction,
    format_chainage_for_display,
    parse_location,
)
from src.enterprise_suite.enterprise_suite.core.exceptions import ValidationError
from src.enterprise_suite.enterprise_suite.daily_works.model import Jurisdiction

NORTH = Jurisdiction(id=1, location="North", start_chainage="K0+000", end_chainage="K20+000", incharge=10, assigned=11)
SOUTH = Jurisdiction(id=2, location="South", start_chainage="K20+001", end_chainage="K48+000", incharge=20)


def test_chainage_helpers():
    assert chainage_to_float("K05+900") == 5.9
    assert chainage_to_float("bridge") == 0.0
    assert format_chainage_for_display("k5+9") == "K05+009"
    assert parse_location("K30+560-K30+570") == ("K30+560", "K30+570")
    assert parse_location("K13 TOLL STATION") == ("K13", None)
    assert parse_location("no chainage") == (None, None)


def test_find_for_location_by_start_or_end():
    matcher = JurisdictionMatcher(lambda: [NORTH, SOUTH])
    assert matcher.find_for_location("K05+100") is NORTH
    assert matcher.find_for_location("K30+000") is SOUTH
    assert matcher.find_for_location("K60+000 - K21+000") is SOUTH
    assert matcher.find_for_location("Toll plaza") is None


def test_find_jurisdiction_takes_first_covering_jurisdiction():
    assert find_jurisdiction("K19+000 - K25+000", [NORTH, SOUTH]) is NORTH
    assert find_jurisdiction("K19+000 - K25+000", [SOUTH, NORTH]) is SOUTH
    assert find_jurisdiction("K49+000", [NORTH, SOUTH]) is None


def test_assign_incharge_copies_jurisdiction_staff():
    matcher = JurisdictionMatcher(lambda: [NORTH, SOUTH])
    values = matcher.assign_incharge({"location": "K02+500"})
    assert values["incharge"] == 10
    assert values["assigned"] == 11

    with pytest.raises(ValidationError):
        matcher.assign_incharge({"location": "K60+000"})


def test_cache_reloads_after_ttl():
    calls = []
    now = [0.0]

    def loader():
        calls.append(1)
        return [NORTH]

    matcher = JurisdictionMatcher(loader, ttl_seconds=300, clock=lambda: now[0])
    matcher.find_for_location("K01")
    matcher.find_for_location("K02")
    assert len(calls) == 1

    now[0] = 301.0
    matcher.find_for_location("K03")
    assert len(calls) == 2


def test_cache_is_kept_per_scope():
    tenant = ["acme"]
    data = {"acme": [NORTH], "globex": [SOUTH]}
    matcher = JurisdictionMatcher(lambda: data[tenant[0]], scope=lambda: tenant[0])

    assert matcher.find_for_location("K05") is NORTH
    tenant[0] = "globex"
    assert matcher.find_for_location("K05") is None
    assert matcher.find_for_location("K30") is SOUTH
