import pytest

from src.enterprise_suite.enterprise_suite.objections.chainage import (
    do_ranges_overlap,
    does_objection_match_rfi,
    extract_chainage,
    format_meters,
    normalize_chainage_format,
    parse_chainage_to_meters,
    parse_location_to_meters,
    parse_multiple_chainages,
)


@pytest.mark.parametrize(
    "raw, meters",
    [
        ("K35+897", 35897),
        ("K05+560", 5560),
        ("SCK0+260", 260),
        ("CK0+189.220", 189),
        ("K14+036.00", 14036),
        ("K35+5", 35500),
        ("K35+50", 35500),
        ("K35+897-RHS", 35897),
        ("k12+100 lhs", 12100),
        ("K12", 12000),
    ],
)
def test_parse_chainage_to_meters(raw, meters):
    assert parse_chainage_to_meters(raw) == meters


def test_parse_chainage_rejects_garbage():
    assert parse_chainage_to_meters("") is None
    assert parse_chainage_to_meters(None) is None
    assert parse_chainage_to_meters("near the bridge") is None


def test_parse_location_range_is_ordered():
    span = parse_location_to_meters("K36+500 - K35+500")
    assert span.is_range is True
    assert (span.start, span.end) == (35500, 36500)


def test_parse_location_single_point():
    span = parse_location_to_meters("K10+250")
    assert span.is_range is False
    assert span.start == 10250
    assert span.end is None


def test_parse_multiple_chainages_drops_duplicates_and_garbage():
    assert parse_multiple_chainages("K35+897, K36+987, nope, K35+897") == [35897, 36987]


def test_format_helpers():
    assert format_meters(5560) == "K05+560"
    assert format_meters(None) is None
    assert normalize_chainage_format("SCK0+260") == "K00+260"
    assert extract_chainage("Culvert at k12+340 left") == "K12+340"


def test_ranges_overlap_regardless_of_order():
    assert do_ranges_overlap(100, 200, 150, 300)
    assert do_ranges_overlap(200, 100, 300, 200)
    assert not do_ranges_overlap(100, 200, 201, 300)


def test_objection_point_matches_rfi_point_and_range():
    assert does_objection_match_rfi([35897], None, None, "K35+897")
    assert not does_objection_match_rfi([35898], None, None, "K35+897")
    assert does_objection_match_rfi([35897], None, None, "K35+500 - K36+000")


def test_objection_range_matches_rfi_point_and_range():
    assert does_objection_match_rfi([], 35000, 36000, "K35+400")
    assert does_objection_match_rfi([], 35000, 36000, "K35+900 - K37+000")
    assert not does_objection_match_rfi([], 35000, 36000, "K40+000")


def test_unparseable_rfi_location_never_matches():
    assert not does_objection_match_rfi([100], 0, 1000, "somewhere")
