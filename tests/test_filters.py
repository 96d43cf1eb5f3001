from red_alert_feed.alerts.filters import (
    AREA_MARKERS,
    apply_filters,
    filter_by_area,
    filter_by_location,
    location_details,
    resolve_area_tag,
)
from red_alert_feed.config import FilterConfig

from conftest import make_snapshot


def test_location_filter_is_case_sensitive_substring():
    assert filter_by_location(["Tel Aviv", "Haifa"], ["Tel"]) == ["Tel Aviv"]
    assert filter_by_location(["Tel Aviv", "Haifa"], ["tel"]) == []
    assert filter_by_location(["Tel Aviv", "Haifa"], ["a"]) == ["Tel Aviv", "Haifa"]


def test_area_filter_uses_marker_table():
    locs = ["עוטף עזה 230", "תל אביב - יפו", "חיפה - כרמל", "ירושלים - מערב"]
    assert filter_by_area(locs, ["עוטף עזה"]) == ["עוטף עזה 230"]
    assert filter_by_area(locs, ["תל אביב", "ירושלים"]) == ["תל אביב - יפו", "ירושלים - מערב"]
    # selectable tags without a marker never match
    assert "צפון" not in AREA_MARKERS
    assert filter_by_area(locs, ["צפון"]) == []


def test_apply_filters_narrows_snapshot():
    snap = make_snapshot(locations=["Tel Aviv", "Haifa"])
    out = apply_filters(snap, FilterConfig(location_substrings=frozenset({"Tel"}), filter_by_location=True))
    assert out.locations == ("Tel Aviv",)
    assert out.id == snap.id and out.title == snap.title
    # original untouched
    assert snap.locations == ("Tel Aviv", "Haifa")


def test_apply_filters_no_match_cancels():
    snap = make_snapshot(locations=["Tel Aviv", "Haifa"])
    cfg = FilterConfig(location_substrings=frozenset({"Eilat"}), filter_by_location=True)
    assert apply_filters(snap, cfg) is None


def test_apply_filters_disabled_flag_or_empty_set_is_passthrough():
    snap = make_snapshot(locations=["Tel Aviv", "Haifa"])
    assert apply_filters(snap, FilterConfig(location_substrings=frozenset({"Eilat"}))) is snap
    assert apply_filters(snap, FilterConfig(filter_by_location=True)) is snap
    assert apply_filters(snap, FilterConfig(filter_by_area=True)) is snap


def test_area_filter_runs_on_location_filtered_output():
    snap = make_snapshot(locations=["תל אביב - יפו", "ירושלים - מערב", "חיפה - כרמל"])
    cfg = FilterConfig(
        location_substrings=frozenset({"ירושלים", "חיפה"}),
        area_tags=frozenset({"תל אביב"}),
        filter_by_location=True,
        filter_by_area=True,
    )
    # Tel Aviv survives the area filter alone but was removed by the location filter
    assert apply_filters(snap, cfg) is None

    cfg2 = FilterConfig(
        location_substrings=frozenset({"ירושלים", "חיפה"}),
        area_tags=frozenset({"ירושלים"}),
        filter_by_location=True,
        filter_by_area=True,
    )
    assert apply_filters(snap, cfg2).locations == ("ירושלים - מערב",)


def test_location_details_are_placeholders():
    details = location_details(["Tel Aviv"])
    assert details == [{
        "name": "Tel Aviv",
        "hebrew_name": "Tel Aviv",
        "estimated_shelter_time": 15,
        "area": "unknown",
    }]


def test_resolve_area_tag():
    assert resolve_area_tag("tel_aviv") == "תל אביב"
    assert resolve_area_tag("Gaza Envelope") == "עוטף עזה"
    assert resolve_area_tag(" ירושלים ") == "ירושלים"
    assert resolve_area_tag("eilat") is None
