"""Tests for suggestion ranking."""

from plantguesser.reference import LocationEntry
from plantguesser.suggestions import location_priority, match_quality, search


def _locations(entries):
    return [LocationEntry(name, type_) for name, type_ in entries]


def _search_locations(query, locations, limit=None):
    return search(
        query,
        locations,
        lambda loc: location_priority(loc.type),
        name=lambda loc: loc.name,
        limit=limit,
    )


def test_type_priority_outranks_name_order():
    locations = _locations([("Astoria", "City"), ("Asia", "Continent")])
    result = _search_locations("as", locations)
    assert [loc.name for loc in result] == ["Asia", "Astoria"]


def test_type_priority_outranks_match_quality():
    locations = _locations([("Oregon City", "City"), ("Lake Oregon Country", "Country")])
    result = _search_locations("oregon", locations)
    assert [loc.name for loc in result] == ["Lake Oregon Country", "Oregon City"]


def test_prefix_beats_substring_within_tier():
    result = search("rosa", ["Primrosa", "Rosmarinus", "Rosa"])
    assert result == ["Rosa", "Primrosa"]
    result = search("ros", ["Primrosa", "Rosmarinus", "Rosa"])
    assert result == ["Rosa", "Rosmarinus", "Primrosa"]


def test_filter_is_case_insensitive_substring():
    assert search("QUER", ["Quercus", "Pinus"]) == ["Quercus"]


def test_empty_query_matches_everything_sorted():
    assert search("  ", ["b", "a", "c"]) == ["a", "b", "c"]


def test_limit_caps_results():
    assert len(search("", [f"name{i}" for i in range(40)], limit=25)) == 25


def test_location_priority_tiers():
    assert location_priority("Continent") == 0
    assert location_priority("Country") == 1
    assert location_priority("Province") == 2
    assert location_priority("Town") == 3
    assert location_priority("Island") == 4
    assert location_priority("Mystery Type") == 5
    assert location_priority(None) == 6


def test_unmapped_types_sort_before_null():
    locations = _locations([("Oregon Dunes", None), ("Oregonia", "Mystery Type")])
    assert [loc.name for loc in _search_locations("ore", locations)] == ["Oregonia", "Oregon Dunes"]


def test_match_quality():
    assert match_quality("que", "Quercus") == 0
    assert match_quality("cus", "Quercus") == 1
    assert match_quality("pin", "Quercus") == 2


def test_search_is_deterministic():
    items = ["Rosaceae", "Rosa", "Primrosa", "rosa"]
    assert search("ros", items) == search("ros", list(reversed(items)))
