"""
Unit tests for the stopover hub catalog and region resolver.
"""

import pytest

from farewatch.orchestration.hubs import (
    AMERICAS,
    ASIA,
    EUROPE,
    MIDDLE_EAST,
    STOPOVER_HUBS,
    UNKNOWN_REGION,
    find_suitable_hubs,
    get_hub,
    minimum_layover_hours,
    region_of,
)


class TestRegionOf:
    """Tests for region_of function."""

    @pytest.mark.parametrize(
        "code,region",
        [
            ("DXB", MIDDLE_EAST),
            ("LHR", EUROPE),
            ("SIN", ASIA),
            ("JFK", AMERICAS),
            ("EZE", AMERICAS),
            ("SYD", "oceania"),
            ("NBO", "africa"),
        ],
    )
    def test_known_airports(self, code, region):
        assert region_of(code) == region

    def test_hub_region_wins(self):
        assert region_of("NRT") == ASIA

    def test_first_listed_region_wins(self):
        """CAI appears under both the Middle East and Africa."""
        assert region_of("CAI") == MIDDLE_EAST

    def test_lowercase(self):
        assert region_of("lhr") == EUROPE

    @pytest.mark.parametrize("code", ["XYZ", "", None])
    def test_unknown(self, code):
        assert region_of(code) == UNKNOWN_REGION


class TestFindSuitableHubs:
    """Tests for find_suitable_hubs function."""

    def test_same_region_has_no_hubs(self):
        assert find_suitable_hubs("LHR", "CDG") == []

    def test_both_unknown_has_no_hubs(self):
        assert find_suitable_hubs("XXX", "YYY") == []

    def test_one_unknown_endpoint_has_no_hubs(self):
        """No hub connects to an unresolved region."""
        assert find_suitable_hubs("LHR", "XXX") == []
        assert find_suitable_hubs("XXX", "BKK") == []

    def test_europe_asia_prefers_middle_east(self):
        codes = [hub.code for hub in find_suitable_hubs("LHR", "BKK", 3)]
        assert codes == ["DXB", "DOH", "AUH"]

    def test_americas_asia_uses_bridging_hubs(self):
        """Routes between the Americas and Asia still get catalog hubs."""
        codes = [hub.code for hub in find_suitable_hubs("EZE", "NRT", 3)]
        assert codes == ["DXB", "DOH", "IST"]

    def test_endpoints_are_never_hubs(self):
        for origin, destination in [("LHR", "SIN"), ("JFK", "DXB"), ("DOH", "LAX"), ("NRT", "FRA")]:
            codes = {hub.code for hub in find_suitable_hubs(origin, destination, 50)}
            assert origin not in codes
            assert destination not in codes

    def test_hubs_bridge_both_regions(self):
        for hub in find_suitable_hubs("JFK", "SIN", 50):
            assert hub.bridges(AMERICAS)
            assert hub.bridges(ASIA)

    def test_max_hubs(self):
        assert len(find_suitable_hubs("LHR", "BKK", 2)) == 2
        assert find_suitable_hubs("LHR", "BKK", 0) == []

    def test_case_insensitive(self):
        assert find_suitable_hubs("lhr", "bkk", 3) == find_suitable_hubs("LHR", "BKK", 3)


class TestCatalog:
    """Tests for the static hub catalog."""

    def test_codes_are_unique(self):
        codes = [hub.code for hub in STOPOVER_HUBS]
        assert len(codes) == len(set(codes))

    def test_get_hub(self):
        assert get_hub("dxb").city == "Dubai"
        assert get_hub("EZE") is None

    def test_minimum_layover(self):
        assert minimum_layover_hours("LHR") == 3.0
        assert minimum_layover_hours("DOH") == 1.5
        assert minimum_layover_hours("IST") == 2.0
