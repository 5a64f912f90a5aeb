"""
Unit tests for cache key derivation and the query model.
"""

import pytest

from service_quakes.app.caching.keys import event_cache_key, query_cache_key, rate_limit_key
from service_quakes.app.earthquakes.models import EarthquakeQuery, format_param


class TestQueryCacheKey:
    """Test cases for collection query keys."""

    def test_defaults_are_part_of_the_key(self):
        """Boundary defaults count as defined fields."""
        key = query_cache_key(EarthquakeQuery())
        assert key == "earthquakes:limit=50&orderby=time"

    def test_minmagnitude_and_limit(self):
        key = query_cache_key(EarthquakeQuery(minmagnitude=5.0, limit=10))
        assert key == "earthquakes:minmagnitude=5&limit=10&orderby=time"

    def test_presentation_order_does_not_matter(self):
        """Keyword order and mapping order never change the key."""
        first = EarthquakeQuery(limit=10, minmagnitude=4.5, starttime="2024-01-01")
        second = EarthquakeQuery(starttime="2024-01-01", minmagnitude=4.5, limit=10)
        third = EarthquakeQuery.from_mapping({"limit": "10", "starttime": "2024-01-01", "minmagnitude": "4.5"})
        assert query_cache_key(first) == query_cache_key(second) == query_cache_key(third)

    def test_omitted_default_equals_explicit_default(self):
        omitted = EarthquakeQuery.from_mapping({"minmagnitude": "6"})
        explicit = EarthquakeQuery.from_mapping({"minmagnitude": "6", "limit": "50", "orderby": "time"})
        assert query_cache_key(omitted) == query_cache_key(explicit)

    def test_fields_follow_declared_order(self):
        query = EarthquakeQuery(
            orderby="magnitude",
            limit=5,
            maxmagnitude=7.5,
            minmagnitude=2.5,
            endtime="2024-02-01",
            starttime="2024-01-01",
        )
        assert query_cache_key(query) == (
            "earthquakes:starttime=2024-01-01&endtime=2024-02-01"
            "&minmagnitude=2.5&maxmagnitude=7.5&limit=5&orderby=magnitude"
        )

    def test_absent_fields_are_skipped(self):
        query = EarthquakeQuery(limit=None, orderby=None, maxmagnitude=3.0)
        assert query_cache_key(query) == "earthquakes:maxmagnitude=3"

    def test_values_are_form_encoded(self):
        query = EarthquakeQuery(starttime="2024-01-01T00:00:00")
        assert query_cache_key(query) == "earthquakes:starttime=2024-01-01T00%3A00%3A00&limit=50&orderby=time"

    def test_integral_and_float_magnitudes_share_a_key(self):
        assert query_cache_key(EarthquakeQuery(minmagnitude=5)) == query_cache_key(EarthquakeQuery(minmagnitude=5.0))

    def test_different_queries_have_different_keys(self):
        assert query_cache_key(EarthquakeQuery(minmagnitude=5.0)) != query_cache_key(EarthquakeQuery(minmagnitude=5.5))


class TestEventCacheKey:
    """Test cases for single lookup keys."""

    @pytest.mark.parametrize("event_id", ["us7000abcd", "ci40610416", "id with spaces", "a:b"])
    def test_identifier_used_verbatim(self, event_id):
        assert event_cache_key(event_id) == f"earthquake:{event_id}"


def test_rate_limit_key():
    assert rate_limit_key("10.0.0.1") == "rate-limit:10.0.0.1"


class TestEarthquakeQuery:
    """Test cases for query validation and parsing."""

    def test_empty_strings_are_absent(self):
        query = EarthquakeQuery.from_mapping({"starttime": "", "minmagnitude": "", "limit": "", "orderby": ""})
        assert query == EarthquakeQuery()

    def test_unknown_keys_are_ignored(self):
        assert EarthquakeQuery.from_mapping({"format": "xml", "minmagnitude": "3"}) == EarthquakeQuery(minmagnitude=3.0)

    def test_custom_default_limit(self):
        assert EarthquakeQuery.from_mapping({}, default_limit=20).limit == 20

    @pytest.mark.parametrize(
        "params",
        [
            {"orderby": "depth"},
            {"limit": "0"},
            {"limit": "ten"},
            {"minmagnitude": "big"},
            {"minmagnitude": "nan"},
            {"minmagnitude": "1_0"},
            {"minmagnitude": "1e400"},
            {"limit": "1_0"},
            {"limit": "10.5"},
            {"minmagnitude": "6", "maxmagnitude": "5"},
        ],
    )
    def test_invalid_parameters_rejected(self, params):
        with pytest.raises(ValueError):
            EarthquakeQuery.from_mapping(params)

    def test_defined_params_skip_none(self):
        query = EarthquakeQuery(endtime="2024-03-01", limit=None)
        assert query.defined_params() == [("endtime", "2024-03-01"), ("orderby", "time")]

    @pytest.mark.parametrize(
        "value,expected",
        [
            (5.0, "5"),
            (5, "5"),
            (4.5, "4.5"),
            (0.1, "0.1"),
            (-2.5, "-2.5"),
            (-0.0, "0"),
            (100.0, "100"),
            (0.00001, "0.00001"),
            (1e-7, "1e-7"),
            (1.5e-7, "1.5e-7"),
            (1e20, "100000000000000000000"),
            (1.5e21, "1.5e+21"),
            ("time", "time"),
            (True, "true"),
        ],
    )
    def test_format_param(self, value, expected):
        assert format_param(value) == expected

    def test_small_magnitude_key_text(self):
        query = EarthquakeQuery.from_mapping({"minmagnitude": "0.0000001", "limit": "10"})
        assert query_cache_key(query) == "earthquakes:minmagnitude=1e-7&limit=10&orderby=time"

    @pytest.mark.parametrize("text,expected", [("+5", 5.0), (".5", 0.5), ("5.", 5.0), ("2E1", 20.0)])
    def test_decimal_spellings_accepted(self, text, expected):
        assert EarthquakeQuery.from_mapping({"minmagnitude": text}).minmagnitude == expected
