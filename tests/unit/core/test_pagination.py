"""
Unit Tests for lenient limit/offset parsing
"""
import pytest

from ipregistry.utils.pagination import (
    ASSETS_DEFAULT_LIMIT,
    ASSETS_MAX_LIMIT,
    PageParams,
    parse_limit,
    parse_offset,
)


class TestParseLimit:

    @pytest.mark.parametrize("raw, expected", [
        (None, 200),
        ("", 200),
        ("abc", 200),
        ("-5", 200),
        (0, 200),
        ("50", 50),
        (" 75 ", 75),
        (2000, 2000),
        (99999, 2000),
        ("99999999999999999999", 2000),
    ])
    def test_general_listing(self, raw, expected):
        assert parse_limit(raw) == expected

    def test_asset_listing_bounds(self):
        assert parse_limit(None, ASSETS_DEFAULT_LIMIT, ASSETS_MAX_LIMIT) == 2000
        assert parse_limit("9000", ASSETS_DEFAULT_LIMIT, ASSETS_MAX_LIMIT) == 5000


class TestParseOffset:

    @pytest.mark.parametrize("raw, expected", [
        (None, 0),
        ("abc", 0),
        ("-1", 0),
        ("10", 10),
        ("9223372036854775807", 2 ** 63 - 1),
        ("99999999999999999999", 0),
        ("9" * 5000, 0),
    ])
    def test_offset(self, raw, expected):
        assert parse_offset(raw) == expected


def test_page_params_from_query():
    page = PageParams.from_query(limit="-5", offset="abc")

    assert page == PageParams(limit=200, offset=0)
