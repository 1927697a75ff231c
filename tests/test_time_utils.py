"""Tests for timestamp parsing of opaque payload values."""

from datetime import datetime, timezone

import pytest

from journal_analytics.utils.time import isoformat, parse_timestamp, to_utc

NOON = datetime(2024, 7, 15, 12, 0, tzinfo=timezone.utc)


class TestParseTimestamp:
    @pytest.mark.parametrize(
        "value",
        [
            "2024-07-15T12:00:00Z",
            "2024-07-15T12:00:00+00:00",
            "2024-07-15T14:00:00+02:00",
            1721044800,
            1721044800.0,
            "1721044800",
            NOON,
        ],
    )
    def test_accepted_forms(self, value):
        assert parse_timestamp(value) == NOON

    def test_naive_iso_is_utc(self):
        assert parse_timestamp("2024-07-15T12:00:00") == NOON

    @pytest.mark.parametrize("value", [None, "", "15/07/2024 12:00", "not a date", True, [1, 2]])
    def test_unparseable_is_none(self, value):
        assert parse_timestamp(value) is None


def test_to_utc_and_isoformat():
    assert to_utc(None) is None
    assert to_utc(datetime(2024, 7, 15, 12, 0)) == NOON
    assert isoformat(NOON) == "2024-07-15T12:00:00+00:00"
    assert isoformat(None) is None
