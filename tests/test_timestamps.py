"""Tests for evtx2bodyfile/timestamps.py"""

import logging
from datetime import datetime, timezone

import pytest

from evtx2bodyfile.timestamps import (
    SYSTEM_TIME_FORMAT,
    TimestampFormatError,
    format_system_time,
    parse_decoder_timestamp,
    parse_system_time,
)

from conftest import SAMPLE_EPOCH, SAMPLE_TIME


class TestParseSystemTime:
    def test_sample_value(self):
        assert parse_system_time(SAMPLE_TIME) == SAMPLE_EPOCH

    def test_epoch_start(self):
        assert parse_system_time("1970-01-01 00:00:00.000000 UTC") == 0

    def test_fraction_is_floored(self):
        assert parse_system_time("2021-01-05 10:15:30.999999 UTC") == SAMPLE_EPOCH

    def test_pre_epoch_floors_towards_past(self):
        assert parse_system_time("1969-12-31 23:59:59.500000 UTC") == -1

    def test_garbage_raises(self):
        with pytest.raises(TimestampFormatError) as exc_info:
            parse_system_time("yesterday")
        assert exc_info.value.value == "yesterday"
        assert "yesterday" in str(exc_info.value)

    def test_iso_format_does_not_match_default(self):
        with pytest.raises(TimestampFormatError):
            parse_system_time("2021-01-05T10:15:30.123456Z")

    def test_short_fraction_fails_round_trip_in_strict_mode(self):
        with pytest.raises(TimestampFormatError, match="re-encodes"):
            parse_system_time("2021-01-05 10:15:30.123 UTC")

    def test_short_fraction_warns_in_lenient_mode(self, caplog):
        with caplog.at_level(logging.WARNING, logger="evtx2bodyfile.timestamps"):
            epoch = parse_system_time("2021-01-05 10:15:30.123 UTC", strict=False)
        assert epoch == SAMPLE_EPOCH
        assert "re-encodes" in caplog.text

    def test_unparsable_raises_even_when_lenient(self):
        with pytest.raises(TimestampFormatError):
            parse_system_time("not a time", strict=False)

    def test_custom_format(self):
        fmt = "%Y-%m-%dT%H:%M:%S.%fZ"
        assert parse_system_time("2021-01-05T10:15:30.123456Z", fmt) == SAMPLE_EPOCH

    def test_offset_format_converted_to_utc(self):
        fmt = "%Y-%m-%d %H:%M:%S.%f %z"
        assert parse_system_time("2021-01-05 11:15:30.123456 +0100", fmt) == SAMPLE_EPOCH


class TestFormatSystemTime:
    def test_round_trip(self):
        for epoch in (0, SAMPLE_EPOCH, 1700000000, 4102444800):
            assert parse_system_time(format_system_time(epoch)) == epoch

    def test_renders_expected_text(self):
        assert format_system_time(SAMPLE_EPOCH) == "2021-01-05 10:15:30.000000 UTC"

    def test_default_format_constant(self):
        assert SYSTEM_TIME_FORMAT == "%Y-%m-%d %H:%M:%S.%f %Z"


class TestParseDecoderTimestamp:
    def test_chrono_style(self):
        dt = parse_decoder_timestamp(SAMPLE_TIME)
        assert dt == datetime(2021, 1, 5, 10, 15, 30, 123456, tzinfo=timezone.utc)

    def test_rfc3339_style(self):
        dt = parse_decoder_timestamp("2021-01-05T10:15:30.123456Z")
        assert dt == datetime(2021, 1, 5, 10, 15, 30, 123456, tzinfo=timezone.utc)

    def test_missing_or_invalid(self):
        assert parse_decoder_timestamp(None) is None
        assert parse_decoder_timestamp("") is None
        assert parse_decoder_timestamp("garbage") is None
