from datetime import datetime, timedelta, timezone

import pytest

from octopus_exporter.config import MeterPoint
from octopus_exporter.consumption import ConsumptionParseError, format_seconds, parse_consumption, parse_timestamp
from tests.helpers import envelope, result

ELECTRICITY = MeterPoint("electricity", "1200000000000", "21L1234567")


def test_single_result():
    payload = envelope(result("2024-01-01T00:00:00Z", "2024-01-01T00:30:00Z", 0.123))

    reading = parse_consumption(payload, ELECTRICITY)

    assert reading.timestamp == datetime(2024, 1, 1, 0, 15, tzinfo=timezone.utc)
    assert reading.consumption == 0.123
    assert reading.interval == 1800.0
    assert reading.interval_label() == "1800"
    assert reading.point_type == "electricity"
    assert reading.identifier == "1200000000000"
    assert reading.meter == "21L1234567"


def test_offset_timestamps():
    # British Summer Time intervals come back with a +01:00 offset
    payload = envelope(result("2024-06-01T23:30:00+01:00", "2024-06-02T00:00:00+01:00", 1))

    reading = parse_consumption(payload, ELECTRICITY)

    assert reading.timestamp == datetime(2024, 6, 1, 22, 45, tzinfo=timezone.utc)
    assert reading.consumption == 1.0
    assert isinstance(reading.consumption, float)


def test_odd_interval_midpoint_truncated():
    payload = envelope(result("2024-01-01T00:00:00Z", "2024-01-01T00:00:03Z", 0.5))

    reading = parse_consumption(payload, ELECTRICITY)

    assert reading.interval == 3.0
    assert reading.timestamp - parse_timestamp("2024-01-01T00:00:00Z") == timedelta(seconds=1)


def test_only_first_result_used():
    payload = envelope(
        result("2024-01-01T01:00:00Z", "2024-01-01T01:30:00Z", 0.2),
        result("2024-01-01T00:30:00Z", "2024-01-01T01:00:00Z", 0.9),
    )

    assert parse_consumption(payload, ELECTRICITY).consumption == 0.2


def test_empty_results():
    assert parse_consumption(envelope(), ELECTRICITY) is None


@pytest.mark.parametrize("payload", [
    [],
    {"detail": "Authentication credentials were not provided."},
    {"results": None},
    {"results": ["oops"]},
    envelope({"interval_start": "2024-01-01T00:00:00Z", "interval_end": "2024-01-01T00:30:00Z"}),
    envelope(result("2024-01-01T00:00:00Z", "yesterday", 0.1)),
    envelope(result("2024-01-01T00:00:00", "2024-01-01T00:30:00", 0.1)),
    envelope(result("2024-01-01T00:00:00Z", "2024-01-01T00:30:00Z", "0.1")),
    envelope(result("2024-01-01T00:00:00Z", "2024-01-01T00:30:00Z", True)),
])
def test_malformed_payload(payload):
    with pytest.raises(ConsumptionParseError):
        parse_consumption(payload, ELECTRICITY)


def test_parse_timestamp_zulu():
    assert parse_timestamp("2024-01-01T00:30:00Z") == datetime(2024, 1, 1, 0, 30, tzinfo=timezone.utc)


def test_parse_timestamp_rejects_non_string():
    with pytest.raises(ConsumptionParseError):
        parse_timestamp(1704067200)


def test_oversized_consumption():
    payload = envelope(result("2024-01-01T00:00:00Z", "2024-01-01T00:30:00Z", 10 ** 400))

    with pytest.raises(ConsumptionParseError, match="too large"):
        parse_consumption(payload, ELECTRICITY)


@pytest.mark.parametrize("value, expected", [
    ("2024-01-01T00:00:00.5Z", datetime(2024, 1, 1, 0, 0, 0, 500000, tzinfo=timezone.utc)),
    ("2024-01-01T00:00:00.123456789Z", datetime(2024, 1, 1, 0, 0, 0, 123456, tzinfo=timezone.utc)),
    ("2024-01-01T01:00:00.25+01:00", datetime(2024, 1, 1, 0, 0, 0, 250000, tzinfo=timezone.utc)),
])
def test_parse_timestamp_fractional_seconds(value, expected):
    assert parse_timestamp(value) == expected


@pytest.mark.parametrize("seconds, expected", [
    (1800.0, "1800"),
    (86400.0, "86400"),
    (100000.5, "100000.5"),
    (1234567.0, "1.234567e+06"),
    (1000000.0, "1e+06"),
    (0.00001, "1e-05"),
    (0.0, "0"),
])
def test_format_seconds(seconds, expected):
    assert format_seconds(seconds) == expected
