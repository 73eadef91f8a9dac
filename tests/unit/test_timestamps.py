from datetime import datetime, timezone

import pytest

from logstream.core.timestamps import format_timestamp, normalize_timestamp, parse_timestamp, to_epoch


def test_normalize_converts_offsets_to_utc():
    assert normalize_timestamp("2024-03-01T12:00:00+02:00") == "2024-03-01T10:00:00.000000Z"
    assert normalize_timestamp("2024-03-01T10:00:00Z") == "2024-03-01T10:00:00.000000Z"


def test_normalized_strings_sort_chronologically():
    raw = [
        "2024-03-01T10:00:00.5Z",
        "2024-03-01T10:00:00Z",
        "2024-03-01T11:30:00+02:00",
    ]
    normalized = sorted(normalize_timestamp(value) for value in raw)

    assert normalized == [
        "2024-03-01T09:30:00.000000Z",
        "2024-03-01T10:00:00.000000Z",
        "2024-03-01T10:00:00.500000Z",
    ]


@pytest.mark.parametrize("value", ["", "   ", "yesterday", "2024-03-01T10:00:00", "2024-13-01T00:00:00Z"])
def test_parse_rejects_invalid_or_naive(value):
    with pytest.raises(ValueError):
        parse_timestamp(value)


def test_to_epoch_is_whole_seconds():
    assert to_epoch("1970-01-01T00:01:40.900Z") == 100


def test_format_rejects_naive_datetime():
    with pytest.raises(ValueError):
        format_timestamp(datetime(2024, 1, 1))

    assert format_timestamp(datetime(2024, 1, 1, tzinfo=timezone.utc)) == "2024-01-01T00:00:00.000000Z"
