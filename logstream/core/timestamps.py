"""
Canonical timestamp handling.

Events carry caller-supplied RFC3339 timestamps. They are normalized at ingest
to UTC with fixed microsecond precision so that plain string comparison in the
store (ordering, retention cutoffs) matches chronological order.
"""

from datetime import datetime, timezone


def parse_timestamp(value: str) -> datetime:
    """Parse an RFC3339 timestamp. The offset is mandatory."""
    if not isinstance(value, str) or not value.strip():
        raise ValueError("Timestamp must be a non-empty string")

    text = value.strip()
    if text[-1] in "zZ":
        text = text[:-1] + "+00:00"

    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        raise ValueError(f"Timestamp has no UTC offset: {value!r}")
    return parsed


def format_timestamp(moment: datetime) -> str:
    """Render an aware datetime in the canonical stored form"""
    if moment.tzinfo is None:
        raise ValueError("Cannot format a naive datetime")
    utc = moment.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def normalize_timestamp(value: str) -> str:
    return format_timestamp(parse_timestamp(value))


def to_epoch(value: str) -> int:
    """Whole epoch seconds, used for numeric filtering in the search index"""
    return int(parse_timestamp(value).timestamp())
