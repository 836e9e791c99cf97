"""
Timestamp helpers.

Breadcrumb timestamps are integer milliseconds since the Unix epoch.
Recording timestamps are ISO-8601 strings in UTC with millisecond
precision and a trailing "Z", matching what the recorder app writes.
"""

import time
from datetime import datetime, timedelta, timezone

from dateutil.parser import isoparse


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


def to_iso(dt: datetime) -> str:
    """Serialize a datetime as ISO-8601 UTC, e.g. 2024-05-01T10:00:00.000Z."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    millis = dt.microsecond // 1000
    return dt.strftime("%Y-%m-%dT%H:%M:%S") + f".{millis:03d}Z"


def now_iso() -> str:
    return to_iso(datetime.now(timezone.utc))


def parse_iso(value: str) -> datetime:
    """
    Parse an ISO-8601 timestamp.

    Naive values are taken as UTC.

    Raises:
        ValueError: if the string is not a valid ISO-8601 timestamp
    """
    dt = isoparse(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def shift_iso(value: str, offset_ms: int) -> str:
    """Add offset_ms to an ISO-8601 timestamp and re-serialize it."""
    return to_iso(parse_iso(value) + timedelta(milliseconds=offset_ms))


def from_epoch_ms(value: float) -> str:
    """Serialize epoch milliseconds as ISO-8601 UTC."""
    return to_iso(datetime.fromtimestamp(value / 1000, timezone.utc))
