"""Zoned time helpers shared by the buffer, the stats and the report heading.

Every conversion from an epoch-millisecond timestamp to a wall-clock value
goes through this module so local-hour bucketing and display always agree.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone, tzinfo

from dateutil import tz as dateutil_tz

from chat_digest.exceptions import ConfigurationError


def resolve_timezone(name: str) -> tzinfo:
    """Resolve an IANA zone id such as ``America/Sao_Paulo``."""
    zone = dateutil_tz.gettz(name) if name else None
    if zone is None:
        raise ConfigurationError(f"Unknown time zone: {name!r}")
    return zone


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


def to_local(timestamp_ms: int, tz: tzinfo) -> datetime:
    """Aware datetime for an epoch-millisecond timestamp in ``tz``."""
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).astimezone(tz)


def utc_bucket_date(timestamp_ms: int) -> str:
    """ISO calendar date (UTC) used to name buffer buckets."""
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).strftime("%Y-%m-%d")


def format_hhmm(timestamp_ms: int, tz: tzinfo) -> str:
    return to_local(timestamp_ms, tz).strftime("%H:%M")


def format_date(timestamp_ms: int, tz: tzinfo) -> str:
    return to_local(timestamp_ms, tz).strftime("%d/%m/%Y")


def format_datetime(timestamp_ms: int, tz: tzinfo) -> str:
    return to_local(timestamp_ms, tz).strftime("%d/%m/%Y %H:%M:%S")
