"""Time helpers (UTC, canonical epoch seconds)."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Union

from dateutil import parser as date_parser

# Numbers above this are epoch milliseconds, below are epoch seconds.
MS_THRESHOLD = 10_000_000_000

RawTime = Union[int, float, str, datetime, None]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def now_seconds() -> int:
    return int(utc_now().timestamp())


def now_ms() -> int:
    return int(utc_now().timestamp() * 1000)


def normalize_time(raw: RawTime = None) -> int:
    """Return `raw` as integer epoch seconds.

    Numbers greater than 10,000,000,000 are read as milliseconds. Numeric
    strings are read as numbers; other strings go through dateutil, so ISO-8601,
    "2024/01/02" and RFC 2822 dates all work (naive values are UTC). None
    means "now". Unparseable input raises ValueError.
    """
    if isinstance(raw, bool):
        raise TypeError("bool is not a valid time")
    if isinstance(raw, (int, float)):
        if not math.isfinite(raw):
            raise ValueError(f"Non-finite time value: {raw!r}")
        if raw > MS_THRESHOLD:
            return int(math.floor(raw / 1000))
        return int(math.floor(raw))
    if isinstance(raw, datetime):
        dt = raw if raw.tzinfo else raw.replace(tzinfo=timezone.utc)
        return int(math.floor(dt.timestamp()))
    if isinstance(raw, str):
        text = raw.strip()
        try:
            number = float(text)
        except ValueError:
            return normalize_time(date_parser.parse(text))
        return normalize_time(number)
    if raw is None:
        return now_seconds()
    raise TypeError(f"Unsupported time value: {raw!r}")
