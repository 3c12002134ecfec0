from __future__ import annotations

import math
import re
from datetime import date, datetime, timezone
from typing import Any, Optional

from dateutil import parser as date_parser

COMPACT_DATE = re.compile(r"^\d{8}$")
ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}")
TIMESTAMP_12H = re.compile(r"^(\d{8}) (\d{1,2}):(\d{2}):(\d{2}) ?([AaPp][Mm])$")
TIMESTAMP_24H = re.compile(r"^(\d{8}) (\d{2}):(\d{2}):(\d{2})")


def to_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def to_number(value: Any) -> Optional[float]:
    text = to_text(value)
    if text is None:
        return None
    try:
        number = float(text.replace(",", ""))
    except ValueError:
        return None
    # "nan" and "inf" parse as floats but are not quantities
    return number if math.isfinite(number) else None


def to_int(value: Any) -> Optional[int]:
    number = to_number(value)
    if number is None:
        return None
    return int(number)


def to_digits(value: Any) -> Optional[int]:
    """Integer only for a purely digit string."""

    text = to_text(value)
    if text is None or not text.isdigit():
        return None
    return int(text)


def parse_date(value: Any) -> Optional[date]:
    text = to_text(value)
    if text is None:
        return None
    try:
        if COMPACT_DATE.match(text):
            return datetime.strptime(text, "%Y%m%d").date()
        if ISO_DATE.match(text):
            return datetime.strptime(text[:10], "%Y-%m-%d").date()
        return date_parser.parse(text).date()
    except (ValueError, OverflowError):
        return None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """DMS timestamps: ``YYYYMMDD hh:mm:ss AM`` or ``YYYYMMDD HH:MM:SS``, taken as UTC."""

    text = to_text(value)
    if text is None:
        return None
    match = TIMESTAMP_12H.match(text)
    try:
        if match:
            day, hour, minute, second, meridiem = match.groups()
            hour_value = int(hour) % 12
            if meridiem.upper() == "PM":
                hour_value += 12
            base = datetime.strptime(day, "%Y%m%d")
            return base.replace(hour=hour_value, minute=int(minute), second=int(second), tzinfo=timezone.utc)
        match = TIMESTAMP_24H.match(text)
        if match:
            day, hour, minute, second = match.groups()
            base = datetime.strptime(day, "%Y%m%d")
            return base.replace(hour=int(hour), minute=int(minute), second=int(second), tzinfo=timezone.utc)
    except ValueError:
        return None
    return None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
