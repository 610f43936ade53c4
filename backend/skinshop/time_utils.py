from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo


# VNPay expects wall-clock timestamps in Vietnam local time
GATEWAY_TIMEZONE = ZoneInfo("Asia/Ho_Chi_Minh")
GATEWAY_DATE_FORMAT = "%Y%m%d%H%M%S"


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)

    if dt.tzinfo is None:
        return dt.replace(tzinfo=None)

    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def to_gateway_timestamp(dt: datetime) -> str:
    """
    Format a UTC-naive datetime as the gateway's yyyyMMddHHmmss local time.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(GATEWAY_TIMEZONE).strftime(GATEWAY_DATE_FORMAT)


def parse_gateway_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Inverse of to_gateway_timestamp; returns UTC-naive or None."""
    if not value:
        return None
    local = datetime.strptime(value, GATEWAY_DATE_FORMAT).replace(tzinfo=GATEWAY_TIMEZONE)
    return local.astimezone(timezone.utc).replace(tzinfo=None)
