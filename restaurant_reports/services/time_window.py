"""Resolve report period keywords into concrete time windows."""

from __future__ import annotations

import calendar
import logging
from datetime import datetime, time, timedelta, timezone, tzinfo
from math import ceil
from typing import NamedTuple, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from restaurant_reports.config.settings import REPORT_TIMEZONE

logger = logging.getLogger(__name__)

PERIODS = ("today", "yesterday", "week", "month", "quarter", "year", "custom")
DEFAULT_PERIOD = "month"
END_OF_DAY = time(23, 59, 59, 999000)


class InvalidTimeWindow(ValueError):
    """Raised for unknown periods or inverted custom ranges."""


class TimeWindow(NamedTuple):
    start: datetime
    end: datetime

    @property
    def days_spanned(self) -> int:
        seconds = (self.end - self.start).total_seconds()
        if seconds <= 0:
            return 0
        return ceil(seconds / 86400)

    def previous(self) -> "TimeWindow":
        """The window of equal length ending where this one starts."""

        length = self.end - self.start
        return TimeWindow(self.start - length, self.start)

    def contains(self, instant: Optional[datetime]) -> bool:
        return instant is not None and self.start <= instant <= self.end


def resolve_timezone(value: Union[str, tzinfo, None] = None) -> tzinfo:
    if isinstance(value, tzinfo):
        return value
    name = value or REPORT_TIMEZONE
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown report timezone %s, falling back to UTC", name)
        return timezone.utc


def resolve_time_window(
    period: Optional[str] = DEFAULT_PERIOD,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
    tz: Union[str, tzinfo, None] = None,
) -> TimeWindow:
    """Turn a period keyword into a ``[start, end]`` pair.

    ``start_date``/``end_date`` are only read for ``custom``; a missing or
    unparsable bound leaves the default (``now``) in place.
    """

    zone = resolve_timezone(tz)
    current = (now or datetime.now(timezone.utc)).astimezone(zone)
    keyword = (period or DEFAULT_PERIOD).strip().lower()

    start = current
    end = current
    if keyword == "today":
        start = current.replace(hour=0, minute=0, second=0, microsecond=0)
    elif keyword == "yesterday":
        day = current.date() - timedelta(days=1)
        start = datetime.combine(day, time.min, tzinfo=zone)
        end = datetime.combine(day, END_OF_DAY, tzinfo=zone)
    elif keyword == "week":
        start = current - timedelta(days=7)
    elif keyword == "month":
        start = shift_months(current, -1)
    elif keyword == "quarter":
        start = shift_months(current, -3)
    elif keyword == "year":
        start = shift_months(current, -12)
    elif keyword == "custom":
        start = _parse_bound(start_date, zone, label="startDate") or start
        end = _parse_bound(end_date, zone, label="endDate") or end
    else:
        raise InvalidTimeWindow(f"Invalid report period: {period}")

    if start > end:
        raise InvalidTimeWindow("startDate must be on or before endDate")
    return TimeWindow(start, end)


def shift_months(value: datetime, months: int) -> datetime:
    """Move by calendar months, clamping to the last day of the month."""

    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def _parse_bound(value: Optional[str], zone: tzinfo, *, label: str) -> Optional[datetime]:
    if not value or not value.strip():
        return None
    raw = value.strip()
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00") if raw.endswith("Z") else raw)
    except ValueError:
        try:
            parsed = datetime.strptime(raw, "%Y-%m-%d")
        except ValueError:
            logger.warning("Ignoring unparsable %s=%r", label, value)
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=zone)
    return parsed


__all__ = [
    "DEFAULT_PERIOD",
    "InvalidTimeWindow",
    "PERIODS",
    "TimeWindow",
    "resolve_time_window",
    "resolve_timezone",
    "shift_months",
]
