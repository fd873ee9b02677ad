"""
Timezone utilities for aligning exchange-local timestamps with chart time.

The chart renders bar times with local-interpreted-as-UTC semantics, so every
timestamp handed to it carries the viewer's UTC offset on top of the true
epoch. Pattern timestamps arrive as US Eastern wall-clock (yyyymmdd, hhmm)
pairs and must be shifted the same way to land on the right candle.
"""
from datetime import datetime, timedelta
from typing import Optional, Union
from zoneinfo import ZoneInfo

EXCHANGE_TIMEZONE = ZoneInfo("America/New_York")
UTC = ZoneInfo("UTC")

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_ONE_MS = timedelta(milliseconds=1)


def decode_date(yyyymmdd: int) -> tuple[int, int, int]:
    """Split an 8-digit yyyymmdd integer into (year, month, day)."""
    return yyyymmdd // 10000, (yyyymmdd % 10000) // 100, yyyymmdd % 100


def decode_time(hhmm: int) -> tuple[int, int]:
    """Split a 4-digit hhmm integer into (hour, minute)."""
    return hhmm // 100, hhmm % 100


def exchange_offset(year: int, month: int, day: int) -> timedelta:
    """
    Offset to add to an Eastern wall-clock time to get UTC on a given date.

    Renders noon UTC of that date in Eastern time and in UTC and returns the
    difference: 5h during standard time, 4h during daylight saving. The offset
    is resolved per calendar date, not per instant, so times inside the
    one-hour transition window get the day's noon offset.
    """
    reference = datetime(year, month, day, 12, 0, 0, tzinfo=UTC)
    exchange_wall = reference.astimezone(EXCHANGE_TIMEZONE).replace(tzinfo=None)
    utc_wall = reference.replace(tzinfo=None)
    return utc_wall - exchange_wall


def viewer_utc_offset(tz: Optional[ZoneInfo] = None) -> timedelta:
    """
    UTC offset of the viewer as observed right now.

    Args:
        tz: Explicit viewer timezone (None for the system local zone)

    Returns:
        Offset east of UTC (e.g. +2h for Africa/Johannesburg)
    """
    now = datetime.now(tz) if tz is not None else datetime.now().astimezone()
    return now.utcoffset() or timedelta(0)


def _to_epoch_ms(dt: datetime) -> int:
    return (dt - _EPOCH) // _ONE_MS


def pattern_to_timestamp(
    yyyymmdd: int,
    hhmm: int,
    local_offset: Optional[timedelta] = None
) -> int:
    """
    Convert an Eastern (yyyymmdd, hhmm) pair to chart time in seconds.

    Args:
        yyyymmdd: Exchange-local date, e.g. 20240315
        hhmm: Exchange-local time, e.g. 930
        local_offset: Viewer UTC offset (None to observe it at call time)

    Returns:
        Shifted epoch seconds matching the chart bar convention

    Raises:
        ValueError: If the date or time does not exist on the calendar
    """
    year, month, day = decode_date(yyyymmdd)
    hour, minute = decode_time(hhmm)

    # Wall-clock read as if it were UTC, then moved to the true instant
    as_utc = datetime(year, month, day, hour, minute, 0, tzinfo=UTC)
    true_utc_ms = _to_epoch_ms(as_utc + exchange_offset(year, month, day))

    if local_offset is None:
        local_offset = viewer_utc_offset()

    return (true_utc_ms + local_offset // _ONE_MS) // 1000


def to_chart_time(
    bar_datetime: Union[str, datetime],
    local_offset: Optional[timedelta] = None
) -> int:
    """
    Convert a bar datetime from the data service to chart time in seconds.

    Aware values keep their own offset; naive values are Eastern wall-clock.
    """
    if isinstance(bar_datetime, str):
        bar_datetime = datetime.fromisoformat(bar_datetime.replace("Z", "+00:00"))

    if bar_datetime.tzinfo is None:
        bar_datetime = bar_datetime.replace(tzinfo=EXCHANGE_TIMEZONE)

    if local_offset is None:
        local_offset = viewer_utc_offset()

    return (_to_epoch_ms(bar_datetime) + local_offset // _ONE_MS) // 1000


class TimezoneConverter:
    """Handles chart-time conversions for a fixed or system-local viewer zone"""

    def __init__(self, viewer_timezone: Optional[str] = None):
        """
        Initialize timezone converter.

        Args:
            viewer_timezone: IANA timezone name (None for the system local zone)
        """
        self.viewer_timezone = viewer_timezone
        self.tz = ZoneInfo(viewer_timezone) if viewer_timezone else None

    def local_offset(self) -> timedelta:
        """Current viewer UTC offset"""
        return viewer_utc_offset(self.tz)

    def pattern_to_timestamp(self, yyyymmdd: int, hhmm: int) -> int:
        return pattern_to_timestamp(yyyymmdd, hhmm, self.local_offset())

    def to_chart_time(self, bar_datetime: Union[str, datetime]) -> int:
        return to_chart_time(bar_datetime, self.local_offset())

    def utc_to_local(self, utc_dt: datetime) -> datetime:
        """
        Convert UTC datetime to the viewer timezone.

        Args:
            utc_dt: UTC datetime (naive or aware)

        Returns:
            Datetime in viewer timezone
        """
        if utc_dt.tzinfo is None:
            # Assume naive datetime is UTC
            utc_dt = utc_dt.replace(tzinfo=UTC)

        return utc_dt.astimezone(self.tz) if self.tz is not None else utc_dt.astimezone()

    def format_local(self, utc_dt: datetime, fmt: str = "%I:%M:%S %p") -> str:
        """Format UTC datetime as a viewer-local clock string"""
        return self.utc_to_local(utc_dt).strftime(fmt)

    def now_local(self) -> datetime:
        """Get current time in viewer timezone"""
        return self.utc_to_local(self.now_utc())

    def now_utc(self) -> datetime:
        """Get current time in UTC"""
        return datetime.now(UTC)
