"""
Business-day clock.

Maps UTC instants to calendar days and minute-of-day keys in the business
timezone, and maps a business day back to the half-open UTC interval that
covers it. Every other component consumes only these outputs, so nothing
outside this module deals with UTC offsets.
"""

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .exceptions import ConfigurationError, InvalidTimestamp

DEFAULT_BUSINESS_TIMEZONE = "America/New_York"

DAY_FORMAT = "%Y-%m-%d"
MINUTE_FORMAT = "%H:%M"

MINUTES_PER_DAY = 24 * 60
HALF_DAY_MINUTES = 12 * 60


class BusinessDayClock:
    """
    Clock bound to a single business timezone.

    Local calendar components are obtained by rendering an instant in the
    zone; offsets are never looked up directly.
    """

    def __init__(self, timezone_name: str = DEFAULT_BUSINESS_TIMEZONE):
        """
        Initialize the clock.

        Args:
            timezone_name: IANA name of the business timezone

        Raises:
            ConfigurationError: If the zone cannot be loaded
        """
        try:
            self.zone = ZoneInfo(timezone_name)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ConfigurationError(f"Unknown business timezone: {timezone_name}") from e
        self.timezone_name = timezone_name

    def _render(self, instant: datetime) -> datetime:
        """Render an aware instant in the business timezone."""
        if not isinstance(instant, datetime):
            raise InvalidTimestamp(f"Not a datetime: {instant!r}")
        if instant.tzinfo is None or instant.utcoffset() is None:
            raise InvalidTimestamp(f"Timestamp has no UTC offset: {instant.isoformat()}")
        try:
            return instant.astimezone(self.zone)
        except (OverflowError, ValueError) as e:
            raise InvalidTimestamp(f"Cannot render {instant!r} in {self.timezone_name}") from e

    def to_business_day(self, instant: datetime) -> str:
        """Return the business-local calendar day, e.g. ``2025-12-12``."""
        return self._render(instant).strftime(DAY_FORMAT)

    def to_business_minute(self, instant: datetime) -> str:
        """Return the business-local time of day as ``HH:MM``."""
        return self._render(instant).strftime(MINUTE_FORMAT)

    def localize(self, naive: datetime) -> datetime:
        """Attach the business timezone to a naive wall-clock datetime."""
        return naive.replace(tzinfo=self.zone)

    def _offset_minutes(self, utc_midnight: datetime) -> int:
        """
        Signed offset (minutes east of UTC) observed at a UTC midnight.

        West of UTC the zone reads e.g. 19:00 on the previous day at 00:00Z;
        readings past noon are folded into negative offsets.
        """
        local = self._render(utc_midnight)
        minutes = local.hour * 60 + local.minute
        if minutes > HALF_DAY_MINUTES:
            return minutes - MINUTES_PER_DAY
        return minutes

    def business_day_to_utc_range(self, day: str) -> tuple[datetime, datetime]:
        """
        Map a business day to the UTC instants covering ``[00:00, 24:00)``.

        Each boundary uses the offset observed for its own calendar day, so
        days at daylight-saving transitions come out 23 or 25 hours long.

        Args:
            day: Business day as ``YYYY-MM-DD``

        Returns:
            Tuple of (start, end) aware UTC datetimes

        Raises:
            InvalidTimestamp: If the day string is malformed
        """
        local_day = parse_day(day)
        next_day = local_day + timedelta(days=1)

        start_midnight = datetime(
            local_day.year, local_day.month, local_day.day, tzinfo=timezone.utc
        )
        end_midnight = datetime(next_day.year, next_day.month, next_day.day, tzinfo=timezone.utc)

        start = start_midnight - timedelta(minutes=self._offset_minutes(start_midnight))
        end = end_midnight - timedelta(minutes=self._offset_minutes(end_midnight))
        return start, end

    def business_day_start(self, day: str) -> datetime:
        """UTC instant at which the business day begins."""
        return self.business_day_to_utc_range(day)[0]


def parse_day(day: str) -> date:
    """
    Parse a ``YYYY-MM-DD`` day key.

    Raises:
        InvalidTimestamp: If the value is not a valid day
    """
    try:
        return datetime.strptime(str(day).strip(), DAY_FORMAT).date()
    except ValueError as e:
        raise InvalidTimestamp(f"Invalid day '{day}', expected YYYY-MM-DD") from e
