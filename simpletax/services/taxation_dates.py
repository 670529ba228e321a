"""Time zone parsing and conversion helpers for taxation dates."""

import re
from datetime import UTC, date, datetime, time, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

_OFFSET_PATTERN = re.compile(r"^(?P<sign>[+-])(?P<hours>\d{2})(?::?(?P<minutes>\d{2}))?$")


def parse_time_zone(value: str) -> tzinfo:
    """Parse an IANA zone name (``Europe/Paris``) or a fixed offset (``Z``, ``+02:00``).

    Raises:
        ValueError: if the value designates no known zone or offset.
    """
    value = value.strip()
    if value in ("Z", "z"):
        return UTC

    match = _OFFSET_PATTERN.match(value)
    if match:
        hours = int(match.group("hours"))
        minutes = int(match.group("minutes") or 0)
        if hours > 23 or minutes > 59:
            raise ValueError(f"Invalid time zone offset [{value}]")
        offset = timedelta(hours=hours, minutes=minutes)
        if match.group("sign") == "-":
            offset = -offset
        return timezone(offset)

    try:
        return ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        raise ValueError(f"Unknown time zone [{value}]") from None


def time_zone_name(zone: tzinfo | None) -> str | None:
    """Return the textual form of a zone, as accepted back by ``parse_time_zone``."""
    if zone is None:
        return None
    if isinstance(zone, ZoneInfo):
        return zone.key
    if zone is UTC:
        return "Z"
    offset = zone.utcoffset(None)
    if offset is None:
        return str(zone)
    total_minutes = int(offset.total_seconds()) // 60
    sign = "-" if total_minutes < 0 else "+"
    hours, minutes = divmod(abs(total_minutes), 60)
    return f"{sign}{hours:02d}:{minutes:02d}"


def convert_time_zone(day: date, origin: tzinfo, target: tzinfo) -> date:
    """Return the date, in ``target``, of the first instant of ``day`` in ``origin``."""
    start_of_day = datetime.combine(day, time.min, tzinfo=origin)
    return start_of_day.astimezone(target).date()
