from __future__ import annotations

import datetime
import logging
import re
from email.utils import parsedate_to_datetime
from functools import lru_cache
from typing import Optional

from dateutil import parser as dateutil_parser

logger = logging.getLogger(__name__)

_UTC = datetime.timezone.utc
# Fills date parts missing from partial inputs such as "May 2024"
_DATEUTIL_DEFAULT = datetime.datetime(1970, 1, 1)

_RE_WHITESPACE = re.compile(r"\s+")
_RE_FEB29 = re.compile(r"(\d{4})-02-29")
_RE_HOUR24 = re.compile(r"(\d{4}-\d{2}-\d{2})[T ]24:(\d{2}):(\d{2})")
_RE_ISO_TZ_NO_COLON = re.compile(r"([+-]\d{2})(\d{2})$")
_RE_ISO_TZ_HOUR_ONLY = re.compile(r"([+-]\d{2})$")
_RE_ISO_FRACTION = re.compile(r"\.(\d{7,})(?=(?:[+-]\d{2}:?\d{2}|Z|$))", re.IGNORECASE)
_RE_RFC822 = re.compile(
    r"(?:\w{3},\s+)?(\d{1,2})\s+(\w{3})\s+(\d{4})\s+(\d{2}):(\d{2}):(\d{2})\s+([+-]\d{4}|[A-Z]{2,5})"
)
_MONTHS_RFC822: dict[str, int] = {
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}

# Offsets in seconds for timezone names seen in the wild
_custom_tzinfos: dict[str, int] = {
    "UTC": 0,
    "UT": 0,
    "GMT": 0,
    "Z": 0,
    "WET": 0,
    "WEST": 3600,
    "BST": 3600,
    "CET": 3600,
    "CEST": 7200,
    "EET": 7200,
    "EEST": 10800,
    "MSK": 10800,
    "IST": 19800,
    "PST": -28800,
    "PDT": -25200,
    "MST": -25200,
    "MDT": -21600,
    "CST": -21600,
    "CDT": -18000,
    "EST": -18000,
    "EDT": -14400,
    "AKST": -32400,
    "AKDT": -28800,
    "HST": -36000,
    "AEST": 36000,
    "AEDT": 39600,
    "ACST": 34200,
    "ACDT": 37800,
    "AWST": 28800,
    "NZST": 43200,
    "NZDT": 46800,
    "JST": 32400,
    "KST": 32400,
    "SGT": 28800,
}


def _trim_fraction(value: str) -> str:
    """Cut fractional seconds to the six digits datetime supports."""
    return _RE_ISO_FRACTION.sub(lambda m: "." + m.group(1)[:6], value, count=1)


def _normalize_iso_datetime_string(value: str) -> str:
    """Coerce flexible ISO-8601 inputs into a form datetime.fromisoformat can parse."""
    cleaned = value.strip()
    if not cleaned:
        return cleaned

    if cleaned[-1] in ("Z", "z"):
        return _trim_fraction(cleaned[:-1] + "+00:00")

    if len(cleaned) > 6 and cleaned[-6] in ("+", "-") and cleaned[-3] == ":":
        return _trim_fraction(cleaned)

    upper_cleaned = cleaned.upper()
    for suffix in (" UTC", " GMT", " Z"):
        if upper_cleaned.endswith(suffix):
            cleaned = cleaned[: -len(suffix)].rstrip() + "+00:00"
            break

    if (
        " " in cleaned
        and "T" not in cleaned[:11]
        and len(cleaned) >= 10
        and cleaned[4] == "-"
        and cleaned[0:4].isdigit()
    ):
        date_part, rest = cleaned.split(" ", 1)
        if rest and rest[0].isdigit():
            cleaned = f"{date_part}T{rest}"

    match = _RE_ISO_TZ_NO_COLON.search(cleaned)
    if match and "T" in cleaned:
        cleaned = cleaned[:-5] + f"{match.group(1)}:{match.group(2)}"
    else:
        match = _RE_ISO_TZ_HOUR_ONLY.search(cleaned)
        if match and "T" in cleaned:
            cleaned = cleaned[:-3] + f"{match.group(1)}:00"

    return _trim_fraction(cleaned)


def _ensure_utc(dt: datetime.datetime) -> Optional[datetime.datetime]:
    """Return a timezone-aware datetime normalized to UTC."""
    try:
        return dt.replace(tzinfo=_UTC) if dt.tzinfo is None else dt.astimezone(_UTC)
    except (ValueError, OverflowError):
        return None


def _fast_rfc822(value: str) -> Optional[datetime.datetime]:
    """Match the common RFC-822 shape directly, skipping the slower parsers."""
    m = _RE_RFC822.match(value)
    if not m:
        return None
    day, mon_str, year, hour, minute, second, tz = m.groups()
    month = _MONTHS_RFC822.get(mon_str.lower())
    if month is None:
        return None
    if tz[0] in "+-":
        offset = (int(tz[1:3]) * 3600 + int(tz[3:5]) * 60) * (1 if tz[0] == "+" else -1)
    else:
        offset = _custom_tzinfos.get(tz)
        if offset is None:
            return None
    # Python requires offset strictly between -24h and +24h
    if not (-86400 < offset < 86400):
        return None
    h = int(hour)
    try:
        base = datetime.date(int(year), month, int(day))
    except ValueError:
        return None
    # Hour 24 rolls over to midnight of the next day
    if h == 24:
        base += datetime.timedelta(days=1)
        h = 0
    try:
        dt = datetime.datetime(
            base.year,
            base.month,
            base.day,
            h,
            int(minute),
            int(second),
            tzinfo=datetime.timezone(datetime.timedelta(seconds=offset)),
        )
    except ValueError:
        return None
    return _ensure_utc(dt)


def _parsedate_to_utc(value: str) -> Optional[datetime.datetime]:
    """RFC-822 / RFC-2822 parsing via email.utils (fallback)."""
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if parsed is None:
        return None
    return _ensure_utc(parsed)


def _dateutil_parse(value: str) -> Optional[datetime.datetime]:
    try:
        parsed = dateutil_parser.parse(
            value, default=_DATEUTIL_DEFAULT, tzinfos=_custom_tzinfos, ignoretz=False
        )
    except (ValueError, TypeError, OverflowError):
        return None
    return _ensure_utc(parsed)


@lru_cache(maxsize=8192)
def parse_date(date_str: str) -> Optional[datetime.datetime]:
    """Parse a feed date string into a UTC datetime.

    Args:
        date_str: Date string in any common format (ISO-8601, RFC-822, ...)

    Returns:
        Timezone-aware UTC datetime, or None when parsing fails
    """
    if not date_str:
        return None

    candidate = date_str.strip()
    if not candidate:
        return None

    # Fast path: clean ISO-8601 (covers most Atom and modern RSS dates)
    if len(candidate) >= 20 and candidate[4] == "-" and candidate[0:4].isdigit():
        try:
            return _ensure_utc(
                datetime.datetime.fromisoformat(_normalize_iso_datetime_string(candidate))
            )
        except ValueError:
            pass

    if "\n" in candidate or "\r" in candidate or "\t" in candidate or "  " in candidate:
        candidate = _RE_WHITESPACE.sub(" ", candidate)

    # Fix invalid leap year dates (Feb 29 in non-leap years)
    if "-02-29" in candidate:
        year_match = _RE_FEB29.match(candidate)
        if year_match:
            year = int(year_match.group(1))
            if not ((year % 4 == 0 and year % 100 != 0) or (year % 400 == 0)):
                candidate = candidate.replace(f"{year}-02-29", f"{year}-02-28")

    if "T24:" in candidate or " 24:" in candidate:
        m24 = _RE_HOUR24.search(candidate)
        if m24:
            try:
                next_day = datetime.date.fromisoformat(m24.group(1)) + datetime.timedelta(
                    days=1
                )
            except ValueError:
                next_day = None
            if next_day is not None:
                candidate = (
                    candidate[: m24.start()]
                    + f"{next_day}T00:{m24.group(2)}:{m24.group(3)}"
                    + candidate[m24.end() :]
                )

    if len(candidate) >= 10 and candidate[4] == "-" and candidate[0:4].isdigit():
        try:
            dt = datetime.datetime.fromisoformat(_normalize_iso_datetime_string(candidate))
        except ValueError:
            dt = None
        if dt is not None:
            utc_dt = _ensure_utc(dt)
            if utc_dt is not None:
                return utc_dt

    for parser in (_fast_rfc822, _parsedate_to_utc, _dateutil_parse):
        result = parser(candidate)
        if result is not None:
            return result

    logger.debug("Could not parse date %r", date_str)
    return None
