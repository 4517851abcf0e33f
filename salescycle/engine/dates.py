from __future__ import annotations

import re
from datetime import date, datetime, timezone, tzinfo
from typing import Any, Optional
from zoneinfo import ZoneInfo

_FRACTION_RE = re.compile(r"\.(\d+)")


def _six_digit_fraction(match: re.Match) -> str:
    return "." + (match.group(1) + "000000")[:6]


def report_tz(name: str) -> tzinfo:
    if not name or name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def today_in(tz: tzinfo) -> date:
    return datetime.now(tz).date()


def parse_date(value: Any, tz: Optional[tzinfo] = None) -> Optional[date]:
    """
    Calendar date of an AccuLynx timestamp in the report timezone.

    Aware timestamps are converted to tz; naive ones are taken as-is.
    Blank or unparseable values give None.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    txt = value.strip()
    if txt.endswith("Z"):
        txt = txt[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(txt)
    except ValueError:
        # AccuLynx sends 7-digit fractions; older fromisoformat wants exactly 6
        try:
            dt = datetime.fromisoformat(_FRACTION_RE.sub(_six_digit_fraction, txt, count=1))
        except ValueError:
            try:
                return date.fromisoformat(txt[:10])
            except ValueError:
                return None
    if dt.tzinfo is not None and tz is not None:
        dt = dt.astimezone(tz)
    return dt.date()


def is_current_year(value: Any, today: date, tz: Optional[tzinfo] = None) -> bool:
    d = parse_date(value, tz)
    return d is not None and d.year == today.year


def is_current_month(value: Any, today: date, tz: Optional[tzinfo] = None) -> bool:
    d = parse_date(value, tz)
    return d is not None and d.year == today.year and d.month == today.month
