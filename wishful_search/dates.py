from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Optional

YEAR_RE = re.compile(r"^\d{4}$")

# Tried in order after ISO-8601
DATE_FORMATS = [
    "%Y/%m/%d",
    "%Y/%m/%d %H:%M:%S",
    "%m/%d/%Y",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%Y-%m",
]


def _naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_date_value(value: str) -> Optional[datetime]:
    """Parse a stored column value as a datetime, or None when it isn't one."""
    s = (value or "").strip()
    if not s:
        return None
    if YEAR_RE.match(s):
        return datetime(int(s), 1, 1)
    try:
        return _naive_utc(datetime.fromisoformat(s.replace("Z", "+00:00")))
    except ValueError:
        pass
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt)
        except ValueError:
            continue
    return None


def to_iso(dt: datetime) -> str:
    return dt.isoformat()


def today_str(today: Optional[date] = None) -> str:
    d = today or date.today()
    return d.strftime("%Y-%m-%d")
