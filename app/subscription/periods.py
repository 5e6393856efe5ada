"""Calendar arithmetic for subscription terms."""

from __future__ import annotations

import calendar
from datetime import datetime
from typing import Optional


def add_months(dt: datetime, months: int) -> datetime:
    """Shift ``dt`` by whole months, clamping the day to the target month's length."""

    month = dt.month - 1 + months
    year = dt.year + month // 12
    month = month % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


def expiry_for(start: datetime, duration_months: Optional[int]) -> Optional[datetime]:
    if not duration_months:
        return None
    return add_months(start, duration_months)
