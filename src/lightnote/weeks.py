"""ISO week arithmetic.

Weeks start on Monday. A week belongs to the ISO year of its Thursday,
which is how ``YYYY-Www`` keys stay in agreement with calendar apps
around New Year.
"""

from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta

from pydantic import BaseModel

_WEEK_KEY_RE = re.compile(r"^(\d{4})-W(\d{2})$")


class WeekRange(BaseModel):
    """Half-open interval ``[start, end)`` covering one ISO week."""

    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= _local_naive(moment) < self.end


def _local_naive(moment: date | datetime) -> datetime:
    if isinstance(moment, datetime):
        if moment.tzinfo is not None:
            moment = moment.astimezone().replace(tzinfo=None)
        return moment
    return datetime.combine(moment, time.min)


def start_of_day(moment: date | datetime) -> datetime:
    """Truncate to local midnight."""
    return datetime.combine(_local_naive(moment).date(), time.min)


def monday_of_week(moment: date | datetime) -> datetime:
    """Midnight on the Monday of the week containing ``moment``."""
    day = start_of_day(moment)
    return day - timedelta(days=day.weekday())


def week_key(moment: date | datetime) -> str:
    """ISO week key (``YYYY-Www``) for the week containing ``moment``."""
    thursday = monday_of_week(moment) + timedelta(days=3)
    week = (thursday.timetuple().tm_yday - 1) // 7 + 1
    return f"{thursday.year}-W{week:02d}"


def weeks_in_year(year: int) -> int:
    """52 or 53. Dec 28 always falls in the last ISO week of its year."""
    return int(week_key(date(year, 12, 28))[-2:])


def parse_week_key(key: str) -> tuple[int, int]:
    """Split a week key into ``(year, week)``.

    Raises:
        ValueError: If the key is malformed or names a week the ISO year
            does not have.
    """
    match = _WEEK_KEY_RE.match(key or "")
    if not match:
        raise ValueError(f"Malformed week key: {key!r}")
    year, week = int(match.group(1)), int(match.group(2))
    if year < 1 or not 1 <= week <= weeks_in_year(year):
        raise ValueError(f"Week out of range: {key!r}")
    return year, week


def week_range_from_key(key: str) -> WeekRange:
    """Inverse of :func:`week_key`; ``end`` is the following Monday."""
    year, week = parse_week_key(key)
    jan4 = date(year, 1, 4)
    start = monday_of_week(jan4) + timedelta(weeks=week - 1)
    return WeekRange(start=start, end=start + timedelta(days=7))


def prev_week_key(key: str) -> str:
    start = week_range_from_key(key).start
    return week_key(start - timedelta(days=1))


def next_week_key(key: str) -> str:
    return week_key(week_range_from_key(key).end)


def in_week(moment: datetime, key: str) -> bool:
    return week_range_from_key(key).contains(moment)
