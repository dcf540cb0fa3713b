"""Pick the quick times that are active right now.

UK wall-clock time is worked out from UTC with the summer time rules rather
than a timezone database, which may not be available on the host.
"""

import logging
from collections.abc import Iterable
from datetime import date, datetime, timedelta, timezone
from typing import NamedTuple

from .const import MAX_ACTIVE_QUICK_TIMES
from .store import QuickTime

_LOGGER = logging.getLogger(__name__)

BST_OFFSET = timedelta(hours=1)


class TooManyActiveQuickTimesError(Exception):
    """More quick times matched than there are board slots."""


class ActiveQuickTimes(NamedTuple):
    """Matched quick times in list order, and how many there are."""

    quick_times: list[QuickTime]
    count: int

    def check(self) -> "ActiveQuickTimes":
        """Raise if the slot cap was exceeded."""
        if self.count > MAX_ACTIVE_QUICK_TIMES:
            raise TooManyActiveQuickTimesError(
                f"{self.count} quick times active, at most {MAX_ACTIVE_QUICK_TIMES} expected"
            )
        return self


def last_sunday_of_month(year: int, month: int) -> date:
    """Last Sunday of the given month."""
    if month == 12:
        first_of_next = date(year + 1, 1, 1)
    else:
        first_of_next = date(year, month + 1, 1)
    day = first_of_next - timedelta(days=1)
    while day.weekday() != 6:  # Sunday
        day -= timedelta(days=1)
    return day


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def is_uk_summer_time(now_utc: datetime) -> bool:
    """True between 01:00 UTC on the last Sundays of March and October.

    Start is inclusive, end exclusive. Naive datetimes are taken as UTC.
    """
    now_utc = _as_utc(now_utc)
    year = now_utc.year
    start = datetime.combine(last_sunday_of_month(year, 3), datetime.min.time()).replace(
        hour=1, tzinfo=timezone.utc
    )
    end = datetime.combine(last_sunday_of_month(year, 10), datetime.min.time()).replace(
        hour=1, tzinfo=timezone.utc
    )
    return start <= now_utc < end


def uk_now(now_utc: datetime | None = None) -> datetime:
    """UK wall-clock time as a naive datetime."""
    now_utc = _as_utc(now_utc or datetime.now(timezone.utc))
    if is_uk_summer_time(now_utc):
        now_utc += BST_OFFSET
    return now_utc.replace(tzinfo=None)


def weekday_index(moment: datetime | date) -> int:
    """0 for Sunday through 6 for Saturday."""
    return moment.isoweekday() % 7


def resolve_active_quick_times(
    quick_times: Iterable[QuickTime], now: datetime
) -> ActiveQuickTimes:
    """Select quick times whose day and [start, end) window contain now.

    Scanning stops at the second match; later quick times are not looked at.

    Args:
        quick_times: Candidates in display order
        now: Local wall-clock time (see uk_now)
    """
    today = weekday_index(now)
    active: list[QuickTime] = []

    for qt in quick_times:
        if today not in qt.days:
            continue
        start = datetime.combine(now.date(), qt.start_time, tzinfo=now.tzinfo)
        end = datetime.combine(now.date(), qt.end_time, tzinfo=now.tzinfo)
        if start <= now < end:
            active.append(qt)
            if len(active) == MAX_ACTIVE_QUICK_TIMES:
                break

    _LOGGER.debug("%d quick times active at %s", len(active), now.strftime("%a %H:%M"))
    return ActiveQuickTimes(active, len(active))
