"""
Business day adjustment for income occurrences.

Paychecks that fall on a weekend or bank holiday are paid on the
previous business day. Other obligation kinds keep their nominal date.
"""
from datetime import date, datetime, timedelta
from typing import FrozenSet, Iterable, Optional, Union

from cadence.config import settings
from cadence.schedule.models import ObligationKind, to_day

SATURDAY = 5
SUNDAY = 6


class BusinessCalendar:
    """Weekend days plus an explicit set of holidays."""

    def __init__(
        self,
        holidays: Iterable[date] = (),
        weekend_days: Iterable[int] = (SATURDAY, SUNDAY),
    ):
        self.holidays: FrozenSet[date] = frozenset(to_day(d) for d in holidays)
        self.weekend_days: FrozenSet[int] = frozenset(weekend_days)
        if len(self.weekend_days) >= 7:
            raise ValueError("A business calendar needs at least one working weekday")

    def is_business_day(self, dt: Union[date, datetime]) -> bool:
        dt = to_day(dt)
        return dt.weekday() not in self.weekend_days and dt not in self.holidays

    def previous_business_day(self, dt: Union[date, datetime]) -> date:
        """The date itself if it is a business day, else the closest earlier one."""
        dt = to_day(dt)
        while not self.is_business_day(dt):
            dt -= timedelta(days=1)
        return dt

    def __repr__(self):
        return f"<BusinessCalendar holidays={len(self.holidays)} weekend={sorted(self.weekend_days)}>"


def default_calendar() -> BusinessCalendar:
    return BusinessCalendar(holidays=settings.BUSINESS_HOLIDAYS)


def adjust(
    dt: Union[date, datetime],
    kind: Union[ObligationKind, str],
    calendar: Optional[BusinessCalendar] = None,
) -> date:
    """Move income dates off non-business days; every other kind is unchanged."""
    dt = to_day(dt)
    if ObligationKind(kind) != ObligationKind.INCOME:
        return dt
    calendar = calendar or default_calendar()
    return calendar.previous_business_day(dt)
