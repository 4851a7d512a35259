"""
Recurrence Rule Evaluator.

Expands an obligation's recurrence rule into the concrete dates on which
a payment is due inside a window. Pure functions only: no I/O, no clock.

Stepping is always done from the anchor by whole calendar units
(anchor + n * step) rather than by repeatedly adding to the previous
date, so month-end anchors do not drift:

    Jan 31 -> Feb 29 -> Mar 31 -> Apr 30   (not Mar 29, Apr 29, ...)

Window semantics: both window_start and window_end are inclusive.
"""
import calendar
import logging
from datetime import date, datetime, timedelta
from typing import Iterator, List, Optional, Tuple, Union

from dateutil.relativedelta import relativedelta

from cadence.config import settings
from cadence.schedule.models import (
    DebtObligation,
    Frequency,
    Obligation,
    ObligationSource,
    RecurringObligation,
    to_day,
)

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime]

# Fixed-length frequencies, in days
_STEP_DAYS = {
    Frequency.DAILY: 1,
    Frequency.WEEKLY: 7,
    Frequency.BI_WEEKLY: 14,
}

# Calendar-month frequencies, in months
_STEP_MONTHS = {
    Frequency.MONTHLY: 1,
    Frequency.QUARTERLY: 3,
    Frequency.YEARLY: 12,
}


def expand(obligation: Obligation, window_start: DateLike, window_end: DateLike) -> List[date]:
    """
    Return the sorted, duplicate-free occurrence dates of an obligation
    between window_start and window_end (both inclusive).

    An inverted window yields an empty list. Malformed definitions are
    degraded (monthly stepping, window start as anchor) instead of raising.
    """
    window_start = to_day(window_start)
    window_end = to_day(window_end)
    if window_start is None or window_end is None or window_end < window_start:
        return []

    if obligation.source == ObligationSource.DEBT:
        dates = _expand_debt(obligation, window_start, window_end)
    elif obligation.frequency == Frequency.SEMI_MONTHLY:
        dates = _expand_semi_monthly(obligation, window_start, window_end)
    else:
        dates = _expand_recurring(obligation, window_start, window_end)

    return sorted(set(dates))


def next_occurrence(
    obligation: Obligation,
    on_or_after: DateLike,
    horizon_days: Optional[int] = None,
) -> Optional[date]:
    """First occurrence on or after a date, looking at most horizon_days ahead."""
    start = to_day(on_or_after)
    if horizon_days is None:
        horizon_days = settings.NEXT_OCCURRENCE_HORIZON_DAYS
    occurrences = expand(obligation, start, start + timedelta(days=horizon_days))
    return occurrences[0] if occurrences else None


# =============================================================================
# Variants
# =============================================================================

def _expand_recurring(obligation: Obligation, window_start: date, window_end: date) -> List[date]:
    """Income, fixed expenses and subscriptions (non semi-monthly)."""
    frequency = obligation.frequency
    anchor = obligation.anchor_date
    day_of_month = None

    if anchor is None:
        anchor = window_start
    elif anchor > window_start and frequency == Frequency.MONTHLY:
        # Projected case: show the payment rhythm for months before the
        # obligation technically starts.
        day_of_month = anchor.day
        anchor = _project_day_of_month(day_of_month, window_start)

    if frequency in _STEP_MONTHS:
        day_of_month = day_of_month or anchor.day

    first = max(0, _first_index_on_or_after(anchor, frequency, window_start, day_of_month))
    return list(_walk(anchor, frequency, first, window_end, obligation.end_date, day_of_month))


def _expand_semi_monthly(obligation: Obligation, window_start: date, window_end: date) -> List[date]:
    """
    Twice-monthly items pay on two fixed days of every month, so the anchor
    only fixes the pattern; the first occurrence is the first pay day on or
    after the window start.
    """
    days = obligation.semi_monthly_days if isinstance(obligation, RecurringObligation) else None
    if days is None:
        logger.warning(
            f"Semi-monthly obligation {obligation.id} has no pay days configured, "
            f"using monthly steps"
        )
        anchor = obligation.anchor_date or window_start
        first = max(0, _first_index_on_or_after(anchor, Frequency.MONTHLY, window_start, anchor.day))
        return list(_walk(anchor, Frequency.MONTHLY, first, window_end, obligation.end_date, anchor.day))

    occurrences = []
    current = _semi_monthly_on_or_after(window_start, days)
    while current <= window_end:
        if obligation.end_date and current > obligation.end_date:
            break
        occurrences.append(current)
        current = _semi_monthly_on_or_after(current + timedelta(days=1), days)
    return occurrences


def _expand_debt(obligation: DebtObligation, window_start: date, window_end: date) -> List[date]:
    """
    Debt payments are anchored on the next due date. When that date lies
    after the window start, the schedule is walked backwards (re-aligned to
    the payment day for monthly debts) and then forward through the window.
    """
    frequency = obligation.frequency
    day_of_month = None
    if frequency == Frequency.MONTHLY:
        day_of_month = obligation.payment_day_of_month

    anchor = obligation.next_due_date
    if anchor is None:
        if day_of_month:
            anchor = _project_day_of_month(day_of_month, window_start)
        else:
            anchor = window_start

    if frequency == Frequency.MONTHLY and not day_of_month:
        day_of_month = anchor.day

    first = _first_index_on_or_after(anchor, frequency, window_start, day_of_month)
    return list(_walk(anchor, frequency, first, window_end, obligation.end_date, day_of_month))


# =============================================================================
# Stepping helpers
# =============================================================================

def _shift(anchor: date, frequency: Frequency, n: int, day_of_month: Optional[int] = None) -> date:
    """The n-th occurrence counted from the anchor (n may be negative)."""
    step_days = _STEP_DAYS.get(frequency)
    if step_days:
        return anchor + timedelta(days=step_days * n)

    # Anything else (including SEMI_MONTHLY without pay days) steps monthly
    months = _STEP_MONTHS.get(frequency, 1) * n
    # relativedelta clamps an absolute day to the last day of short months
    return anchor + relativedelta(months=months, day=day_of_month)


def _first_index_on_or_after(
    anchor: date,
    frequency: Frequency,
    target: date,
    day_of_month: Optional[int] = None,
) -> int:
    """Smallest n such that _shift(anchor, n) >= target."""
    step_days = _STEP_DAYS.get(frequency)
    if step_days:
        # ceil((target - anchor) / step)
        return -((anchor - target).days // step_days)

    step_months = _STEP_MONTHS.get(frequency, 1)
    months = (target.year - anchor.year) * 12 + (target.month - anchor.month)
    # Starts strictly before the target month, then walks forward
    n = months // step_months - 1
    while _shift(anchor, frequency, n, day_of_month) < target:
        n += 1
    return n


def _walk(
    anchor: date,
    frequency: Frequency,
    first: int,
    window_end: date,
    end_date: Optional[date],
    day_of_month: Optional[int],
) -> Iterator[date]:
    n = first
    while True:
        current = _shift(anchor, frequency, n, day_of_month)
        if current > window_end:
            return
        if end_date and current > end_date:
            return
        yield current
        n += 1


def _project_day_of_month(day: int, window_start: date) -> date:
    """The given day-of-month in window_start's month, or the next month if earlier."""
    candidate = window_start + relativedelta(day=day)
    if candidate < window_start:
        candidate = window_start + relativedelta(months=1, day=day)
    return candidate


def _clamp(year: int, month: int, day: int) -> date:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, max(1, min(day, last_day)))


def _semi_monthly_on_or_after(value: date, days: Tuple[int, int]) -> date:
    """First semi-monthly pay day on or after a date."""
    first = _clamp(value.year, value.month, days[0])
    if value <= first:
        return first
    second = _clamp(value.year, value.month, days[1])
    if value <= second:
        return second
    following = value + relativedelta(months=1)
    return _clamp(following.year, following.month, days[0])
