"""
Period Reconciler.

Joins expanded occurrences with completion records and the user's
financial tracking start date:

    auto_completed = tracking_start is set and period_date < tracking_start
    is_completed   = ledger record exists or auto_completed
    is_overdue     = period_date < today and not is_completed

The reconciler is pure. Callers read the ledger and pass the records in,
so a failed ledger read surfaces as an error at the caller instead of
being mistaken for "not completed".
"""
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Protocol, Set, Tuple, Union

from cadence.schedule.business_days import BusinessCalendar, adjust, default_calendar
from cadence.schedule.models import (
    AnnotatedPeriod,
    Obligation,
    ObligationRef,
    to_day,
)
from cadence.schedule.recurrence import expand


class CompletionLike(Protocol):
    """Anything shaped like a completion ledger row."""

    item_type: str
    item_id: str
    period_date: date
    completed_date: date
    transaction_id: Optional[str]


CompletionIndex = Dict[Tuple[ObligationRef, date], CompletionLike]


def index_completions(records: Iterable[CompletionLike]) -> CompletionIndex:
    """Key completion records by (obligation ref, period date)."""
    return {
        (ObligationRef(record.item_type, record.item_id), to_day(record.period_date)): record
        for record in records
    }


def adjusted_occurrences(
    obligation: Obligation,
    window_start: Union[date, datetime],
    window_end: Union[date, datetime],
    calendar: Optional[BusinessCalendar] = None,
) -> List[date]:
    """Evaluator output with the business-day adjustment applied to each date."""
    return [
        adjust(occurrence, obligation.kind, calendar)
        for occurrence in expand(obligation, window_start, window_end)
    ]


def reconcile(
    obligations: Iterable[Obligation],
    window_start: Union[date, datetime],
    window_end: Union[date, datetime],
    completions: Iterable[CompletionLike] = (),
    tracking_start_date: Optional[Union[date, datetime]] = None,
    today: Optional[date] = None,
    calendar: Optional[BusinessCalendar] = None,
) -> List[AnnotatedPeriod]:
    """
    Annotate every occurrence of the given obligations inside the window.

    Args:
        obligations: Obligation definitions (any mix of recurring and debt)
        window_start: First day of the window (inclusive)
        window_end: Last day of the window (inclusive)
        completions: Ledger records for the window
        tracking_start_date: Periods before this date count as completed
        today: Reference date for overdue status (defaults to date.today())
        calendar: Business calendar for income adjustment

    Returns:
        Annotated periods sorted by period date, then obligation id
    """
    index = completions if isinstance(completions, dict) else index_completions(completions)
    tracking_start = to_day(tracking_start_date)
    today = to_day(today) or date.today()
    calendar = calendar or default_calendar()

    periods: List[AnnotatedPeriod] = []
    for obligation in obligations:
        seen: Set[date] = set()
        for occurrence in adjusted_occurrences(obligation, window_start, window_end, calendar):
            # Weekend income dates rolled onto the same Friday share one ledger key
            if occurrence in seen:
                continue
            seen.add(occurrence)
            record = index.get((obligation.ref, occurrence))
            periods.append(_annotate(obligation, occurrence, record, tracking_start, today))

    periods.sort(key=lambda p: (p.period_date, p.obligation_id))
    return periods


def _annotate(
    obligation: Obligation,
    occurrence: date,
    record: Optional[CompletionLike],
    tracking_start: Optional[date],
    today: date,
) -> AnnotatedPeriod:
    auto_completed = tracking_start is not None and occurrence < tracking_start
    is_completed = record is not None or auto_completed
    is_overdue = occurrence < today and not is_completed

    if record is not None:
        completed_date = to_day(record.completed_date)
    elif auto_completed:
        completed_date = occurrence
    else:
        completed_date = None

    return AnnotatedPeriod(
        obligation_id=obligation.id,
        item_type=obligation.source,
        kind=obligation.kind,
        item_name=obligation.name,
        amount=obligation.amount,
        period_date=occurrence,
        is_completed=is_completed,
        is_overdue=is_overdue,
        auto_completed=auto_completed,
        days_past_due=(today - occurrence).days if is_overdue else None,
        completed_date=completed_date,
        transaction_id=record.transaction_id if record is not None else None,
    )


def overdue_periods(periods: Iterable[AnnotatedPeriod]) -> List[AnnotatedPeriod]:
    return [p for p in periods if p.is_overdue]


def select_default_period(periods: Iterable[AnnotatedPeriod]) -> Optional[AnnotatedPeriod]:
    """
    Pick the period to pre-select when recording a transaction:
    the earliest overdue period, else the earliest open period, else none.
    """
    ordered = sorted(periods, key=lambda p: p.period_date)
    for period in ordered:
        if period.is_overdue:
            return period
    for period in ordered:
        if not period.is_completed:
            return period
    return None
