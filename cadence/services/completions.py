"""
Completion Service - period queries and completion mutations.

Obligation definitions and the tracking start date are passed in by the
caller; this service only touches storage for completion records.

Mutations:
- mark_complete: upsert one period (idempotent, supersedes auto-completion)
- unmark_complete: delete one period's record (no-op when absent)
- remove_by_linked_transaction: delete records linked to a transaction,
  called by the transaction deletion workflow *before* the transaction row
  is removed
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Optional, Tuple

from dateutil.relativedelta import relativedelta
from sqlalchemy.ext.asyncio import AsyncSession

from cadence.config import settings
from cadence.data.completions.models import RecurringCompletion
from cadence.schedule.business_days import BusinessCalendar, default_calendar
from cadence.schedule.models import AnnotatedPeriod, Obligation, ObligationRef, to_day
from cadence.schedule.reconciler import (
    adjusted_occurrences,
    overdue_periods,
    reconcile,
    select_default_period,
)
from cadence.services.completion_ledger import CompletionLedger

logger = logging.getLogger(__name__)


@dataclass
class PeriodSelection:
    """Periods offered when recording a transaction against an obligation."""

    periods: List[AnnotatedPeriod] = field(default_factory=list)
    selected: Optional[AnnotatedPeriod] = None
    available: bool = True
    error: Optional[str] = None


def lookback_start(tracking_start_date: Optional[date], today: date) -> date:
    """Start of overdue / picker windows: tracking start, else a fixed lookback."""
    if tracking_start_date is not None:
        return to_day(tracking_start_date)
    return today - relativedelta(months=settings.DEFAULT_LOOKBACK_MONTHS)


class CompletionService:
    """Period reconciliation and completion mutations for one user."""

    def __init__(
        self,
        db: AsyncSession,
        user_id: str,
        calendar: Optional[BusinessCalendar] = None,
    ):
        self.db = db
        self.user_id = user_id
        self.ledger = CompletionLedger(db, user_id)
        self.calendar = calendar or default_calendar()

    # ==========================================================================
    # Queries
    # ==========================================================================

    async def get_periods(
        self,
        obligations: Iterable[Obligation],
        window_start: date,
        window_end: date,
        tracking_start_date: Optional[date] = None,
        today: Optional[date] = None,
    ) -> List[AnnotatedPeriod]:
        """
        Annotated periods for the given obligations inside the window.

        Raises:
            LedgerError: the completion ledger could not be read
        """
        obligations = list(obligations)
        window_start, window_end = to_day(window_start), to_day(window_end)
        if not obligations or window_end < window_start:
            return []

        span = self._occurrence_span(obligations, window_start, window_end)
        if span is None:
            return []

        records = await self.ledger.list_in_window(
            span[0], span[1], refs=[o.ref for o in obligations]
        )
        return reconcile(
            obligations,
            window_start,
            window_end,
            completions=records,
            tracking_start_date=tracking_start_date,
            today=today,
            calendar=self.calendar,
        )

    async def get_overdue_periods(
        self,
        obligations: Iterable[Obligation],
        tracking_start_date: Optional[date] = None,
        today: Optional[date] = None,
    ) -> List[AnnotatedPeriod]:
        """Overdue periods of all obligations from the tracking start until today."""
        today = to_day(today) or date.today()
        window_start = lookback_start(tracking_start_date, today)
        periods = await self.get_periods(
            obligations, window_start, today, tracking_start_date, today
        )
        return overdue_periods(periods)

    async def get_available_periods(
        self,
        obligation: Obligation,
        tracking_start_date: Optional[date] = None,
        today: Optional[date] = None,
    ) -> PeriodSelection:
        """
        Periods a new transaction for this obligation may settle, with the
        auto-picked default (earliest overdue, else earliest open).
        """
        today = to_day(today) or date.today()
        window_start = lookback_start(tracking_start_date, today)
        window_end = today + relativedelta(months=settings.PERIOD_PICKER_LOOKAHEAD_MONTHS)

        periods = await self.get_periods(
            [obligation], window_start, window_end, tracking_start_date, today
        )
        return PeriodSelection(periods=periods, selected=select_default_period(periods))

    async def get_calendar_periods(
        self,
        obligations: Iterable[Obligation],
        year: int,
        tracking_start_date: Optional[date] = None,
        today: Optional[date] = None,
    ) -> List[AnnotatedPeriod]:
        """Periods of a calendar year, starting no earlier than the tracking start."""
        window_start = date(year, 1, 1)
        tracking_start = to_day(tracking_start_date)
        if tracking_start is not None and tracking_start > window_start:
            window_start = tracking_start
        return await self.get_periods(
            obligations, window_start, date(year, 12, 31), tracking_start_date, today
        )

    # ==========================================================================
    # Mutations
    # ==========================================================================

    async def mark_complete(
        self,
        ref: ObligationRef,
        period_date: date,
        completed_date: Optional[date] = None,
        transaction_id: Optional[str] = None,
    ) -> RecurringCompletion:
        """Record a period as fulfilled. Calling again updates the same record."""
        completed_date = to_day(completed_date) or date.today()
        record = await self.ledger.upsert(ref, period_date, completed_date, transaction_id)
        logger.info(
            f"Marked {ref.source.value}:{ref.id} period {to_day(period_date)} complete "
            f"for user {self.user_id} (transaction={transaction_id})"
        )
        return record

    async def unmark_complete(self, ref: ObligationRef, period_date: date) -> bool:
        """
        Remove a period's completion record.

        Periods before the tracking start date stay completed: they are
        auto-completed whether or not a record exists.
        """
        removed = await self.ledger.delete(ref, period_date)
        if removed:
            logger.info(
                f"Unmarked {ref.source.value}:{ref.id} period {to_day(period_date)} for user {self.user_id}"
            )
        return bool(removed)

    async def remove_by_linked_transaction(self, transaction_id: str) -> int:
        """
        Remove completions settled by a transaction.

        Precondition: the transaction row still exists.
        """
        removed = await self.ledger.delete_by_transaction(transaction_id)
        if removed:
            logger.info(f"Removed {removed} completion(s) linked to transaction {transaction_id}")
        return removed

    # ==========================================================================
    # Helper Methods
    # ==========================================================================

    def _occurrence_span(
        self,
        obligations: List[Obligation],
        window_start: date,
        window_end: date,
    ) -> Optional[Tuple[date, date]]:
        """
        Date range covering every adjusted occurrence. Income dates can move
        before the window start, so the ledger read must cover them too.
        """
        dates = [
            occurrence
            for obligation in obligations
            for occurrence in adjusted_occurrences(obligation, window_start, window_end, self.calendar)
        ]
        if not dates:
            return None
        return min(dates), max(dates)
