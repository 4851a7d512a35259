"""
Backfill Service - materializes completion records before a tracking start date.

When a user picks a financial tracking start date, every period from
January 1 of that year up to (not including) the new date is written to
the ledger as completed on its own period date. Periods already recorded
are skipped, and the batch insert itself ignores conflicts, so re-running
or racing backfills never produce duplicate rows.
"""
import logging
from datetime import date, timedelta
from typing import List, Optional, Set, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from cadence.schedule.business_days import BusinessCalendar, default_calendar
from cadence.schedule.models import ObligationRef, to_day
from cadence.schedule.reconciler import adjusted_occurrences
from cadence.services.completion_ledger import CompletionLedger
from cadence.services.obligations import ObligationService

logger = logging.getLogger(__name__)


class BackfillService:
    """Writes historical completion records for a user's obligations."""

    def __init__(self, db: AsyncSession, calendar: Optional[BusinessCalendar] = None):
        self.db = db
        self.calendar = calendar or default_calendar()

    async def backfill(self, user_id: str, new_tracking_start_date: date) -> int:
        """
        Insert completion records for every period in
        [January 1 of the tracking year, new_tracking_start_date).

        Args:
            user_id: Owner of the obligations
            new_tracking_start_date: The tracking start date just chosen

        Returns:
            Number of records inserted (0 when everything is already recorded)

        Raises:
            LedgerError: the ledger could not be read or written
        """
        tracking_start = to_day(new_tracking_start_date)
        year_start = date(tracking_start.year, 1, 1)
        window_end = tracking_start - timedelta(days=1)
        if window_end < year_start:
            return 0

        obligations = await ObligationService(self.db, user_id).list_obligations()

        candidates: List[Tuple[ObligationRef, date]] = []
        for obligation in obligations:
            for occurrence in adjusted_occurrences(obligation, year_start, window_end, self.calendar):
                if occurrence < tracking_start:
                    candidates.append((obligation.ref, occurrence))

        if not candidates:
            logger.info(f"Backfill for user {user_id}: no periods before {tracking_start}")
            return 0

        ledger = CompletionLedger(self.db, user_id)
        earliest = min(period_date for _, period_date in candidates)
        existing: Set[Tuple[ObligationRef, date]] = {
            (record.ref, record.period_date)
            for record in await ledger.list_in_window(earliest, window_end)
        }

        # A set also collapses income dates that the adjuster moved onto the same day
        missing = sorted(
            {c for c in candidates if c not in existing},
            key=lambda c: (c[1], c[0].source.value, c[0].id),
        )
        inserted = await ledger.insert_missing(missing)

        logger.info(
            f"Backfill for user {user_id} up to {tracking_start}: "
            f"{len(candidates)} periods, {len(existing)} already recorded, {inserted} inserted"
        )
        return inserted
