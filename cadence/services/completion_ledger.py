"""
Completion Ledger - persisted record of fulfilled periods.

Every write is a single INSERT ... ON CONFLICT statement keyed on
(user_id, item_type, item_id, period_date), so concurrent writers for the
same period converge on one row instead of racing a select-then-insert.

Storage failures are logged and re-raised as LedgerError. Callers must not
interpret a failed read as "no completion".
"""
import logging
from datetime import date
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import select, delete, func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cadence.data.base import generate_id
from cadence.data.completions.models import RecurringCompletion
from cadence.schedule.models import ObligationRef, to_day

logger = logging.getLogger(__name__)

CONFLICT_KEY = ["user_id", "item_type", "item_id", "period_date"]

# Rows per multi-row INSERT (keeps SQLite under its bound-parameter limit)
BATCH_SIZE = 500


class LedgerError(Exception):
    """The completion ledger could not be read or written."""


class CompletionLedger:
    """Reads and writes completion records for one user."""

    def __init__(self, db: AsyncSession, user_id: str):
        self.db = db
        self.user_id = user_id

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def find(self, ref: ObligationRef, period_date: date) -> Optional[RecurringCompletion]:
        """Completion record for one period, or None."""
        query = (
            select(RecurringCompletion)
            .where(
                RecurringCompletion.user_id == self.user_id,
                RecurringCompletion.item_type == ref.source.value,
                RecurringCompletion.item_id == ref.id,
                RecurringCompletion.period_date == to_day(period_date),
            )
            .execution_options(populate_existing=True)
        )
        result = await self._run(query, "find")
        return result.scalar_one_or_none()

    async def list_in_window(
        self,
        window_start: date,
        window_end: date,
        refs: Optional[Iterable[ObligationRef]] = None,
    ) -> List[RecurringCompletion]:
        """All records with period_date inside the window (inclusive)."""
        query = select(RecurringCompletion).where(
            RecurringCompletion.user_id == self.user_id,
            RecurringCompletion.period_date >= to_day(window_start),
            RecurringCompletion.period_date <= to_day(window_end),
        )
        wanted = None
        if refs is not None:
            wanted = set(refs)
            if not wanted:
                return []
            query = query.where(RecurringCompletion.item_id.in_({ref.id for ref in wanted}))

        query = query.order_by(RecurringCompletion.period_date).execution_options(populate_existing=True)
        result = await self._run(query, "list")
        records = list(result.scalars().all())
        if wanted is not None:
            records = [r for r in records if r.ref in wanted]
        return records

    # ==========================================================================
    # Writes
    # ==========================================================================

    async def upsert(
        self,
        ref: ObligationRef,
        period_date: date,
        completed_date: date,
        transaction_id: Optional[str] = None,
    ) -> RecurringCompletion:
        """
        Insert the record for a period, or update completed_date and
        transaction_id in place if one already exists.
        """
        insert = self._insert()
        stmt = insert(RecurringCompletion).values(
            id=generate_id("cmp"),
            user_id=self.user_id,
            item_type=ref.source.value,
            item_id=ref.id,
            period_date=to_day(period_date),
            completed_date=to_day(completed_date),
            transaction_id=transaction_id,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=CONFLICT_KEY,
            set_={
                "completed_date": stmt.excluded.completed_date,
                "transaction_id": stmt.excluded.transaction_id,
                "updated_at": func.now(),
            },
        )
        await self._write(stmt, "upsert")

        record = await self.find(ref, period_date)
        if record is None:
            raise LedgerError(f"Completion for {ref.id} on {period_date} missing after upsert")
        return record

    async def insert_missing(self, periods: Iterable[Tuple[ObligationRef, date]]) -> int:
        """
        Batch-insert records with completed_date = period_date for periods that
        have none yet. Existing rows are left untouched.

        Returns:
            Number of rows actually inserted
        """
        rows = [
            {
                "id": generate_id("cmp"),
                "user_id": self.user_id,
                "item_type": ref.source.value,
                "item_id": ref.id,
                "period_date": to_day(period_date),
                "completed_date": to_day(period_date),
                "transaction_id": None,
            }
            for ref, period_date in periods
        ]
        if not rows:
            return 0

        insert = self._insert()
        inserted = 0
        try:
            for offset in range(0, len(rows), BATCH_SIZE):
                batch = rows[offset:offset + BATCH_SIZE]
                stmt = insert(RecurringCompletion).values(batch).on_conflict_do_nothing(
                    index_elements=CONFLICT_KEY
                )
                result = await self.db.execute(stmt)
                inserted += result.rowcount if result.rowcount is not None and result.rowcount >= 0 else len(batch)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Completion ledger batch insert failed for user {self.user_id}: {e}")
            raise LedgerError(f"Batch insert failed: {e}") from e

        return inserted

    async def delete(self, ref: ObligationRef, period_date: date) -> int:
        """Remove the record for one period. Missing records are not an error."""
        stmt = delete(RecurringCompletion).where(
            RecurringCompletion.user_id == self.user_id,
            RecurringCompletion.item_type == ref.source.value,
            RecurringCompletion.item_id == ref.id,
            RecurringCompletion.period_date == to_day(period_date),
        )
        result = await self._write(stmt, "delete")
        return result.rowcount

    async def delete_by_transaction(self, transaction_id: str) -> int:
        """
        Remove every record linked to a transaction.

        Precondition: call this before deleting the transaction row. The
        foreign key is ON DELETE SET NULL, so afterwards the link is gone
        and the records can no longer be found by transaction id.
        """
        stmt = delete(RecurringCompletion).where(
            RecurringCompletion.user_id == self.user_id,
            RecurringCompletion.transaction_id == transaction_id,
        )
        result = await self._write(stmt, "delete_by_transaction")
        return result.rowcount

    async def delete_for_obligation(self, ref: ObligationRef, commit: bool = True) -> int:
        """Remove every record of an obligation (used when its definition is deleted)."""
        stmt = delete(RecurringCompletion).where(
            RecurringCompletion.user_id == self.user_id,
            RecurringCompletion.item_type == ref.source.value,
            RecurringCompletion.item_id == ref.id,
        )
        result = await self._write(stmt, "delete_for_obligation", commit=commit)
        return result.rowcount

    # ==========================================================================
    # Helpers
    # ==========================================================================

    def _insert(self):
        """Dialect-specific insert() that supports ON CONFLICT clauses."""
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert
        if dialect == "sqlite":
            return sqlite.insert
        raise LedgerError(f"Unsupported database dialect for upserts: {dialect}")

    async def _run(self, stmt, action: str):
        try:
            return await self.db.execute(stmt)
        except SQLAlchemyError as e:
            logger.error(f"Completion ledger {action} failed for user {self.user_id}: {e}")
            raise LedgerError(f"Ledger {action} failed: {e}") from e

    async def _write(self, stmt, action: str, commit: bool = True):
        try:
            result = await self.db.execute(stmt)
            if commit:
                await self.db.commit()
            return result
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Completion ledger {action} failed for user {self.user_id}: {e}")
            raise LedgerError(f"Ledger {action} failed: {e}") from e
