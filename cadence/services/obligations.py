"""
Obligation Service - loads obligation definitions for the scheduling engine.

Recurring items and debt accounts live in separate tables. This service
reads both and returns them as engine Obligations so the rest of the code
works with one abstraction.

Data Flow:
    RecurringItem / DebtAccount (User Input)
                ↓
    Obligation (engine view)
                ↓
    Period expansion → reconciliation against the completion ledger
"""
import logging
from typing import List, Optional

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from cadence.data.debts.models import DebtAccount
from cadence.data.recurring.models import RecurringItem
from cadence.schedule.models import Obligation, ObligationRef, ObligationSource
from cadence.services.completion_ledger import CompletionLedger

logger = logging.getLogger(__name__)


class ObligationService:
    """
    Service for reading obligation definitions of one user.

    This service handles:
    1. Loading recurring items and debt accounts as Obligations
    2. Resolving a single obligation from its storage reference
    3. Deleting a definition together with its completion records
    """

    def __init__(self, db: AsyncSession, user_id: str):
        self.db = db
        self.user_id = user_id

    # ==========================================================================
    # Loading
    # ==========================================================================

    async def list_obligations(self) -> List[Obligation]:
        """All recurring items and debt accounts of the user."""
        recurring = await self.list_recurring_items()
        debts = await self.list_debt_accounts()

        obligations: List[Obligation] = []
        for item in recurring:
            obligation = self._convert(item)
            if obligation is not None:
                obligations.append(obligation)
        for debt in debts:
            obligation = self._convert(debt)
            if obligation is not None:
                obligations.append(obligation)
        return obligations

    async def list_recurring_items(self) -> List[RecurringItem]:
        result = await self.db.execute(
            select(RecurringItem)
            .where(RecurringItem.user_id == self.user_id)
            .order_by(RecurringItem.created_at)
        )
        return list(result.scalars().all())

    async def list_debt_accounts(self) -> List[DebtAccount]:
        result = await self.db.execute(
            select(DebtAccount)
            .where(DebtAccount.user_id == self.user_id)
            .order_by(DebtAccount.created_at)
        )
        return list(result.scalars().all())

    async def get_obligation(self, ref: ObligationRef) -> Optional[Obligation]:
        """Resolve one obligation, or None if it does not belong to the user."""
        row = await self._get_row(ref)
        if row is None:
            return None
        return self._convert(row)

    # ==========================================================================
    # Deletion
    # ==========================================================================

    async def delete_obligation(self, ref: ObligationRef) -> bool:
        """
        Delete a recurring item or debt account and its completion records.

        Completion rows reference obligations by (item_type, item_id) rather
        than by foreign key, so they are removed here in the same transaction.
        """
        model = RecurringItem if ref.source == ObligationSource.RECURRING else DebtAccount

        ledger = CompletionLedger(self.db, self.user_id)
        removed_completions = await ledger.delete_for_obligation(ref, commit=False)

        result = await self.db.execute(
            delete(model).where(model.id == ref.id, model.user_id == self.user_id)
        )
        await self.db.commit()

        if result.rowcount:
            logger.info(
                f"Deleted {ref.source.value} obligation {ref.id} for user {self.user_id} "
                f"({removed_completions} completions removed)"
            )
        return bool(result.rowcount)

    # ==========================================================================
    # Helper Methods
    # ==========================================================================

    async def _get_row(self, ref: ObligationRef):
        model = RecurringItem if ref.source == ObligationSource.RECURRING else DebtAccount
        result = await self.db.execute(
            select(model).where(model.id == ref.id, model.user_id == self.user_id)
        )
        return result.scalar_one_or_none()

    def _convert(self, row) -> Optional[Obligation]:
        """Engine view of a row; rows that cannot be interpreted are skipped."""
        try:
            return row.to_obligation()
        except (ValueError, TypeError, ArithmeticError) as e:
            logger.warning(f"Skipping malformed obligation {row.id} for user {self.user_id}: {e}")
            return None
