"""
API routes for obligation definitions.

Endpoints:
- Recurring items (income, fixed expenses, subscriptions)
- Debt accounts (minimum payments)
- Combined obligation list with next due dates
"""
import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from cadence.database import get_db
from cadence.data.debts.models import DebtAccount
from cadence.data.recurring.models import RecurringItem
from cadence.data.user_preferences.routes import get_user_or_404
from cadence.schedule.models import ObligationRef
from cadence.schedule.recurrence import next_occurrence
from cadence.services.completion_ledger import LedgerError
from cadence.services.obligations import ObligationService
from .schemas import (
    DebtAccountCreate,
    DebtAccountResponse,
    ObligationDeleteResponse,
    ObligationSummary,
    RecurringItemCreate,
    RecurringItemResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/obligations", tags=["Obligations"])


# ============================================
# Obligation List
# ============================================

@router.get("/{user_id}", response_model=List[ObligationSummary])
async def list_obligations(
    user_id: str,
    on_or_after: Optional[date] = Query(None, description="Reference date for next due dates (default today)"),
    db: AsyncSession = Depends(get_db),
):
    """All recurring items and debt accounts, each with its next due date."""
    await get_user_or_404(db, user_id)
    reference = on_or_after or date.today()

    obligations = await ObligationService(db, user_id).list_obligations()
    return [
        ObligationSummary(
            item_type=o.source.value,
            item_id=o.id,
            kind=o.kind.value,
            name=o.name,
            amount=o.amount,
            frequency=o.frequency.value,
            anchor_date=o.anchor_date,
            end_date=o.end_date,
            next_occurrence=next_occurrence(o, reference),
        )
        for o in obligations
    ]


@router.delete("/{user_id}/{item_type}/{item_id}", response_model=ObligationDeleteResponse)
async def delete_obligation(
    user_id: str,
    item_type: str,
    item_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Delete a recurring item or debt account together with its completion records."""
    try:
        ref = ObligationRef(item_type, item_id)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown item type: {item_type}")

    try:
        deleted = await ObligationService(db, user_id).delete_obligation(ref)
    except LedgerError as e:
        raise HTTPException(status_code=503, detail=str(e))

    if not deleted:
        raise HTTPException(status_code=404, detail="Obligation not found")

    return ObligationDeleteResponse(deleted=True, item_type=item_type, item_id=item_id)


# ============================================
# Recurring Items
# ============================================

@router.post("/{user_id}/recurring", response_model=RecurringItemResponse, status_code=status.HTTP_201_CREATED)
async def create_recurring_item(
    user_id: str,
    data: RecurringItemCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create a recurring income, fixed expense or subscription."""
    await get_user_or_404(db, user_id)

    item = RecurringItem(user_id=user_id, **data.model_dump())
    db.add(item)
    await db.commit()
    await db.refresh(item)

    logger.info(f"Created recurring item {item.id} ({item.item_type}, {item.frequency}) for user {user_id}")
    return item


# ============================================
# Debt Accounts
# ============================================

@router.post("/{user_id}/debts", response_model=DebtAccountResponse, status_code=status.HTTP_201_CREATED)
async def create_debt_account(
    user_id: str,
    data: DebtAccountCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create a debt account."""
    await get_user_or_404(db, user_id)

    account = DebtAccount(user_id=user_id, **data.model_dump())
    db.add(account)
    await db.commit()
    await db.refresh(account)

    logger.info(f"Created debt account {account.id} for user {user_id}")
    return account
