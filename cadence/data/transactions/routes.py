"""
Routes for recording and deleting transactions.

A transaction may settle one recurring period. Deleting it removes the
completions it settled first, then the transaction row.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cadence.database import get_db
from cadence.data.user_preferences.routes import get_user_or_404
from cadence.schedule.models import ObligationRef
from cadence.services.completion_ledger import LedgerError
from cadence.services.completions import CompletionService
from cadence.services.obligations import ObligationService
from cadence.data.completions.schemas import CompletionResponse
from .models import Transaction
from .schemas import TransactionCreate, TransactionResponse, TransactionDeleteResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/transactions", tags=["Transactions"])


@router.post("/{user_id}", response_model=TransactionResponse)
async def create_transaction(
    user_id: str,
    data: TransactionCreate,
    db: AsyncSession = Depends(get_db),
):
    """
    Record a transaction.

    When `settles` is given, the referenced period is marked complete on the
    transaction date and linked to the new transaction.
    """
    await get_user_or_404(db, user_id)

    ref = None
    if data.settles is not None:
        ref = ObligationRef(data.settles.item_type, data.settles.item_id)
        if await ObligationService(db, user_id).get_obligation(ref) is None:
            raise HTTPException(status_code=404, detail="Obligation not found")

    transaction = Transaction(
        user_id=user_id,
        transaction_type=data.transaction_type,
        amount=data.amount,
        transaction_date=data.transaction_date,
        description=data.description,
        category=data.category,
    )
    db.add(transaction)
    await db.commit()
    await db.refresh(transaction)

    response = TransactionResponse.model_validate(transaction)

    if ref is not None:
        try:
            completion = await CompletionService(db, user_id).mark_complete(
                ref,
                data.settles.period_date,
                completed_date=data.transaction_date,
                transaction_id=transaction.id,
            )
        except LedgerError as e:
            # The transaction is kept; the period can be marked again later
            logger.error(f"Transaction {transaction.id} recorded but period not settled: {e}")
            raise HTTPException(
                status_code=503,
                detail=f"Transaction {transaction.id} recorded but period could not be marked complete",
            )
        response.completion = CompletionResponse.model_validate(completion)

    logger.info(f"Recorded transaction {transaction.id} for user {user_id}")
    return response


@router.delete("/{user_id}/{transaction_id}", response_model=TransactionDeleteResponse)
async def delete_transaction(
    user_id: str,
    transaction_id: str,
    db: AsyncSession = Depends(get_db),
):
    """
    Delete a transaction.

    Linked completions are removed while the transaction still exists; the
    periods it settled become open (or overdue) again.
    """
    transaction = await get_transaction_or_404(db, user_id, transaction_id)

    try:
        removed = await CompletionService(db, user_id).remove_by_linked_transaction(transaction_id)
    except LedgerError as e:
        raise HTTPException(status_code=503, detail=str(e))

    await db.delete(transaction)
    await db.flush()

    logger.info(f"Deleted transaction {transaction_id} for user {user_id}")
    return TransactionDeleteResponse(deleted=True, completions_removed=removed)


async def get_transaction_or_404(db: AsyncSession, user_id: str, transaction_id: str) -> Transaction:
    """Load a transaction owned by the user, or raise 404."""
    result = await db.execute(
        select(Transaction).where(
            Transaction.id == transaction_id,
            Transaction.user_id == user_id,
        )
    )
    transaction = result.scalar_one_or_none()
    if not transaction:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return transaction
