"""
Routes for recurring periods and their completion state.

Obligations and the tracking start date are loaded here and passed to
CompletionService explicitly.
"""
import logging
from datetime import date
from typing import List, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from cadence.database import get_db
from cadence.data.transactions.routes import get_transaction_or_404
from cadence.data.user_preferences.routes import get_or_create_preferences
from cadence.schedule.models import AnnotatedPeriod, Obligation, ObligationRef
from cadence.services.completion_ledger import LedgerError
from cadence.services.completions import CompletionService
from cadence.services.obligations import ObligationService
from .schemas import (
    AnnotatedPeriodResponse,
    CompletionResponse,
    MarkCompleteRequest,
    PeriodListResponse,
    PeriodSelectionResponse,
    UnmarkCompleteRequest,
    UnmarkCompleteResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/completions", tags=["Completions"])


# ============================================================================
# PERIOD QUERIES
# ============================================================================

@router.get("/{user_id}/periods", response_model=PeriodListResponse)
async def get_periods(
    user_id: str,
    start: date = Query(..., description="Window start (inclusive)"),
    end: date = Query(..., description="Window end (inclusive)"),
    db: AsyncSession = Depends(get_db),
):
    """Every period of every obligation inside the window, with completion state."""
    if end < start:
        raise HTTPException(status_code=400, detail="end must not be before start")

    obligations, tracking_start = await _load_context(db, user_id)
    try:
        periods = await CompletionService(db, user_id).get_periods(
            obligations, start, end, tracking_start_date=tracking_start
        )
    except LedgerError as e:
        raise HTTPException(status_code=503, detail=str(e))

    return PeriodListResponse(
        window_start=start,
        window_end=end,
        tracking_start_date=tracking_start,
        periods=_to_response(periods),
    )


@router.get("/{user_id}/overdue", response_model=List[AnnotatedPeriodResponse])
async def get_overdue_periods(
    user_id: str,
    db: AsyncSession = Depends(get_db),
):
    """
    Past-due periods from the tracking start date (or the default lookback)
    until today, oldest first.
    """
    obligations, tracking_start = await _load_context(db, user_id)
    try:
        periods = await CompletionService(db, user_id).get_overdue_periods(
            obligations, tracking_start_date=tracking_start
        )
    except LedgerError as e:
        raise HTTPException(status_code=503, detail=str(e))

    return _to_response(periods)


@router.get("/{user_id}/available/{item_type}/{item_id}", response_model=PeriodSelectionResponse)
async def get_available_periods(
    user_id: str,
    item_type: str,
    item_id: str,
    db: AsyncSession = Depends(get_db),
):
    """
    Period picker for recording a transaction against one obligation.

    A ledger failure disables the picker instead of failing the request,
    so the transaction can still be recorded without a period.
    """
    _, tracking_start = await _load_context(db, user_id, load_obligations=False)
    obligation = await _get_obligation_or_404(db, user_id, item_type, item_id)

    try:
        selection = await CompletionService(db, user_id).get_available_periods(
            obligation, tracking_start_date=tracking_start
        )
    except LedgerError as e:
        logger.warning(f"Period picker unavailable for {item_type}:{item_id}: {e}")
        return PeriodSelectionResponse(available=False, error="Completion history is unavailable")

    return PeriodSelectionResponse(
        periods=_to_response(selection.periods),
        selected=_to_response([selection.selected])[0] if selection.selected else None,
        available=selection.available,
        error=selection.error,
    )


@router.get("/{user_id}/calendar/{year}", response_model=List[AnnotatedPeriodResponse])
async def get_calendar_periods(
    user_id: str,
    year: int,
    db: AsyncSession = Depends(get_db),
):
    """All periods of a calendar year, starting no earlier than the tracking start."""
    if year < 1 or year > 9999:
        raise HTTPException(status_code=400, detail="Invalid year")

    obligations, tracking_start = await _load_context(db, user_id)
    try:
        periods = await CompletionService(db, user_id).get_calendar_periods(
            obligations, year, tracking_start_date=tracking_start
        )
    except LedgerError as e:
        raise HTTPException(status_code=503, detail=str(e))

    return _to_response(periods)


# ============================================================================
# COMPLETION MUTATIONS
# ============================================================================

@router.post("/{user_id}/mark", response_model=CompletionResponse)
async def mark_period_complete(
    user_id: str,
    data: MarkCompleteRequest,
    db: AsyncSession = Depends(get_db),
):
    """Mark a period complete. Repeating the call updates the same record."""
    await get_or_create_preferences(db, user_id)
    obligation = await _get_obligation_or_404(db, user_id, data.item_type, data.item_id)
    if data.transaction_id is not None:
        await get_transaction_or_404(db, user_id, data.transaction_id)

    try:
        return await CompletionService(db, user_id).mark_complete(
            obligation.ref,
            data.period_date,
            completed_date=data.completed_date,
            transaction_id=data.transaction_id,
        )
    except LedgerError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.post("/{user_id}/unmark", response_model=UnmarkCompleteResponse)
async def unmark_period_complete(
    user_id: str,
    data: UnmarkCompleteRequest,
    db: AsyncSession = Depends(get_db),
):
    """Remove a period's completion. Unmarking an open period is a no-op."""
    await get_or_create_preferences(db, user_id)

    try:
        removed = await CompletionService(db, user_id).unmark_complete(
            ObligationRef(data.item_type, data.item_id), data.period_date
        )
    except LedgerError as e:
        raise HTTPException(status_code=503, detail=str(e))

    return UnmarkCompleteResponse(removed=removed)


# ============================================================================
# HELPERS
# ============================================================================

def _to_response(periods: List[AnnotatedPeriod]) -> List[AnnotatedPeriodResponse]:
    return [AnnotatedPeriodResponse.model_validate(p.to_dict()) for p in periods]


async def _load_context(
    db: AsyncSession,
    user_id: str,
    load_obligations: bool = True,
) -> Tuple[List[Obligation], Optional[date]]:
    """Obligations and tracking start date of a user (404 for unknown users)."""
    prefs = await get_or_create_preferences(db, user_id)
    obligations: List[Obligation] = []
    if load_obligations:
        obligations = await ObligationService(db, user_id).list_obligations()
    return obligations, prefs.financial_tracking_start_date


async def _get_obligation_or_404(
    db: AsyncSession,
    user_id: str,
    item_type: str,
    item_id: str,
) -> Obligation:
    try:
        ref = ObligationRef(item_type, item_id)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown item type: {item_type}")

    obligation = await ObligationService(db, user_id).get_obligation(ref)
    if obligation is None:
        raise HTTPException(status_code=404, detail="Obligation not found")
    return obligation
