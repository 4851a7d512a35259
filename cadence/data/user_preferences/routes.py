"""
Routes for user preferences, including the financial tracking start date.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cadence.database import get_db
from cadence.data.users.models import User
from cadence.services.backfill import BackfillService
from cadence.services.completion_ledger import LedgerError
from .models import UserPreferences
from .schemas import (
    UserPreferencesUpdate,
    UserPreferencesResponse,
    TrackingStartDateUpdate,
    TrackingStartDateResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/user-preferences", tags=["User Preferences"])


@router.get("/{user_id}", response_model=UserPreferencesResponse)
async def get_user_preferences(
    user_id: str,
    db: AsyncSession = Depends(get_db),
):
    """
    Get user preferences.

    If no preferences exist, creates them with defaults.
    """
    return await get_or_create_preferences(db, user_id)


@router.put("/{user_id}", response_model=UserPreferencesResponse)
async def update_user_preferences(
    user_id: str,
    data: UserPreferencesUpdate,
    db: AsyncSession = Depends(get_db),
):
    """
    Update display preferences. Only provided fields are updated.

    The tracking start date has its own endpoint because changing it
    backfills completion records.
    """
    prefs = await get_or_create_preferences(db, user_id)

    for field, value in data.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(prefs, field, value)

    await db.flush()
    await db.refresh(prefs)

    return prefs


@router.put("/{user_id}/tracking-start-date", response_model=TrackingStartDateResponse)
async def set_tracking_start_date(
    user_id: str,
    data: TrackingStartDateUpdate,
    db: AsyncSession = Depends(get_db),
):
    """
    Set the financial tracking start date.

    Every period from January 1 of that year up to the new date is written
    to the ledger as completed. Clearing the date (null) backfills nothing.
    """
    prefs = await get_or_create_preferences(db, user_id)
    previous = prefs.financial_tracking_start_date

    prefs.financial_tracking_start_date = data.tracking_start_date
    await db.commit()

    backfilled = 0
    # Periods already recorded are skipped, so re-sending the date retries a failed backfill
    if data.tracking_start_date is not None:
        try:
            backfilled = await BackfillService(db).backfill(user_id, data.tracking_start_date)
        except LedgerError as e:
            raise HTTPException(
                status_code=503,
                detail=f"Tracking start date saved but backfill failed: {e}",
            )

    logger.info(
        f"Tracking start date for user {user_id}: {previous} -> {data.tracking_start_date} "
        f"({backfilled} periods backfilled)"
    )

    return TrackingStartDateResponse(
        user_id=user_id,
        financial_tracking_start_date=data.tracking_start_date,
        backfilled=backfilled,
    )


async def _create_default_preferences(db: AsyncSession, user_id: str) -> UserPreferences:
    """Create default preferences for a user."""
    user = await get_user_or_404(db, user_id)

    prefs = UserPreferences(
        user_id=user_id,
        currency=user.currency or "USD",
    )

    db.add(prefs)
    await db.flush()
    await db.refresh(prefs)

    return prefs


async def get_user_or_404(db: AsyncSession, user_id: str) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


async def get_or_create_preferences(db: AsyncSession, user_id: str) -> UserPreferences:
    """
    Utility function for routes to get user preferences.

    Returns existing preferences or creates them with defaults. Routes read
    the tracking start date from here and pass it to the services.
    """
    result = await db.execute(
        select(UserPreferences).where(UserPreferences.user_id == user_id)
    )
    prefs = result.scalar_one_or_none()

    if not prefs:
        prefs = await _create_default_preferences(db, user_id)

    return prefs
