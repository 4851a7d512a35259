"""Pydantic schemas for user preferences."""
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field


class UserPreferencesUpdate(BaseModel):
    """Schema for updating display preferences. Only provided fields change."""

    currency: Optional[str] = Field(None, pattern="^[A-Z]{3}$")
    timezone: Optional[str] = None


class UserPreferencesResponse(BaseModel):
    """Schema for user preferences responses."""

    user_id: str
    financial_tracking_start_date: Optional[date] = None
    currency: str
    timezone: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class TrackingStartDateUpdate(BaseModel):
    """Schema for setting (or clearing) the financial tracking start date."""

    tracking_start_date: Optional[date] = Field(
        None,
        description="Periods before this date are treated as completed. Null clears it.",
    )


class TrackingStartDateResponse(BaseModel):
    user_id: str
    financial_tracking_start_date: Optional[date] = None
    backfilled: int = Field(0, description="Completion records inserted by the backfill")
