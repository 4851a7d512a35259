"""Pydantic schemas for recurring periods and completion records."""
from datetime import date, datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from cadence.schedule.models import ObligationKind, ObligationSource, OverdueSeverity


# ============================================================================
# PERIOD SCHEMAS
# ============================================================================

class AnnotatedPeriodResponse(BaseModel):
    """One occurrence of an obligation with its completion state."""

    obligation_id: str
    item_type: ObligationSource
    kind: ObligationKind
    item_name: str
    amount: Decimal
    period_date: date
    is_completed: bool
    is_overdue: bool
    auto_completed: bool = False
    days_past_due: Optional[int] = None
    completed_date: Optional[date] = None
    transaction_id: Optional[str] = None
    severity: Optional[OverdueSeverity] = None

    model_config = {"from_attributes": True}


class PeriodListResponse(BaseModel):
    """Periods of a window."""

    window_start: date
    window_end: date
    tracking_start_date: Optional[date] = None
    periods: List[AnnotatedPeriodResponse]


class PeriodSelectionResponse(BaseModel):
    """Period picker for recording a transaction against one obligation."""

    periods: List[AnnotatedPeriodResponse] = Field(default_factory=list)
    selected: Optional[AnnotatedPeriodResponse] = None
    available: bool = Field(True, description="False when periods could not be loaded")
    error: Optional[str] = None

    model_config = {"from_attributes": True}


# ============================================================================
# COMPLETION SCHEMAS
# ============================================================================

class PeriodReference(BaseModel):
    """Identifies one period of one obligation."""

    item_type: Literal["recurring", "debt"] = Field(..., description="Source table of the obligation")
    item_id: str = Field(..., description="Recurring item or debt account ID")
    period_date: date = Field(..., description="Due date of the period")


class MarkCompleteRequest(PeriodReference):
    """Schema for marking a period complete."""

    completed_date: Optional[date] = Field(None, description="Defaults to today")
    transaction_id: Optional[str] = Field(None, description="Transaction that settled the period")


class UnmarkCompleteRequest(PeriodReference):
    """Schema for removing a period's completion."""


class CompletionResponse(BaseModel):
    """Schema for completion record responses."""

    id: str
    item_type: str
    item_id: str
    period_date: date
    completed_date: date
    transaction_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class UnmarkCompleteResponse(BaseModel):
    removed: bool
