"""
Pydantic schemas for obligation definitions.

Recurring items (income, fixed expenses, subscriptions) and debt accounts
are stored separately but listed together as obligations.
"""
from typing import Optional, Literal
from pydantic import BaseModel, Field, model_validator
from decimal import Decimal
from datetime import date, datetime


FrequencyLiteral = Literal[
    "daily", "weekly", "bi-weekly", "semi-monthly", "monthly", "quarterly", "yearly"
]


# ============================================
# Recurring Item Schemas
# ============================================

class RecurringItemCreate(BaseModel):
    """Schema for creating a recurring income or expense."""

    name: str = Field(..., min_length=1)
    item_type: Literal["income", "fixed-expense", "subscription"] = Field(
        ..., description="Kind of recurring item"
    )
    amount: Decimal = Field(..., ge=0)
    frequency: FrequencyLiteral = Field("monthly", description="How often the item recurs")

    start_date: Optional[date] = Field(None, description="First due date")
    last_renewal_date: Optional[date] = Field(
        None, description="Subscriptions: most recent renewal (anchor when no start date)"
    )
    semi_monthly_first_day: Optional[int] = Field(None, ge=1, le=31)
    semi_monthly_second_day: Optional[int] = Field(None, ge=1, le=31)
    end_date: Optional[date] = Field(None, description="Last possible due date (null = ongoing)")

    category: Optional[str] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def check_semi_monthly_days(self):
        if self.frequency == "semi-monthly" and not (
            self.semi_monthly_first_day and self.semi_monthly_second_day
        ):
            raise ValueError("semi-monthly items need both semi_monthly_first_day and semi_monthly_second_day")
        return self


class RecurringItemResponse(BaseModel):
    id: str
    user_id: str
    name: str
    item_type: str
    amount: Decimal
    frequency: str
    start_date: Optional[date] = None
    last_renewal_date: Optional[date] = None
    semi_monthly_first_day: Optional[int] = None
    semi_monthly_second_day: Optional[int] = None
    end_date: Optional[date] = None
    category: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# ============================================
# Debt Account Schemas
# ============================================

class DebtAccountCreate(BaseModel):
    """Schema for creating a debt account with a scheduled minimum payment."""

    name: str = Field(..., min_length=1)
    debt_type: Literal[
        "credit-card", "student-loan", "personal-loan", "mortgage", "auto-loan", "other"
    ] = "other"
    balance: Decimal = Field(Decimal("0"), ge=0)
    apr: Decimal = Field(Decimal("0"), ge=0)
    minimum_payment: Decimal = Field(..., ge=0)
    payment_day_of_month: Optional[int] = Field(None, ge=1, le=31)
    next_due_date: Optional[date] = None
    payment_frequency: Literal["weekly", "bi-weekly", "monthly"] = "monthly"


class DebtAccountResponse(BaseModel):
    id: str
    user_id: str
    name: str
    debt_type: str
    balance: Decimal
    apr: Decimal
    minimum_payment: Decimal
    payment_day_of_month: Optional[int] = None
    next_due_date: Optional[date] = None
    payment_frequency: str
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# ============================================
# Obligation List Schemas
# ============================================

class ObligationSummary(BaseModel):
    """One obligation of either source with its next due date."""

    item_type: Literal["recurring", "debt"]
    item_id: str
    kind: str
    name: str
    amount: Decimal
    frequency: str
    anchor_date: Optional[date] = None
    end_date: Optional[date] = None
    next_occurrence: Optional[date] = Field(
        None, description="Next due date, null when none falls within the horizon"
    )


class ObligationDeleteResponse(BaseModel):
    deleted: bool
    item_type: str
    item_id: str
