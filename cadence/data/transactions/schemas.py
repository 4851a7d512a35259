"""Pydantic schemas for transactions."""
from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field

from cadence.data.completions.schemas import CompletionResponse, PeriodReference


class TransactionCreate(BaseModel):
    """Schema for recording a transaction, optionally settling a recurring period."""

    transaction_type: Literal["income", "expense", "transfer"]
    amount: Decimal = Field(..., ge=0)
    transaction_date: date
    description: Optional[str] = None
    category: Optional[str] = None
    settles: Optional[PeriodReference] = Field(
        None, description="Recurring period this transaction pays"
    )


class TransactionResponse(BaseModel):
    """Schema for transaction responses."""

    id: str
    user_id: str
    transaction_type: str
    amount: Decimal
    transaction_date: date
    description: Optional[str] = None
    category: Optional[str] = None
    created_at: Optional[datetime] = None
    completion: Optional[CompletionResponse] = None

    model_config = {"from_attributes": True}


class TransactionDeleteResponse(BaseModel):
    deleted: bool
    completions_removed: int = 0
