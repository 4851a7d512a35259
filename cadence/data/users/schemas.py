"""Pydantic schemas for users."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class UserCreate(BaseModel):
    email: str = Field(..., min_length=3)
    currency: str = Field("USD", pattern="^[A-Z]{3}$")


class UserResponse(BaseModel):
    id: str
    email: str
    currency: str
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
