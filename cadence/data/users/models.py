"""User model."""
from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from cadence.database import Base
from cadence.data.base import generate_id


class User(Base):
    """User model - represents an individual tracking their finances."""

    __tablename__ = "users"

    id = Column(String, primary_key=True, default=lambda: generate_id("user"))
    email = Column(String, unique=True, nullable=False, index=True)
    currency = Column(String, nullable=False, default="USD")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    recurring_items = relationship("RecurringItem", back_populates="user", cascade="all, delete-orphan")
    debt_accounts = relationship("DebtAccount", back_populates="user", cascade="all, delete-orphan")
    transactions = relationship("Transaction", back_populates="user", cascade="all, delete-orphan")
    completions = relationship("RecurringCompletion", back_populates="user", cascade="all, delete-orphan")
