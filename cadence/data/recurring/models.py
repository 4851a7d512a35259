"""Recurring item model: income, fixed expenses and subscriptions."""
from sqlalchemy import Column, String, DateTime, Date, Numeric, Integer, Text, ForeignKey, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from cadence.database import Base
from cadence.data.base import generate_id
from cadence.schedule.models import ObligationKind, RecurringObligation


class RecurringItem(Base):
    """
    A recurring income or expense definition.

    The scheduling engine never writes to this table; it reads definitions
    through to_obligation().
    """

    __tablename__ = "recurring_items"

    id = Column(String, primary_key=True, default=lambda: generate_id("rec"))
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String, nullable=False)
    item_type = Column(String, nullable=False)
    # Options: "income", "fixed-expense", "subscription"

    amount = Column(Numeric(precision=15, scale=2), nullable=False, default=0)

    frequency = Column(String, nullable=False, default="monthly")
    # Options: "daily", "weekly", "bi-weekly", "semi-monthly", "monthly", "quarterly", "yearly"

    # Timing
    start_date = Column(Date, nullable=True)
    last_renewal_date = Column(Date, nullable=True)  # Subscriptions anchor on their last renewal
    semi_monthly_first_day = Column(Integer, nullable=True)  # Day of month (1-31)
    semi_monthly_second_day = Column(Integer, nullable=True)
    end_date = Column(Date, nullable=True)  # Null = ongoing

    category = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    user = relationship("User", back_populates="recurring_items")

    __table_args__ = (
        Index("ix_recurring_items_user_type", "user_id", "item_type"),
    )

    def to_obligation(self) -> RecurringObligation:
        """Engine view of this item."""
        return RecurringObligation(
            id=self.id,
            kind=ObligationKind(self.item_type),
            amount=self.amount or 0,
            frequency=self.frequency,
            name=self.name,
            anchor_date=self.start_date or self.last_renewal_date,
            end_date=self.end_date,
            semi_monthly_first_day=self.semi_monthly_first_day,
            semi_monthly_second_day=self.semi_monthly_second_day,
        )

    def __repr__(self):
        return f"<RecurringItem {self.id} {self.item_type} {self.frequency}>"
