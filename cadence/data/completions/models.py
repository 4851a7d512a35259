"""Completion ledger model."""
from sqlalchemy import Column, String, DateTime, Date, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from cadence.database import Base
from cadence.data.base import generate_id
from cadence.schedule.models import ObligationRef


class RecurringCompletion(Base):
    """
    Recurring Completion - one fulfilled period of an obligation.

    At most one row exists per (user, obligation, period_date); every write
    goes through an INSERT ... ON CONFLICT on that key.
    """

    __tablename__ = "recurring_completions"

    id = Column(String, primary_key=True, default=lambda: generate_id("cmp"))
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Which obligation this period belongs to
    item_type = Column(String, nullable=False)
    # Options:
    # - "recurring": item_id references recurring_items.id
    # - "debt": item_id references debt_accounts.id
    item_id = Column(String, nullable=False)

    period_date = Column(Date, nullable=False)
    completed_date = Column(Date, nullable=False)

    # Transaction that settled the period. SET NULL on delete, which is why
    # completions must be removed by transaction id *before* the transaction
    # row goes away.
    transaction_id = Column(String, ForeignKey("transactions.id", ondelete="SET NULL"), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    user = relationship("User", back_populates="completions")
    transaction = relationship("Transaction", back_populates="completions")

    __table_args__ = (
        UniqueConstraint("user_id", "item_type", "item_id", "period_date", name="uq_recurring_completion_period"),
        Index("ix_recurring_completions_user_period", "user_id", "period_date"),
    )

    @property
    def ref(self) -> ObligationRef:
        return ObligationRef(self.item_type, self.item_id)

    def __repr__(self):
        return f"<RecurringCompletion {self.item_type}:{self.item_id} period={self.period_date}>"
