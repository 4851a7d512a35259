"""Transaction model."""
from sqlalchemy import Column, String, DateTime, Date, Numeric, Text, ForeignKey, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from cadence.database import Base
from cadence.data.base import generate_id


class Transaction(Base):
    """A recorded money movement. May settle one recurring period."""

    __tablename__ = "transactions"

    id = Column(String, primary_key=True, default=lambda: generate_id("txn"))
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    transaction_type = Column(String, nullable=False)
    # Options: "income", "expense", "transfer"

    amount = Column(Numeric(precision=15, scale=2), nullable=False)
    transaction_date = Column(Date, nullable=False, index=True)
    description = Column(Text, nullable=True)
    category = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    user = relationship("User", back_populates="transactions")
    # No delete cascade here: the completion FK is SET NULL, and linked
    # completions are removed explicitly before the transaction is deleted.
    completions = relationship("RecurringCompletion", back_populates="transaction", passive_deletes=True)

    __table_args__ = (
        Index("ix_transactions_user_date", "user_id", "transaction_date"),
    )
