"""Debt account model."""
from sqlalchemy import Column, String, DateTime, Date, Numeric, Integer, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from cadence.database import Base
from cadence.data.base import generate_id
from cadence.schedule.models import DebtObligation, ObligationKind


class DebtAccount(Base):
    """A debt (credit card, loan, ...) with a scheduled minimum payment."""

    __tablename__ = "debt_accounts"

    id = Column(String, primary_key=True, default=lambda: generate_id("debt"))
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String, nullable=False)
    debt_type = Column(String, nullable=False, default="other")
    # Options: "credit-card", "student-loan", "personal-loan", "mortgage", "auto-loan", "other"

    balance = Column(Numeric(precision=15, scale=2), nullable=False, default=0)
    apr = Column(Numeric(precision=7, scale=4), nullable=False, default=0)
    minimum_payment = Column(Numeric(precision=15, scale=2), nullable=False, default=0)

    # Payment schedule
    payment_day_of_month = Column(Integer, nullable=True)
    next_due_date = Column(Date, nullable=True)
    payment_frequency = Column(String, nullable=False, default="monthly")
    # Options: "weekly", "bi-weekly", "monthly"

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    user = relationship("User", back_populates="debt_accounts")

    def to_obligation(self) -> DebtObligation:
        """Engine view of this account's payment schedule."""
        return DebtObligation(
            id=self.id,
            kind=ObligationKind.DEBT_PAYMENT,
            amount=self.minimum_payment or 0,
            frequency=self.payment_frequency,
            name=self.name,
            payment_day_of_month=self.payment_day_of_month,
            next_due_date=self.next_due_date,
        )

    def __repr__(self):
        return f"<DebtAccount {self.id} {self.debt_type}>"
