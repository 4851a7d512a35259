"""
User Preferences Model

Stores user-level settings that the scheduling engine receives as
explicit parameters, most importantly the financial tracking start date.
"""
from sqlalchemy import Column, String, DateTime, Date, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from cadence.database import Base


class UserPreferences(Base):
    """
    User-specific preferences.

    Each user has exactly one preferences record (user_id is primary key).
    """
    __tablename__ = "user_preferences"

    # Primary key is user_id (one record per user)
    user_id = Column(
        String,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
        nullable=False
    )

    # ==========================================================================
    # Tracking
    # ==========================================================================

    # Periods before this date are treated as completed without ledger rows.
    # Changing it backfills ledger rows from January 1 of its year.
    financial_tracking_start_date = Column(Date, nullable=True)

    # ==========================================================================
    # Display
    # ==========================================================================
    currency = Column(String, nullable=False, default="USD")
    timezone = Column(String, nullable=False, default="UTC")

    # ==========================================================================
    # Timestamps
    # ==========================================================================
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationship
    user = relationship("User", backref="preferences", uselist=False)

    def __repr__(self):
        return f"<UserPreferences user_id={self.user_id} tracking_start={self.financial_tracking_start_date}>"
