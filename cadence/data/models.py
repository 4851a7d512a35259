"""
Database models for Cadence.

IMPORTANT: Explicit imports only - no wildcards to prevent circular imports.
Use string-based forward references in relationships: relationship("User", ...)
"""
from cadence.data.base import generate_id
from cadence.data.users.models import User
from cadence.data.recurring.models import RecurringItem
from cadence.data.debts.models import DebtAccount
from cadence.data.transactions.models import Transaction
from cadence.data.user_preferences.models import UserPreferences
from cadence.data.completions.models import RecurringCompletion

__all__ = [
    "generate_id",
    "User",
    "RecurringItem",
    "DebtAccount",
    "Transaction",
    "UserPreferences",
    "RecurringCompletion",
]
