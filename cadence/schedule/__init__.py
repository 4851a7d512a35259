"""Recurring obligation scheduling engine (pure, no I/O)."""
from cadence.schedule.models import (
    AnnotatedPeriod,
    DebtObligation,
    Frequency,
    Obligation,
    ObligationKind,
    ObligationRef,
    ObligationSource,
    OverdueSeverity,
    Period,
    RecurringObligation,
)
from cadence.schedule.recurrence import expand, next_occurrence
from cadence.schedule.business_days import BusinessCalendar, adjust
from cadence.schedule.reconciler import (
    index_completions,
    overdue_periods,
    reconcile,
    select_default_period,
)

__all__ = [
    # Types
    "AnnotatedPeriod",
    "DebtObligation",
    "Frequency",
    "Obligation",
    "ObligationKind",
    "ObligationRef",
    "ObligationSource",
    "OverdueSeverity",
    "Period",
    "RecurringObligation",
    # Evaluator
    "expand",
    "next_occurrence",
    # Business days
    "BusinessCalendar",
    "adjust",
    # Reconciler
    "index_completions",
    "overdue_periods",
    "reconcile",
    "select_default_period",
]
