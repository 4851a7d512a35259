"""
Consolidated services module.

Services are organized by concern but re-exported here for convenience.

Usage:
    from cadence.services import CompletionService, BackfillService
"""

from cadence.services.completion_ledger import CompletionLedger, LedgerError
from cadence.services.obligations import ObligationService
from cadence.services.completions import CompletionService, PeriodSelection, lookback_start
from cadence.services.backfill import BackfillService

__all__ = [
    # Ledger
    "CompletionLedger",
    "LedgerError",
    # Obligations
    "ObligationService",
    # Completions
    "CompletionService",
    "PeriodSelection",
    "lookback_start",
    # Backfill
    "BackfillService",
]
