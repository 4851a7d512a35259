"""
Value types for the recurrence engine.

Obligations arrive from two storage tables (recurring items and debt
accounts). Both are exposed to the engine as one tagged union so the
evaluator and reconciler never branch on the source table:

    Obligation
        ├── RecurringObligation   (source = "recurring")
        └── DebtObligation        (source = "debt")

Periods and annotated periods are derived values and are never stored.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple, Union

logger = logging.getLogger(__name__)


class ObligationSource(str, Enum):
    """Which storage table an obligation definition came from."""
    RECURRING = "recurring"
    DEBT = "debt"


class ObligationKind(str, Enum):
    INCOME = "income"
    FIXED_EXPENSE = "fixed-expense"
    SUBSCRIPTION = "subscription"
    DEBT_PAYMENT = "debt-payment"


class Frequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    BI_WEEKLY = "bi-weekly"
    SEMI_MONTHLY = "semi-monthly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"

    @classmethod
    def parse(cls, value: Union[str, "Frequency", None]) -> "Frequency":
        """
        Parse a stored frequency value.

        Accepts the spellings used across the codebase ("bi_weekly",
        "annually", ...). Unknown or missing values fall back to MONTHLY
        so a single malformed definition cannot break a whole window.
        """
        if isinstance(value, Frequency):
            return value
        if value:
            normalized = str(value).strip().lower().replace("_", "-")
            normalized = _FREQUENCY_ALIASES.get(normalized, normalized)
            try:
                return cls(normalized)
            except ValueError:
                pass
        logger.warning(f"Unknown frequency {value!r}, falling back to monthly")
        return cls.MONTHLY


_FREQUENCY_ALIASES = {
    "biweekly": "bi-weekly",
    "fortnightly": "bi-weekly",
    "semimonthly": "semi-monthly",
    "annually": "yearly",
    "annual": "yearly",
}

# Debt accounts only support a subset of frequencies
DEBT_FREQUENCIES = (Frequency.WEEKLY, Frequency.BI_WEEKLY, Frequency.MONTHLY)


def to_day(value: Union[date, datetime, None]) -> Optional[date]:
    """Strip the time-of-day component so comparisons are day-granular."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    return value


# =============================================================================
# Obligations
# =============================================================================

@dataclass(frozen=True)
class Obligation:
    """Shared interface of every obligation variant."""

    id: str
    kind: ObligationKind
    amount: Decimal
    frequency: Frequency
    name: str = ""
    anchor_date: Optional[date] = None
    end_date: Optional[date] = None

    source: ObligationSource = field(init=False, default=ObligationSource.RECURRING)

    def __post_init__(self):
        object.__setattr__(self, "frequency", Frequency.parse(self.frequency))
        object.__setattr__(self, "kind", ObligationKind(self.kind))
        object.__setattr__(self, "amount", Decimal(str(self.amount)))
        object.__setattr__(self, "anchor_date", to_day(self.anchor_date))
        object.__setattr__(self, "end_date", to_day(self.end_date))

    @property
    def ref(self) -> "ObligationRef":
        return ObligationRef(self.source, self.id)


@dataclass(frozen=True)
class RecurringObligation(Obligation):
    """Income, fixed expense or subscription defined by a recurring item."""

    semi_monthly_first_day: Optional[int] = None
    semi_monthly_second_day: Optional[int] = None

    source: ObligationSource = field(init=False, default=ObligationSource.RECURRING)

    @property
    def semi_monthly_days(self) -> Optional[Tuple[int, int]]:
        """Both pay days in ascending order, or None if not configured."""
        first, second = self.semi_monthly_first_day, self.semi_monthly_second_day
        if not first or not second:
            return None
        return tuple(sorted((int(first), int(second))))


@dataclass(frozen=True)
class DebtObligation(Obligation):
    """Minimum payment on a debt account."""

    payment_day_of_month: Optional[int] = None
    next_due_date: Optional[date] = None

    source: ObligationSource = field(init=False, default=ObligationSource.DEBT)

    def __post_init__(self):
        super().__post_init__()
        object.__setattr__(self, "next_due_date", to_day(self.next_due_date))
        if self.frequency not in DEBT_FREQUENCIES:
            logger.warning(
                f"Debt {self.id} has unsupported payment frequency "
                f"{self.frequency.value}, using monthly"
            )
            object.__setattr__(self, "frequency", Frequency.MONTHLY)


@dataclass(frozen=True)
class ObligationRef:
    """Storage reference of an obligation: (source table, row id)."""

    source: ObligationSource
    id: str

    def __post_init__(self):
        object.__setattr__(self, "source", ObligationSource(self.source))


# =============================================================================
# Periods
# =============================================================================

@dataclass(frozen=True)
class Period:
    """One concrete due date of an obligation."""

    obligation_id: str
    period_date: date

    def __post_init__(self):
        object.__setattr__(self, "period_date", to_day(self.period_date))


class OverdueSeverity(str, Enum):
    OVERDUE = "overdue"
    URGENT = "urgent"
    CRITICAL = "critical"

    @classmethod
    def from_days(cls, days_past_due: int) -> "OverdueSeverity":
        if days_past_due >= 30:
            return cls.CRITICAL
        if days_past_due >= 7:
            return cls.URGENT
        return cls.OVERDUE


@dataclass
class AnnotatedPeriod:
    """A period with its completion state."""

    obligation_id: str
    item_type: ObligationSource
    kind: ObligationKind
    item_name: str
    amount: Decimal
    period_date: date
    is_completed: bool
    is_overdue: bool
    auto_completed: bool = False
    days_past_due: Optional[int] = None
    completed_date: Optional[date] = None
    transaction_id: Optional[str] = None

    @property
    def period(self) -> Period:
        return Period(self.obligation_id, self.period_date)

    @property
    def ref(self) -> ObligationRef:
        return ObligationRef(self.item_type, self.obligation_id)

    @property
    def severity(self) -> Optional[OverdueSeverity]:
        if not self.is_overdue or self.days_past_due is None:
            return None
        return OverdueSeverity.from_days(self.days_past_due)

    def to_dict(self) -> dict:
        return {
            "obligation_id": self.obligation_id,
            "item_type": self.item_type.value,
            "kind": self.kind.value,
            "item_name": self.item_name,
            "amount": str(self.amount),
            "period_date": self.period_date.isoformat(),
            "is_completed": self.is_completed,
            "is_overdue": self.is_overdue,
            "auto_completed": self.auto_completed,
            "days_past_due": self.days_past_due,
            "completed_date": self.completed_date.isoformat() if self.completed_date else None,
            "transaction_id": self.transaction_id,
            "severity": self.severity.value if self.severity else None,
        }
