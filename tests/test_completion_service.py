"""
Tests for the Completion and Obligation services.

Obligation definitions are stored rows; the tracking start date is passed
explicitly, as the routes do.
"""

import pytest
import pytest_asyncio
from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, patch

from cadence.data.debts.models import DebtAccount
from cadence.data.recurring.models import RecurringItem
from cadence.data.transactions.models import Transaction
from cadence.schedule.business_days import BusinessCalendar
from cadence.schedule.models import ObligationRef, ObligationSource
from cadence.services.completion_ledger import CompletionLedger, LedgerError
from cadence.services.completions import CompletionService, lookback_start
from cadence.services.obligations import ObligationService


# =============================================================================
# Fixtures
# =============================================================================

@pytest_asyncio.fixture
async def rent(db_session, user):
    item = RecurringItem(
        id="rec_rent",
        user_id=user.id,
        name="Rent",
        item_type="fixed-expense",
        amount=Decimal("1500"),
        frequency="monthly",
        start_date=date(2024, 1, 1),
    )
    db_session.add(item)
    await db_session.commit()
    return item


@pytest_asyncio.fixture
async def card(db_session, user):
    account = DebtAccount(
        id="debt_card",
        user_id=user.id,
        name="Visa",
        debt_type="credit-card",
        balance=Decimal("2400"),
        minimum_payment=Decimal("75"),
        payment_day_of_month=28,
        next_due_date=date(2024, 3, 28),
        payment_frequency="monthly",
    )
    db_session.add(account)
    await db_session.commit()
    return account


@pytest.fixture
def service(db_session, user):
    return CompletionService(db_session, user.id, calendar=BusinessCalendar())


async def load_obligations(db_session, user):
    return await ObligationService(db_session, user.id).list_obligations()


# =============================================================================
# ObligationService
# =============================================================================

class TestObligationService:

    @pytest.mark.asyncio
    async def test_lists_both_sources(self, db_session, user, rent, card):
        obligations = await load_obligations(db_session, user)

        assert {o.ref for o in obligations} == {
            ObligationRef(ObligationSource.RECURRING, "rec_rent"),
            ObligationRef(ObligationSource.DEBT, "debt_card"),
        }
        debt = next(o for o in obligations if o.source == ObligationSource.DEBT)
        assert debt.amount == Decimal("75")

    @pytest.mark.asyncio
    async def test_malformed_rows_are_skipped(self, db_session, user, rent, caplog):
        db_session.add(RecurringItem(
            id="rec_bad",
            user_id=user.id,
            name="Broken",
            item_type="not-a-kind",
            amount=Decimal("1"),
            frequency="monthly",
        ))
        await db_session.commit()

        obligations = await load_obligations(db_session, user)

        assert [o.id for o in obligations] == ["rec_rent"]
        assert "Skipping malformed obligation rec_bad" in caplog.text

    @pytest.mark.asyncio
    async def test_get_obligation_is_scoped_to_user(self, db_session, rent):
        service = ObligationService(db_session, "user_other")

        assert await service.get_obligation(ObligationRef("recurring", "rec_rent")) is None

    @pytest.mark.asyncio
    async def test_delete_removes_completions(self, db_session, user, rent, card, service):
        rent_ref = ObligationRef("recurring", "rec_rent")
        card_ref = ObligationRef("debt", "debt_card")
        await service.mark_complete(rent_ref, date(2024, 1, 1))
        await service.mark_complete(rent_ref, date(2024, 2, 1))
        await service.mark_complete(card_ref, date(2024, 2, 28))

        deleted = await ObligationService(db_session, user.id).delete_obligation(rent_ref)

        assert deleted
        remaining = await CompletionLedger(db_session, user.id).list_in_window(date(2024, 1, 1), date(2024, 12, 31))
        assert [r.ref for r in remaining] == [card_ref]
        assert await ObligationService(db_session, user.id).get_obligation(rent_ref) is None

    @pytest.mark.asyncio
    async def test_delete_unknown_obligation(self, db_session, user):
        deleted = await ObligationService(db_session, user.id).delete_obligation(ObligationRef("debt", "debt_none"))

        assert not deleted


# =============================================================================
# Queries
# =============================================================================

class TestGetPeriods:

    @pytest.mark.asyncio
    async def test_merges_ledger_records(self, db_session, user, rent, card, service):
        await service.mark_complete(ObligationRef("recurring", "rec_rent"), date(2024, 2, 1), date(2024, 2, 2))
        obligations = await load_obligations(db_session, user)

        periods = await service.get_periods(
            obligations, date(2024, 2, 1), date(2024, 2, 29), today=date(2024, 3, 1)
        )

        assert [(p.obligation_id, p.period_date, p.is_completed, p.is_overdue) for p in periods] == [
            ("rec_rent", date(2024, 2, 1), True, False),
            ("debt_card", date(2024, 2, 28), False, True),
        ]
        assert periods[0].completed_date == date(2024, 2, 2)

    @pytest.mark.asyncio
    async def test_no_obligations(self, service):
        assert await service.get_periods([], date(2024, 1, 1), date(2024, 12, 31)) == []

    @pytest.mark.asyncio
    async def test_ledger_failure_is_not_treated_as_incomplete(self, db_session, user, rent, service):
        obligations = await load_obligations(db_session, user)

        with patch.object(service.ledger, "list_in_window", AsyncMock(side_effect=LedgerError("unavailable"))):
            with pytest.raises(LedgerError):
                await service.get_periods(obligations, date(2024, 1, 1), date(2024, 3, 1))

    @pytest.mark.asyncio
    async def test_overdue_uses_tracking_start(self, db_session, user, rent, service):
        obligations = await load_obligations(db_session, user)

        overdue = await service.get_overdue_periods(
            obligations, tracking_start_date=date(2024, 3, 15), today=date(2024, 6, 10)
        )

        assert [p.period_date for p in overdue] == [date(2024, 4, 1), date(2024, 5, 1), date(2024, 6, 1)]

    @pytest.mark.asyncio
    async def test_overdue_default_lookback(self, db_session, user, rent, service):
        obligations = await load_obligations(db_session, user)

        overdue = await service.get_overdue_periods(obligations, today=date(2024, 9, 10))

        # Six months back from 2024-09-10
        assert [p.period_date for p in overdue] == [
            date(2024, 4, 1),
            date(2024, 5, 1),
            date(2024, 6, 1),
            date(2024, 7, 1),
            date(2024, 8, 1),
            date(2024, 9, 1),
        ]

    @pytest.mark.asyncio
    async def test_available_periods_pick_earliest_overdue(self, db_session, user, rent, service):
        await service.mark_complete(ObligationRef("recurring", "rec_rent"), date(2024, 4, 1))
        obligation = await ObligationService(db_session, user.id).get_obligation(ObligationRef("recurring", "rec_rent"))

        selection = await service.get_available_periods(
            obligation, tracking_start_date=date(2024, 4, 1), today=date(2024, 6, 10)
        )

        assert selection.available
        assert [p.period_date for p in selection.periods] == [
            date(2024, 4, 1),
            date(2024, 5, 1),
            date(2024, 6, 1),
            date(2024, 7, 1),
            date(2024, 8, 1),
            date(2024, 9, 1),
        ]
        assert selection.selected.period_date == date(2024, 5, 1)

    @pytest.mark.asyncio
    async def test_available_periods_pick_next_open(self, db_session, user, rent, service):
        obligation = await ObligationService(db_session, user.id).get_obligation(ObligationRef("recurring", "rec_rent"))

        selection = await service.get_available_periods(
            obligation, tracking_start_date=date(2024, 6, 10), today=date(2024, 6, 10)
        )

        assert selection.selected.period_date == date(2024, 7, 1)

    @pytest.mark.asyncio
    async def test_calendar_starts_at_tracking_start(self, db_session, user, rent, service):
        obligations = await load_obligations(db_session, user)

        periods = await service.get_calendar_periods(
            obligations, 2024, tracking_start_date=date(2024, 10, 5), today=date(2024, 10, 5)
        )

        assert [p.period_date for p in periods] == [date(2024, 11, 1), date(2024, 12, 1)]

    @pytest.mark.asyncio
    async def test_calendar_full_year(self, db_session, user, rent, service):
        obligations = await load_obligations(db_session, user)

        periods = await service.get_calendar_periods(obligations, 2024, today=date(2024, 1, 1))

        assert len(periods) == 12


class TestLookbackStart:

    def test_tracking_start_wins(self):
        assert lookback_start(date(2024, 2, 1), date(2024, 9, 1)) == date(2024, 2, 1)

    def test_default_six_months(self):
        assert lookback_start(None, date(2024, 8, 31)) == date(2024, 2, 29)


# =============================================================================
# Mutations
# =============================================================================

class TestMutations:

    @pytest.mark.asyncio
    async def test_mark_complete_is_idempotent(self, db_session, user, rent, service):
        ref = ObligationRef("recurring", "rec_rent")

        first = await service.mark_complete(ref, date(2024, 1, 1), date(2024, 1, 3))
        second = await service.mark_complete(ref, date(2024, 1, 1), date(2024, 1, 4))

        assert first.id == second.id
        assert second.completed_date == date(2024, 1, 4)

    @pytest.mark.asyncio
    async def test_mark_complete_defaults_to_today(self, rent, service):
        record = await service.mark_complete(ObligationRef("recurring", "rec_rent"), date(2024, 1, 1))

        assert record.completed_date == date.today()

    @pytest.mark.asyncio
    async def test_manual_completion_supersedes_auto_completion(self, db_session, user, rent, service):
        ref = ObligationRef("recurring", "rec_rent")
        await service.mark_complete(ref, date(2024, 1, 1), date(2024, 1, 20))
        obligations = await load_obligations(db_session, user)

        periods = await service.get_periods(
            obligations, date(2024, 1, 1), date(2024, 1, 31),
            tracking_start_date=date(2024, 3, 1), today=date(2024, 3, 1),
        )

        assert periods[0].completed_date == date(2024, 1, 20)

    @pytest.mark.asyncio
    async def test_unmark(self, db_session, user, rent, service):
        ref = ObligationRef("recurring", "rec_rent")
        await service.mark_complete(ref, date(2024, 1, 1))

        assert await service.unmark_complete(ref, date(2024, 1, 1)) is True
        assert await service.unmark_complete(ref, date(2024, 1, 1)) is False

    @pytest.mark.asyncio
    async def test_unmark_before_tracking_start_stays_completed(self, db_session, user, rent, service):
        ref = ObligationRef("recurring", "rec_rent")
        await service.mark_complete(ref, date(2024, 1, 1))
        await service.unmark_complete(ref, date(2024, 1, 1))
        obligations = await load_obligations(db_session, user)

        periods = await service.get_periods(
            obligations, date(2024, 1, 1), date(2024, 1, 31),
            tracking_start_date=date(2024, 2, 1), today=date(2024, 3, 1),
        )

        assert periods[0].is_completed and periods[0].auto_completed

    @pytest.mark.asyncio
    async def test_remove_by_linked_transaction(self, db_session, user, rent, service):
        db_session.add(Transaction(
            id="txn_1", user_id=user.id, transaction_type="expense",
            amount=Decimal("1500"), transaction_date=date(2024, 2, 2),
        ))
        await db_session.commit()
        ref = ObligationRef("recurring", "rec_rent")
        await service.mark_complete(ref, date(2024, 2, 1), date(2024, 2, 2), transaction_id="txn_1")
        await service.mark_complete(ref, date(2024, 3, 1), date(2024, 3, 1))

        assert await service.remove_by_linked_transaction("txn_1") == 1
        obligations = await load_obligations(db_session, user)
        periods = await service.get_periods(obligations, date(2024, 2, 1), date(2024, 3, 1), today=date(2024, 3, 5))
        assert [(p.period_date, p.is_overdue) for p in periods] == [
            (date(2024, 2, 1), True),
            (date(2024, 3, 1), False),
        ]
