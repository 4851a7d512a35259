"""
Tests for the Completion Ledger accessor.

Runs against an in-memory SQLite database with foreign keys enforced.
"""

import pytest
from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, patch

from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from cadence.data.completions.models import RecurringCompletion
from cadence.data.transactions.models import Transaction
from cadence.schedule.models import ObligationRef, ObligationSource
from cadence.services.completion_ledger import CompletionLedger, LedgerError

RENT = ObligationRef(ObligationSource.RECURRING, "rec_rent")
CARD = ObligationRef(ObligationSource.DEBT, "debt_card")


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def ledger(db_session, user):
    return CompletionLedger(db_session, user.id)


async def add_transaction(db_session, user, transaction_id, day=date(2024, 2, 3)):
    db_session.add(Transaction(
        id=transaction_id,
        user_id=user.id,
        transaction_type="expense",
        amount=Decimal("1500"),
        transaction_date=day,
    ))
    await db_session.commit()


async def count_rows(db_session):
    result = await db_session.execute(select(func.count()).select_from(RecurringCompletion))
    return result.scalar_one()


# =============================================================================
# Upsert
# =============================================================================

class TestUpsert:

    @pytest.mark.asyncio
    async def test_insert_then_update_keeps_one_row(self, db_session, user, ledger):
        await add_transaction(db_session, user, "txn_1")
        await add_transaction(db_session, user, "txn_2")

        first = await ledger.upsert(RENT, date(2024, 2, 1), date(2024, 2, 3), "txn_1")
        second = await ledger.upsert(RENT, date(2024, 2, 1), date(2024, 2, 5), "txn_2")

        assert await count_rows(db_session) == 1
        assert second.id == first.id
        assert second.completed_date == date(2024, 2, 5)
        assert second.transaction_id == "txn_2"

    @pytest.mark.asyncio
    async def test_same_period_of_different_obligations(self, db_session, ledger):
        await ledger.upsert(RENT, date(2024, 2, 1), date(2024, 2, 1))
        await ledger.upsert(CARD, date(2024, 2, 1), date(2024, 2, 1))

        assert await count_rows(db_session) == 2

    @pytest.mark.asyncio
    async def test_same_id_different_source_is_distinct(self, db_session, ledger):
        await ledger.upsert(ObligationRef("recurring", "shared_id"), date(2024, 2, 1), date(2024, 2, 1))
        await ledger.upsert(ObligationRef("debt", "shared_id"), date(2024, 2, 1), date(2024, 2, 1))

        records = await ledger.list_in_window(
            date(2024, 1, 1), date(2024, 12, 31), refs=[ObligationRef("debt", "shared_id")]
        )

        assert await count_rows(db_session) == 2
        assert [r.item_type for r in records] == ["debt"]


# =============================================================================
# Reads
# =============================================================================

class TestReads:

    @pytest.mark.asyncio
    async def test_list_in_window_is_inclusive(self, ledger):
        for day in (date(2024, 1, 1), date(2024, 2, 1), date(2024, 3, 1)):
            await ledger.upsert(RENT, day, day)

        records = await ledger.list_in_window(date(2024, 1, 1), date(2024, 2, 1))

        assert [r.period_date for r in records] == [date(2024, 1, 1), date(2024, 2, 1)]

    @pytest.mark.asyncio
    async def test_list_is_scoped_to_user(self, db_session, user, ledger):
        from cadence.data.users.models import User

        db_session.add(User(id="user_other", email="other@example.com"))
        await db_session.commit()
        await CompletionLedger(db_session, "user_other").upsert(RENT, date(2024, 1, 1), date(2024, 1, 1))

        assert await ledger.list_in_window(date(2024, 1, 1), date(2024, 1, 31)) == []

    @pytest.mark.asyncio
    async def test_empty_ref_filter(self, ledger):
        await ledger.upsert(RENT, date(2024, 1, 1), date(2024, 1, 1))

        assert await ledger.list_in_window(date(2024, 1, 1), date(2024, 1, 31), refs=[]) == []

    @pytest.mark.asyncio
    async def test_find_missing_returns_none(self, ledger):
        assert await ledger.find(RENT, date(2024, 1, 1)) is None


# =============================================================================
# Batch insert
# =============================================================================

class TestInsertMissing:

    @pytest.mark.asyncio
    async def test_skips_existing_rows(self, db_session, ledger):
        await ledger.upsert(RENT, date(2024, 1, 1), date(2024, 1, 9))

        inserted = await ledger.insert_missing([
            (RENT, date(2024, 1, 1)),
            (RENT, date(2024, 2, 1)),
            (CARD, date(2024, 1, 28)),
        ])

        assert inserted == 2
        assert await count_rows(db_session) == 3
        kept = await ledger.find(RENT, date(2024, 1, 1))
        assert kept.completed_date == date(2024, 1, 9)
        added = await ledger.find(CARD, date(2024, 1, 28))
        assert added.completed_date == date(2024, 1, 28)
        assert added.transaction_id is None

    @pytest.mark.asyncio
    async def test_empty_batch(self, ledger):
        assert await ledger.insert_missing([]) == 0

    @pytest.mark.asyncio
    async def test_large_batch_is_split(self, db_session, ledger):
        periods = [(ObligationRef("recurring", f"rec_{i}"), date(2024, 1, 1)) for i in range(1200)]

        assert await ledger.insert_missing(periods) == 1200
        assert await ledger.insert_missing(periods) == 0
        assert await count_rows(db_session) == 1200


# =============================================================================
# Deletes
# =============================================================================

class TestDeletes:

    @pytest.mark.asyncio
    async def test_delete_missing_is_noop(self, ledger):
        assert await ledger.delete(RENT, date(2024, 1, 1)) == 0

    @pytest.mark.asyncio
    async def test_delete_by_transaction(self, db_session, user, ledger):
        await add_transaction(db_session, user, "txn_1")
        await ledger.upsert(RENT, date(2024, 1, 1), date(2024, 1, 2), "txn_1")
        await ledger.upsert(CARD, date(2024, 1, 28), date(2024, 1, 28), "txn_1")
        await ledger.upsert(RENT, date(2024, 2, 1), date(2024, 2, 1))

        assert await ledger.delete_by_transaction("txn_1") == 2
        assert await count_rows(db_session) == 1

    @pytest.mark.asyncio
    async def test_deleting_transaction_first_orphans_completion(self, db_session, user, ledger):
        """Once the transaction row is gone the link is nulled and the lookup finds nothing."""
        await add_transaction(db_session, user, "txn_1")
        await ledger.upsert(RENT, date(2024, 1, 1), date(2024, 1, 2), "txn_1")

        transaction = await db_session.get(Transaction, "txn_1")
        await db_session.delete(transaction)
        await db_session.commit()

        assert await ledger.delete_by_transaction("txn_1") == 0
        record = await ledger.find(RENT, date(2024, 1, 1))
        assert record is not None
        assert record.transaction_id is None

    @pytest.mark.asyncio
    async def test_delete_for_obligation(self, db_session, ledger):
        await ledger.upsert(RENT, date(2024, 1, 1), date(2024, 1, 1))
        await ledger.upsert(RENT, date(2024, 2, 1), date(2024, 2, 1))
        await ledger.upsert(CARD, date(2024, 1, 28), date(2024, 1, 28))

        assert await ledger.delete_for_obligation(RENT) == 2
        assert await count_rows(db_session) == 1


# =============================================================================
# Failures
# =============================================================================

class TestFailures:

    @pytest.mark.asyncio
    async def test_read_failure_raises_ledger_error(self, db_session, ledger, caplog):
        error = OperationalError("SELECT", {}, Exception("database is locked"))
        with patch.object(db_session, "execute", AsyncMock(side_effect=error)):
            with pytest.raises(LedgerError):
                await ledger.list_in_window(date(2024, 1, 1), date(2024, 1, 31))

        assert "Completion ledger list failed" in caplog.text

    @pytest.mark.asyncio
    async def test_write_failure_rolls_back(self, db_session, ledger):
        error = OperationalError("INSERT", {}, Exception("disk I/O error"))
        with patch.object(db_session, "execute", AsyncMock(side_effect=error)), \
                patch.object(db_session, "rollback", AsyncMock()) as rollback:
            with pytest.raises(LedgerError):
                await ledger.upsert(RENT, date(2024, 1, 1), date(2024, 1, 1))

        rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_batch_failure_raises_ledger_error(self, db_session, ledger):
        error = OperationalError("INSERT", {}, Exception("disk I/O error"))
        with patch.object(db_session, "execute", AsyncMock(side_effect=error)):
            with pytest.raises(LedgerError):
                await ledger.insert_missing([(RENT, date(2024, 1, 1))])
