"""Add recurring obligation and completion ledger tables.

Creates users, recurring_items, debt_accounts, transactions,
user_preferences and recurring_completions.

recurring_completions holds at most one row per
(user_id, item_type, item_id, period_date); writers rely on that unique
constraint for INSERT ... ON CONFLICT.

Revision ID: c4d3e2f1a0b9
Revises:
Create Date: 2026-10-01

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'c4d3e2f1a0b9'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Users
    op.create_table(
        'users',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('currency', sa.String(), nullable=False, server_default='USD'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    # Recurring items (income, fixed expenses, subscriptions)
    op.create_table(
        'recurring_items',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('item_type', sa.String(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=15, scale=2), nullable=False, server_default='0'),
        sa.Column('frequency', sa.String(), nullable=False, server_default='monthly'),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('last_renewal_date', sa.Date(), nullable=True),
        sa.Column('semi_monthly_first_day', sa.Integer(), nullable=True),
        sa.Column('semi_monthly_second_day', sa.Integer(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('category', sa.String(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_recurring_items_user_id', 'recurring_items', ['user_id'])
    op.create_index('ix_recurring_items_user_type', 'recurring_items', ['user_id', 'item_type'])

    # Debt accounts
    op.create_table(
        'debt_accounts',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('debt_type', sa.String(), nullable=False, server_default='other'),
        sa.Column('balance', sa.Numeric(precision=15, scale=2), nullable=False, server_default='0'),
        sa.Column('apr', sa.Numeric(precision=7, scale=4), nullable=False, server_default='0'),
        sa.Column('minimum_payment', sa.Numeric(precision=15, scale=2), nullable=False, server_default='0'),
        sa.Column('payment_day_of_month', sa.Integer(), nullable=True),
        sa.Column('next_due_date', sa.Date(), nullable=True),
        sa.Column('payment_frequency', sa.String(), nullable=False, server_default='monthly'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_debt_accounts_user_id', 'debt_accounts', ['user_id'])

    # Transactions
    op.create_table(
        'transactions',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('transaction_type', sa.String(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('transaction_date', sa.Date(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_transactions_user_id', 'transactions', ['user_id'])
    op.create_index('ix_transactions_transaction_date', 'transactions', ['transaction_date'])
    op.create_index('ix_transactions_user_date', 'transactions', ['user_id', 'transaction_date'])

    # User preferences (one row per user)
    op.create_table(
        'user_preferences',
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('financial_tracking_start_date', sa.Date(), nullable=True),
        sa.Column('currency', sa.String(), nullable=False, server_default='USD'),
        sa.Column('timezone', sa.String(), nullable=False, server_default='UTC'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('user_id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
    )

    # Completion ledger
    op.create_table(
        'recurring_completions',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('item_type', sa.String(), nullable=False),
        sa.Column('item_id', sa.String(), nullable=False),
        sa.Column('period_date', sa.Date(), nullable=False),
        sa.Column('completed_date', sa.Date(), nullable=False),
        sa.Column('transaction_id', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['transaction_id'], ['transactions.id'], ondelete='SET NULL'),
        sa.UniqueConstraint('user_id', 'item_type', 'item_id', 'period_date', name='uq_recurring_completion_period'),
    )
    op.create_index('ix_recurring_completions_user_id', 'recurring_completions', ['user_id'])
    op.create_index('ix_recurring_completions_transaction_id', 'recurring_completions', ['transaction_id'])
    op.create_index('ix_recurring_completions_user_period', 'recurring_completions', ['user_id', 'period_date'])


def downgrade() -> None:
    op.drop_index('ix_recurring_completions_user_period', table_name='recurring_completions')
    op.drop_index('ix_recurring_completions_transaction_id', table_name='recurring_completions')
    op.drop_index('ix_recurring_completions_user_id', table_name='recurring_completions')
    op.drop_table('recurring_completions')

    op.drop_table('user_preferences')

    op.drop_index('ix_transactions_user_date', table_name='transactions')
    op.drop_index('ix_transactions_transaction_date', table_name='transactions')
    op.drop_index('ix_transactions_user_id', table_name='transactions')
    op.drop_table('transactions')

    op.drop_index('ix_debt_accounts_user_id', table_name='debt_accounts')
    op.drop_table('debt_accounts')

    op.drop_index('ix_recurring_items_user_type', table_name='recurring_items')
    op.drop_index('ix_recurring_items_user_id', table_name='recurring_items')
    op.drop_table('recurring_items')

    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
