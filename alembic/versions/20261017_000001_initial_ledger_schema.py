"""Initial ledger schema

Revision ID: 20261017_000001
Revises:
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '20261017_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

MONEY = sa.DECIMAL(precision=30, scale=10)
JSON = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('telegram_id', sa.BigInteger(), nullable=False),
        sa.Column('username', sa.String(255), nullable=True),
        sa.Column('first_name', sa.String(255), nullable=True),
        sa.Column('referral_code', sa.String(32), nullable=False),
        sa.Column('referred_by', sa.String(32), nullable=True,
                  comment='Referral code of the inviting user'),
        sa.Column('first_ad_watched', sa.Boolean(), nullable=False, server_default='false',
                  comment='Activation gate for referral bonuses'),
        sa.Column('ton_wallet_address', sa.String(255), nullable=True),
        sa.Column('usdt_wallet_address', sa.String(255), nullable=True),
        sa.Column('telegram_stars_username', sa.String(255), nullable=True),
        sa.Column('balance', MONEY, nullable=False, server_default='0'),
        sa.Column('total_earned', MONEY, nullable=False, server_default='0'),
        sa.Column('ads_watched', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('ads_watched_today', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('channel_visited', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('app_shared', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('link_shared', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('friend_invited', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('friends_invited', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_ad_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_reset_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_reset_date', sa.String(10), nullable=True),
        sa.Column('is_banned', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('total_earned >= 0', name='check_user_total_earned_non_negative'),
        sa.CheckConstraint('ads_watched_today >= 0', name='check_user_ads_watched_today_non_negative'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_telegram_id', 'users', ['telegram_id'], unique=True)
    op.create_index('ix_users_username', 'users', ['username'])
    op.create_index('ix_users_referral_code', 'users', ['referral_code'], unique=True)
    op.create_index('ix_users_referred_by', 'users', ['referred_by'])
    op.create_index('ix_users_last_reset_at', 'users', ['last_reset_at'])

    op.create_table(
        'user_balances',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('balance', MONEY, nullable=False, server_default='0'),
        sa.Column('secondary_balance', MONEY, nullable=False, server_default='0'),
        sa.Column('usd_balance', MONEY, nullable=False, server_default='0'),
        sa.Column('bonus_balance', MONEY, nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('balance >= 0', name='check_balance_non_negative'),
        sa.CheckConstraint('secondary_balance >= 0', name='check_secondary_balance_non_negative'),
        sa.CheckConstraint('usd_balance >= 0', name='check_usd_balance_non_negative'),
        sa.CheckConstraint('bonus_balance >= 0', name='check_bonus_balance_non_negative'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_user_balances_user_id', 'user_balances', ['user_id'], unique=True)

    op.create_table(
        'earnings',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('currency', sa.String(20), nullable=False, server_default='primary'),
        sa.Column('source', sa.String(50), nullable=False),
        sa.Column('origin', sa.String(20), nullable=False, server_default='direct'),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('metadata', JSON, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_earnings_user_id', 'earnings', ['user_id'])
    op.create_index('idx_earnings_user_source', 'earnings', ['user_id', 'source'])
    op.create_index('idx_earnings_user_created', 'earnings', ['user_id', 'created_at'])

    op.create_table(
        'referrals',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('referrer_id', sa.Integer(), nullable=False),
        sa.Column('referee_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('reward_amount', MONEY, nullable=False, server_default='0'),
        sa.Column('usd_reward_amount', MONEY, nullable=False, server_default='0'),
        sa.Column('secondary_reward_amount', MONEY, nullable=False, server_default='0'),
        sa.Column('activated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['referrer_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['referee_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('referrer_id', 'referee_id', name='uq_referrals_pair')
    )
    op.create_index('ix_referrals_referrer_id', 'referrals', ['referrer_id'])
    op.create_index('ix_referrals_referee_id', 'referrals', ['referee_id'])
    op.create_index('ix_referrals_status', 'referrals', ['status'])

    op.create_table(
        'referral_commissions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('referrer_id', sa.Integer(), nullable=False),
        sa.Column('referred_user_id', sa.Integer(), nullable=False),
        sa.Column('original_earning_id', sa.Integer(), nullable=False),
        sa.Column('commission_amount', MONEY, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['referrer_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['referred_user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['original_earning_id'], ['earnings.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('original_earning_id')
    )
    op.create_index('ix_referral_commissions_referrer_id', 'referral_commissions', ['referrer_id'])
    op.create_index('ix_referral_commissions_referred_user_id', 'referral_commissions', ['referred_user_id'])

    op.create_table(
        'withdrawals',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('method', sa.String(20), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('details', JSON, nullable=False),
        sa.Column('deducted', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('refunded', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('transaction_hash', sa.String(255), nullable=True),
        sa.Column('admin_notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_withdrawals_user_id', 'withdrawals', ['user_id'])
    op.create_index('ix_withdrawals_status', 'withdrawals', ['status'])
    op.create_index('idx_withdrawals_user_status', 'withdrawals', ['user_id', 'status'])

    op.create_table(
        'daily_tasks',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('task_level', sa.Integer(), nullable=False),
        sa.Column('progress', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('required', sa.Integer(), nullable=False),
        sa.Column('completed', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('claimed', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('reward_amount', MONEY, nullable=False),
        sa.Column('reset_date', sa.String(10), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('claimed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'task_level', 'reset_date', name='uq_daily_tasks_user_level_date')
    )
    op.create_index('ix_daily_tasks_user_id', 'daily_tasks', ['user_id'])
    op.create_index('ix_daily_tasks_reset_date', 'daily_tasks', ['reset_date'])

    op.create_table(
        'admin_settings',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('setting_key', sa.String(100), nullable=False),
        sa.Column('setting_value', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_admin_settings_setting_key', 'admin_settings', ['setting_key'], unique=True)


def downgrade() -> None:
    op.drop_table('admin_settings')
    op.drop_table('daily_tasks')
    op.drop_table('withdrawals')
    op.drop_table('referral_commissions')
    op.drop_table('referrals')
    op.drop_table('earnings')
    op.drop_table('user_balances')
    op.drop_table('users')
