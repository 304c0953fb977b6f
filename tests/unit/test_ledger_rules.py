"""
Tests for ledger rules that need no database.

Covers:
- Commission rounding and eligibility (origin guard)
- Balance snapshot accessors
- Withdrawal and user model helpers
- Process settings validation
"""

from decimal import Decimal
from types import SimpleNamespace

import pytest
from pydantic import ValidationError as PydanticValidationError

from adledger.config.settings import Settings
from adledger.models import User, UserBalance, Withdrawal
from adledger.models.enums import (
    DERIVED_SOURCES,
    Currency,
    EarningOrigin,
    EarningSource,
    WithdrawalMethod,
    WithdrawalStatus,
)
from adledger.services.ledger.balance_store import BalanceSnapshot
from adledger.services.referral.commission import (
    CommissionCascade,
    calculate_commission,
)


def _earning(**overrides) -> SimpleNamespace:
    data = {
        "origin": EarningOrigin.DIRECT.value,
        "source": EarningSource.AD_WATCH.value,
        "currency": Currency.PRIMARY.value,
        "amount": Decimal("1000"),
    }
    data.update(overrides)
    return SimpleNamespace(**data)


class TestCommission:
    """Commission = amount x rate, 8 places."""

    def test_ten_percent(self):
        assert calculate_commission(Decimal("1000"), Decimal("0.10")) == Decimal("100")

    def test_rounding(self):
        assert calculate_commission(
            Decimal("0.000000125"), Decimal("0.5")
        ) == Decimal("0.00000006")

    def test_direct_ad_watch_is_eligible(self):
        assert CommissionCascade.is_eligible(_earning()) is True

    @pytest.mark.parametrize(
        "overrides",
        [
            {"origin": EarningOrigin.DERIVED.value},
            {"source": EarningSource.REFERRAL_COMMISSION.value},
            {"source": EarningSource.TASK_COMPLETION.value},
            {"currency": Currency.USD.value},
            {"amount": Decimal("0")},
            {"amount": Decimal("-5")},
        ],
    )
    def test_ineligible_earnings(self, overrides):
        assert CommissionCascade.is_eligible(_earning(**overrides)) is False

    def test_derived_sources(self):
        assert EarningSource.REFERRAL in DERIVED_SOURCES
        assert EarningSource.REFERRAL_COMMISSION in DERIVED_SOURCES
        assert EarningSource.AD_WATCH not in DERIVED_SOURCES


class TestBalanceSnapshot:
    """Snapshot reads per currency."""

    def test_missing_row_is_zero(self):
        snapshot = BalanceSnapshot.from_row(None)

        assert snapshot == BalanceSnapshot()
        assert snapshot.get(Currency.USD) == Decimal("0")

    def test_from_row(self):
        row = UserBalance(
            user_id=1,
            balance=Decimal("10"),
            secondary_balance=Decimal("20"),
            usd_balance=Decimal("0.5"),
            bonus_balance=Decimal("1"),
        )

        snapshot = BalanceSnapshot.from_row(row)

        assert snapshot.get(Currency.PRIMARY) == Decimal("10")
        assert snapshot.get(Currency.SECONDARY) == Decimal("20")
        assert snapshot.get("usd") == Decimal("0.5")
        assert snapshot.get(Currency.BONUS) == Decimal("1")

    def test_column_names(self):
        assert UserBalance.column_name(Currency.PRIMARY) == "balance"
        assert UserBalance.column_name(Currency.USD) == "usd_balance"


class TestWithdrawalModel:
    """Amounts recorded in request details."""

    def test_total_deducted_from_details(self):
        withdrawal = Withdrawal(
            amount=Decimal("9.5"),
            details={"totalDeducted": "10.00", "secondaryDeducted": "100"},
            status=WithdrawalStatus.PENDING.value,
        )

        assert withdrawal.total_deducted == Decimal("10.00")
        assert withdrawal.secondary_deducted == Decimal("100")
        assert withdrawal.is_pending is True

    def test_legacy_request_without_details(self):
        withdrawal = Withdrawal(
            amount=Decimal("3"),
            details={},
            status=WithdrawalStatus.APPROVED.value,
        )

        assert withdrawal.total_deducted == Decimal("3")
        assert withdrawal.secondary_deducted == Decimal("0")
        assert withdrawal.is_pending is False

    def test_approved_status_keeps_legacy_spelling(self):
        assert WithdrawalStatus.APPROVED.value == "Approved"


class TestUserModel:
    """Payout handle per rail."""

    def test_destination_for(self):
        user = User(
            ton_wallet_address="UQ-ton",
            usdt_wallet_address="T-usdt",
            telegram_stars_username="@stars",
        )

        assert user.destination_for(WithdrawalMethod.TON) == "UQ-ton"
        assert user.destination_for(WithdrawalMethod.USDT) == "T-usdt"
        assert user.destination_for(WithdrawalMethod.STARS) == "@stars"


class TestSettings:
    """Environment settings validation."""

    def test_sync_postgres_url_is_upgraded(self):
        settings = Settings(database_url="postgresql://u:p@localhost/db")

        assert settings.database_url == "postgresql+asyncpg://u:p@localhost/db"

    def test_unsupported_url_rejected(self):
        with pytest.raises(PydanticValidationError):
            Settings(database_url="mysql://localhost/db")

    def test_empty_bot_token_disables_notifications(self):
        settings = Settings(database_url="sqlite+aiosqlite://", telegram_bot_token="")

        assert settings.telegram_bot_token is None

    def test_malformed_bot_token_rejected(self):
        with pytest.raises(PydanticValidationError):
            Settings(database_url="sqlite+aiosqlite://", telegram_bot_token="nope")

    def test_reset_hour_bounds(self):
        with pytest.raises(PydanticValidationError):
            Settings(database_url="sqlite+aiosqlite://", reset_hour_utc=24)
