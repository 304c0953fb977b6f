"""
Integration tests for the withdrawal lifecycle.

Covers:
- Request creation: fee, net amount, no balance change by default
- Approval deducts the gross amount exactly once
- Rejection refunds only withheld reservations
- Policy refusals
- Secondary token reservation
"""

import asyncio
from decimal import Decimal

import pytest
from sqlalchemy import select

from adledger.config import setting_keys as keys
from adledger.config.app_settings import StaticConfigProvider
from adledger.models import Earning, User, Withdrawal
from adledger.models.enums import (
    Currency,
    EarningSource,
    WithdrawalMethod,
    WithdrawalStatus,
)
from adledger.services.notification.core import Notifier
from adledger.services.rewards_engine import RewardsEngine
from adledger.utils.exceptions import InvariantViolation, ValidationError

USDT_ADDRESS = "TXn9ZfT2ZqRrHG7dZqS2Vb1wGp6Q9yLmVt"


@pytest.fixture
def make_payee(make_user, fund):
    """User with a USDT address and a funded USD balance."""

    async def factory(usd: str = "10", **overrides):
        data = {"usdt_wallet_address": USDT_ADDRESS}
        data.update(overrides)
        user = await make_user(**data)
        if Decimal(usd) > 0:
            await fund(user.id, usd)
        return user

    return factory


class TestCreateWithdrawal:
    """Pending request creation."""

    @pytest.mark.asyncio
    async def test_full_balance_request(self, engine, make_payee, fetch):
        user = await make_payee("10")

        receipt = await engine.create_withdrawal(user.id, "usdt", None)

        assert receipt.fee == Decimal("0.5")
        assert receipt.net_amount == Decimal("9.5")
        withdrawal = await fetch.withdrawal(receipt.id)
        assert withdrawal.status == WithdrawalStatus.PENDING
        assert withdrawal.amount == Decimal("9.5")
        assert withdrawal.total_deducted == Decimal("10")
        assert withdrawal.details["packageSelector"] == "FULL"
        assert withdrawal.details["destination"] == USDT_ADDRESS
        assert withdrawal.deducted is False
        assert withdrawal.refunded is False
        # Nothing is taken until approval
        assert (await engine.get_balance(user.id)).usd == Decimal("10")

    @pytest.mark.asyncio
    async def test_package_request(self, engine, make_payee, fetch):
        user = await make_payee("1")

        receipt = await engine.create_withdrawal(
            user.id, WithdrawalMethod.USDT, "0.4"
        )

        assert receipt.fee == Decimal("0.02")
        assert receipt.net_amount == Decimal("0.38")
        withdrawal = await fetch.withdrawal(receipt.id)
        assert withdrawal.details["packageSelector"] == "0.4"
        assert withdrawal.secondary_deducted == Decimal("0")

    @pytest.mark.asyncio
    async def test_fee_percentage_from_settings(self, make_engine, make_payee):
        engine = make_engine(**{keys.withdrawal_fee_key(WithdrawalMethod.USDT): "2"})
        user = await make_payee("10")

        receipt = await engine.create_withdrawal(user.id, "usdt")

        assert receipt.fee == Decimal("0.2")
        assert receipt.net_amount == Decimal("9.8")

    @pytest.mark.asyncio
    async def test_withhold_on_submit(self, make_engine, make_payee, fetch):
        engine = make_engine(**{keys.WITHDRAWAL_WITHHOLD_ON_SUBMIT: "true"})
        user = await make_payee("10")

        receipt = await engine.create_withdrawal(user.id, "usdt")

        withdrawal = await fetch.withdrawal(receipt.id)
        assert withdrawal.deducted is True
        assert (await engine.get_balance(user.id)).usd == Decimal("0")


class TestWithdrawalRefusals:
    """Each policy refuses with its own code."""

    async def _refusal_code(self, engine, user_id, method="usdt", package=None):
        with pytest.raises(ValidationError) as exc_info:
            await engine.create_withdrawal(user_id, method, package)
        return exc_info.value.code

    @pytest.mark.asyncio
    async def test_pending_request(self, engine, make_payee):
        user = await make_payee("10")
        await engine.create_withdrawal(user.id, "usdt", "0.2")

        assert await self._refusal_code(engine, user.id, package="0.4") == (
            "PENDING_REQUEST"
        )

    @pytest.mark.asyncio
    async def test_destination_missing(self, engine, make_payee):
        user = await make_payee("10", usdt_wallet_address=None)

        assert await self._refusal_code(engine, user.id) == "DESTINATION_MISSING"

    @pytest.mark.asyncio
    async def test_secondary_required(self, make_engine, make_payee):
        engine = make_engine(
            **{keys.WITHDRAWAL_SECONDARY_REQUIREMENT_ENABLED: "true"}
        )
        user = await make_payee("1")

        assert await self._refusal_code(engine, user.id, package="0.2") == (
            "SECONDARY_REQUIRED"
        )

    @pytest.mark.asyncio
    async def test_unknown_package(self, engine, make_payee):
        user = await make_payee("10")

        assert await self._refusal_code(engine, user.id, package="0.3") == (
            "UNKNOWN_PACKAGE"
        )

    @pytest.mark.asyncio
    async def test_ads_required(self, make_engine, make_payee):
        engine = make_engine(
            **{
                keys.WITHDRAWAL_AD_REQUIREMENT_ENABLED: "true",
                keys.MINIMUM_ADS_FOR_WITHDRAWAL: "2",
            }
        )
        user = await make_payee("10")
        await engine.record_ad_watch(user.id)

        assert await self._refusal_code(engine, user.id) == "ADS_REQUIRED"

        await engine.record_ad_watch(user.id)
        receipt = await engine.create_withdrawal(user.id, "usdt")
        assert receipt.id is not None

    @pytest.mark.asyncio
    async def test_invites_required(self, make_engine, make_payee):
        engine = make_engine(
            **{
                keys.WITHDRAWAL_INVITE_REQUIREMENT_ENABLED: "true",
                keys.MINIMUM_INVITES_FOR_WITHDRAWAL: "1",
            }
        )
        user = await make_payee("10")

        assert await self._refusal_code(engine, user.id) == "INVITES_REQUIRED"

    @pytest.mark.asyncio
    async def test_invites_counted_from_activation(
        self, make_engine, make_payee, make_user
    ):
        engine = make_engine(
            **{
                keys.WITHDRAWAL_INVITE_REQUIREMENT_ENABLED: "true",
                keys.MINIMUM_INVITES_FOR_WITHDRAWAL: "1",
            }
        )
        user = await make_payee("10")
        first = await make_user()
        second = await make_user()
        await engine.bind_referral(user.id, first.id)
        await engine.bind_referral(user.id, second.id)
        await engine.record_ad_watch(first.id)

        receipt = await engine.create_withdrawal(user.id, "usdt")
        await engine.reject_withdrawal(receipt.id)

        # The first invite was used up by the settled request
        assert await self._refusal_code(engine, user.id) == "INVITES_REQUIRED"

        # Bound before the settlement, activated after it
        await engine.record_ad_watch(second.id)
        accepted = await engine.create_withdrawal(user.id, "usdt")
        assert accepted.id is not None

    @pytest.mark.asyncio
    async def test_user_banned(self, engine, make_payee):
        user = await make_payee("10", is_banned=True)

        assert await self._refusal_code(engine, user.id) == "USER_BANNED"

    @pytest.mark.asyncio
    async def test_minimum_amount(self, engine, make_payee):
        user = await make_payee("10", ton_wallet_address="UQ-test-wallet")

        assert await self._refusal_code(
            engine, user.id, method="ton", package="0.2"
        ) == "MIN_AMOUNT"

    @pytest.mark.asyncio
    async def test_empty_balance(self, engine, make_payee):
        user = await make_payee("0")

        assert await self._refusal_code(engine, user.id) == "INVALID_AMOUNT"

    @pytest.mark.asyncio
    async def test_package_above_balance(self, engine, make_payee):
        user = await make_payee("0.3")

        assert await self._refusal_code(engine, user.id, package="0.4") == (
            "INSUFFICIENT_BALANCE"
        )

    @pytest.mark.asyncio
    async def test_unsupported_method(self, engine, make_payee):
        user = await make_payee("10")

        assert await self._refusal_code(engine, user.id, method="paypal") == (
            "INVALID_METHOD"
        )


class TestApproveWithdrawal:
    """Approval deducts the gross amount exactly once."""

    @pytest.mark.asyncio
    async def test_approve(
        self, engine, make_payee, fetch, mock_bot, drain_notifications
    ):
        user = await make_payee("10")
        receipt = await engine.create_withdrawal(user.id, "usdt")

        withdrawal = await engine.approve_withdrawal(
            receipt.id, admin_note="paid", transaction_hash="0xabc"
        )
        await drain_notifications()

        assert withdrawal.status == "Approved"
        stored = await fetch.withdrawal(receipt.id)
        assert (stored.deducted, stored.refunded) == (True, False)
        assert stored.transaction_hash == "0xabc"
        assert stored.admin_notes == "paid"
        assert (await engine.get_balance(user.id)).usd == Decimal("0")

        audit = await fetch.earnings(user.id, EarningSource.WITHDRAWAL)
        assert len(audit) == 1
        assert audit[0].amount == Decimal("-10")
        assert audit[0].currency == Currency.USD
        assert audit[0].metadata_["withdrawalId"] == receipt.id

        mock_bot.send_message.assert_awaited_once()
        assert mock_bot.send_message.await_args.kwargs["chat_id"] == user.telegram_id

    @pytest.mark.asyncio
    async def test_second_approval_refused(self, engine, make_payee):
        user = await make_payee("10")
        receipt = await engine.create_withdrawal(user.id, "usdt")
        await engine.approve_withdrawal(receipt.id)

        with pytest.raises(InvariantViolation):
            await engine.approve_withdrawal(receipt.id)
        with pytest.raises(InvariantViolation):
            await engine.reject_withdrawal(receipt.id)

        assert (await engine.get_balance(user.id)).usd == Decimal("0")

    @pytest.mark.asyncio
    async def test_concurrent_approvals_deduct_once(
        self, serialized_session_maker, mock_bot, default_config
    ):
        engine = RewardsEngine(
            serialized_session_maker,
            config_provider=StaticConfigProvider(default_config),
            notifier=Notifier(bot=mock_bot),
        )
        async with serialized_session_maker() as session:
            async with session.begin():
                user = User(
                    telegram_id=710000001,
                    username="payee",
                    first_name="Payee",
                    referral_code="PAYEE1",
                    usdt_wallet_address=USDT_ADDRESS,
                )
                session.add(user)
        await engine.record_earning(
            user.id,
            Decimal("10"),
            EarningSource.PROMO_CODE,
            "Funding",
            currency=Currency.USD,
        )
        receipt = await engine.create_withdrawal(user.id, "usdt")

        results = await asyncio.gather(
            engine.approve_withdrawal(receipt.id, transaction_hash="0x1"),
            engine.approve_withdrawal(receipt.id, transaction_hash="0x2"),
            return_exceptions=True,
        )

        approved = [r for r in results if isinstance(r, Withdrawal)]
        refused = [r for r in results if isinstance(r, InvariantViolation)]
        assert (len(approved), len(refused)) == (1, 1)
        assert (await engine.get_balance(user.id)).usd == Decimal("0")
        async with serialized_session_maker() as session:
            result = await session.execute(
                select(Earning).where(
                    Earning.user_id == user.id,
                    Earning.source == EarningSource.WITHDRAWAL.value,
                )
            )
            assert [e.amount for e in result.scalars()] == [Decimal("-10")]

    @pytest.mark.asyncio
    async def test_withheld_request_not_deducted_twice(
        self, make_engine, make_payee
    ):
        engine = make_engine(**{keys.WITHDRAWAL_WITHHOLD_ON_SUBMIT: "true"})
        user = await make_payee("10")
        receipt = await engine.create_withdrawal(user.id, "usdt", "0.4")
        assert (await engine.get_balance(user.id)).usd == Decimal("9.6")

        await engine.approve_withdrawal(receipt.id)

        assert (await engine.get_balance(user.id)).usd == Decimal("9.6")

    @pytest.mark.asyncio
    async def test_insufficient_balance_keeps_request_pending(
        self, engine, make_payee, fetch
    ):
        user = await make_payee("10")
        receipt = await engine.create_withdrawal(user.id, "usdt")
        await engine.record_earning(
            user.id,
            Decimal("-6"),
            EarningSource.BONUS_CLAIM,
            "Adjustment",
            currency=Currency.USD,
        )

        with pytest.raises(ValidationError) as exc_info:
            await engine.approve_withdrawal(receipt.id)

        assert exc_info.value.code == "INSUFFICIENT_BALANCE"
        stored = await fetch.withdrawal(receipt.id)
        assert stored.status == WithdrawalStatus.PENDING
        assert stored.deducted is False
        assert (await engine.get_balance(user.id)).usd == Decimal("4")
        assert await fetch.earnings(user.id, EarningSource.WITHDRAWAL) == []

    @pytest.mark.asyncio
    async def test_missing_request(self, engine):
        with pytest.raises(ValidationError) as exc_info:
            await engine.approve_withdrawal(999)

        assert exc_info.value.code == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_secondary_deducted_on_approval(
        self, make_engine, make_payee, fund
    ):
        engine = make_engine(
            **{keys.WITHDRAWAL_SECONDARY_REQUIREMENT_ENABLED: "true"}
        )
        user = await make_payee("1")
        await fund(user.id, "3000", Currency.SECONDARY)
        receipt = await engine.create_withdrawal(user.id, "usdt", "0.2")

        await engine.approve_withdrawal(receipt.id)

        balance = await engine.get_balance(user.id)
        assert balance.usd == Decimal("0.8")
        assert balance.secondary == Decimal("1000")

    @pytest.mark.asyncio
    async def test_secondary_deduction_clamped(
        self, make_engine, make_payee, fund, fetch
    ):
        engine = make_engine(
            **{keys.WITHDRAWAL_SECONDARY_REQUIREMENT_ENABLED: "true"}
        )
        user = await make_payee("1")
        await fund(user.id, "3000", Currency.SECONDARY)
        receipt = await engine.create_withdrawal(user.id, "usdt", "0.2")
        await engine.record_earning(
            user.id,
            Decimal("-2500"),
            EarningSource.BONUS_CLAIM,
            "Adjustment",
            currency=Currency.SECONDARY,
        )

        await engine.approve_withdrawal(receipt.id)

        assert (await engine.get_balance(user.id)).secondary == Decimal("0")
        stored = await fetch.withdrawal(receipt.id)
        assert stored.secondary_deducted == Decimal("500")


class TestRejectWithdrawal:
    """Rejection refunds only what was withheld."""

    @pytest.mark.asyncio
    async def test_reject_without_reservation(
        self, engine, make_payee, fetch, mock_bot, drain_notifications
    ):
        user = await make_payee("10")
        receipt = await engine.create_withdrawal(user.id, "usdt")

        withdrawal = await engine.reject_withdrawal(receipt.id, "Wrong address")
        await drain_notifications()

        assert withdrawal.status == WithdrawalStatus.REJECTED
        stored = await fetch.withdrawal(receipt.id)
        assert (stored.deducted, stored.refunded) == (False, False)
        assert stored.admin_notes == "Wrong address"
        assert (await engine.get_balance(user.id)).usd == Decimal("10")
        assert await fetch.earnings(user.id, EarningSource.WITHDRAWAL_REFUND) == []
        mock_bot.send_message.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_reject_withheld_refunds(self, make_engine, make_payee, fund, fetch):
        engine = make_engine(
            **{
                keys.WITHDRAWAL_WITHHOLD_ON_SUBMIT: "true",
                keys.WITHDRAWAL_SECONDARY_REQUIREMENT_ENABLED: "true",
            }
        )
        user = await make_payee("1")
        await fund(user.id, "2500", Currency.SECONDARY)
        receipt = await engine.create_withdrawal(user.id, "usdt", "0.2")
        balance = await engine.get_balance(user.id)
        assert (balance.usd, balance.secondary) == (Decimal("0.8"), Decimal("500"))

        await engine.reject_withdrawal(receipt.id)

        stored = await fetch.withdrawal(receipt.id)
        assert (stored.deducted, stored.refunded) == (False, True)
        balance = await engine.get_balance(user.id)
        assert (balance.usd, balance.secondary) == (Decimal("1"), Decimal("2500"))
        refunds = await fetch.earnings(user.id, EarningSource.WITHDRAWAL_REFUND)
        assert [r.amount for r in refunds] == [Decimal("0.2")]

    @pytest.mark.asyncio
    async def test_new_request_after_rejection(self, engine, make_payee):
        user = await make_payee("10")
        first = await engine.create_withdrawal(user.id, "usdt")
        await engine.reject_withdrawal(first.id)

        second = await engine.create_withdrawal(user.id, "usdt")

        assert second.id != first.id


class TestWithdrawalQueries:
    """Admin and user listings."""

    @pytest.mark.asyncio
    async def test_listings(self, engine, make_payee):
        alice = await make_payee("10")
        bob = await make_payee("10")
        first = await engine.create_withdrawal(alice.id, "usdt", "0.2")
        await engine.approve_withdrawal(first.id)
        second = await engine.create_withdrawal(alice.id, "usdt", "0.4")
        third = await engine.create_withdrawal(bob.id, "usdt")

        pending = await engine.list_pending_withdrawals()
        assert [w.id for w in pending] == [second.id, third.id]

        history = await engine.list_user_withdrawals(alice.id)
        assert [w.id for w in history] == [second.id, first.id]
