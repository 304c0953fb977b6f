"""
Earning ledger.

Single entry point for every balance-affecting event. Appends the earning
record, applies it to the balance store, mirrors it onto the legacy
projection and triggers referral activation and commissions for direct
ad-watch earnings.
"""

from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from adledger.config.app_settings import ConfigSnapshot
from adledger.models.earning import Earning
from adledger.models.user_balance import UserBalance
from adledger.models.enums import (
    DERIVED_SOURCES,
    Currency,
    EarningOrigin,
    EarningSource,
)
from adledger.repositories.earning_repository import EarningRepository
from adledger.services.base_service import BaseService
from adledger.services.ledger.balance_store import BalanceStore
from adledger.services.ledger.compat_projection import CompatProjection
from adledger.services.notification.core import PendingNotification
from adledger.services.referral.activation import ReferralActivationEngine
from adledger.services.referral.commission import CommissionCascade
from adledger.utils.exceptions import BalanceUpdateError, ValidationError


class EarningLedger(BaseService):
    """
    Append-only earning ledger.

    Notifications produced by side effects are appended to outbox and must
    be dispatched by the caller after commit.
    """

    def __init__(
        self,
        session: AsyncSession,
        config: ConfigSnapshot,
        outbox: list[PendingNotification] | None = None,
    ) -> None:
        """
        Initialize earning ledger.

        Args:
            session: Database session (transaction owned by the caller)
            config: Settings snapshot for this operation
            outbox: Collector for post-commit notifications
        """
        super().__init__(session)
        self.config = config
        self.outbox = outbox if outbox is not None else []
        self.earning_repo = EarningRepository(session)
        self.balance_store = BalanceStore(session)
        self.projection = CompatProjection(session)
        self.activation = ReferralActivationEngine(
            session, config, self.outbox, ledger=self
        )
        self.commission = CommissionCascade(session, config, ledger=self)

    async def record_earning(
        self,
        user_id: int,
        amount: Decimal,
        source: EarningSource,
        description: str,
        metadata: dict[str, Any] | None = None,
        currency: Currency = Currency.PRIMARY,
        origin: EarningOrigin | None = None,
    ) -> Earning:
        """
        Record an earning and apply it to the user's balance.

        Args:
            user_id: User credited (debited when amount is negative)
            amount: Signed amount
            source: What produced the earning
            description: Human readable description
            metadata: Free-form JSON metadata
            currency: Balance column the amount applies to
            origin: direct or derived (derived sources default to derived)

        Returns:
            Persisted earning record

        Raises:
            ValidationError: Negative amount exceeds the balance; nothing
                is written
            BalanceUpdateError: Balance update failed after the record was
                written; the error carries the record
        """
        source = EarningSource(source)
        currency = Currency(currency)
        amount = Decimal(str(amount))
        if origin is None:
            origin = (
                EarningOrigin.DERIVED
                if source in DERIVED_SOURCES
                else EarningOrigin.DIRECT
            )

        if amount < 0:
            await self._ensure_funds(user_id, currency, -amount)

        earning = await self.append_record(
            user_id, amount, source, description, metadata, currency, origin
        )

        if amount != 0:
            try:
                await self.balance_store.apply_delta(user_id, currency, amount)
            except BalanceUpdateError as e:
                e.earning = earning
                self.logger.critical(
                    "Balance update failed after earning was recorded",
                    extra={
                        "earning_id": earning.id,
                        "user_id": user_id,
                        "amount": str(amount),
                        "currency": currency.value,
                        "source": source.value,
                        "error": str(e),
                    },
                )
                raise

            if currency == Currency.PRIMARY:
                await self.projection.apply(user_id, amount)

        if origin == EarningOrigin.DERIVED:
            return earning

        if source == EarningSource.AD_WATCH:
            await self.activation.check_and_activate(user_id)

        await self.commission.process(earning)
        return earning

    async def _ensure_funds(
        self, user_id: int, currency: Currency, required: Decimal
    ) -> None:
        """Lock the balance row and refuse debits the balance cannot cover."""
        row = await self.balance_store.lock(user_id)
        available: Decimal = getattr(row, UserBalance.column_name(currency))
        if available >= required:
            return

        self.logger.warning(
            "Insufficient balance for negative earning",
            extra={
                "user_id": user_id,
                "currency": currency.value,
                "available": str(available),
                "requested": str(required),
            },
        )
        raise ValidationError(
            f"Insufficient {currency} balance", "INSUFFICIENT_BALANCE"
        )

    async def append_record(
        self,
        user_id: int,
        amount: Decimal,
        source: EarningSource,
        description: str,
        metadata: dict[str, Any] | None = None,
        currency: Currency = Currency.PRIMARY,
        origin: EarningOrigin = EarningOrigin.DIRECT,
    ) -> Earning:
        """
        Append an earning record without touching balances.

        Used directly for audit records whose balance effect is applied
        elsewhere (withdrawal settlement).

        Returns:
            Persisted earning record
        """
        earning = await self.earning_repo.create(
            user_id=user_id,
            amount=amount,
            currency=Currency(currency).value,
            source=EarningSource(source).value,
            origin=EarningOrigin(origin).value,
            description=description,
            metadata_=metadata,
        )

        self.logger.info(
            "Earning recorded",
            extra={
                "earning_id": earning.id,
                "user_id": user_id,
                "amount": str(amount),
                "currency": str(currency),
                "source": str(source),
                "origin": str(origin),
            },
        )
        return earning

    async def reconcile(self, user_id: int) -> Decimal:
        """
        Sum of the user's primary earning records.

        Equals the primary balance whenever no balance update failed.
        """
        return await self.earning_repo.sum_amount(user_id, Currency.PRIMARY)
