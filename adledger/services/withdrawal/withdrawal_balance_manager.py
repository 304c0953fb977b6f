"""
Withdrawal balance manager.

Takes and returns the balances reserved by withdrawal requests.
"""

from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from adledger.models.enums import Currency
from adledger.services.base_service import BaseService
from adledger.services.ledger.balance_store import BalanceStore


class WithdrawalBalanceManager(BaseService):
    """Manages balance operations for withdrawal requests."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize withdrawal balance manager.

        Args:
            session: Database session
        """
        super().__init__(session)
        self.balance_store = BalanceStore(session)

    async def deduct_balance(
        self,
        user_id: int,
        amount: Decimal,
        secondary_amount: Decimal,
        withdrawal_id: int | None = None,
    ) -> Decimal:
        """
        Deduct the gross USD amount and the secondary reservation.

        USD must be fully covered; the secondary deduction is clamped at the
        available balance.

        Args:
            user_id: User ID
            amount: Gross USD amount (including fee)
            secondary_amount: Secondary tokens reserved by the request
            withdrawal_id: Request ID for logging

        Returns:
            Secondary amount actually deducted

        Raises:
            ValidationError: USD balance below amount
        """
        await self.balance_store.debit(user_id, Currency.USD, amount)

        secondary_taken = Decimal("0")
        if secondary_amount > 0:
            secondary_taken = await self.balance_store.debit(
                user_id, Currency.SECONDARY, secondary_amount, clamp=True
            )

        self.logger.info(
            "Balance deducted for withdrawal",
            extra={
                "user_id": user_id,
                "withdrawal_id": withdrawal_id,
                "amount": str(amount),
                "secondary": str(secondary_taken),
            },
        )
        return secondary_taken

    async def restore_balance(
        self,
        user_id: int,
        amount: Decimal,
        secondary_amount: Decimal,
        withdrawal_id: int | None = None,
    ) -> None:
        """
        Return a withheld reservation to the user.

        Args:
            user_id: User ID
            amount: Gross USD amount that was deducted
            secondary_amount: Secondary tokens that were deducted
            withdrawal_id: Request ID for logging
        """
        await self.balance_store.credit(user_id, Currency.USD, amount)
        if secondary_amount > 0:
            await self.balance_store.credit(
                user_id, Currency.SECONDARY, secondary_amount
            )

        self.logger.info(
            "Balance restored for withdrawal",
            extra={
                "user_id": user_id,
                "withdrawal_id": withdrawal_id,
                "amount": str(amount),
                "secondary": str(secondary_amount),
            },
        )
