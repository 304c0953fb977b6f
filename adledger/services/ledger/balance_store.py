"""
Balance store.

Authoritative multi-currency balances. Every mutation is a single atomic
UPDATE (col = col + delta) or runs under the balance row lock, so concurrent
writers never lose updates.
"""

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from adledger.models.enums import Currency
from adledger.models.user_balance import UserBalance
from adledger.repositories.user_balance_repository import UserBalanceRepository
from adledger.services.base_service import BaseService
from adledger.utils.exceptions import (
    BalanceUpdateError,
    TransientStoreError,
    ValidationError,
)

# First attempt plus exactly one retry
MAX_ATTEMPTS = 2


@dataclass(frozen=True)
class BalanceSnapshot:
    """Point-in-time view of a user's balances."""

    primary: Decimal = Decimal("0")
    secondary: Decimal = Decimal("0")
    usd: Decimal = Decimal("0")
    bonus: Decimal = Decimal("0")

    @classmethod
    def from_row(cls, row: UserBalance | None) -> "BalanceSnapshot":
        if row is None:
            return cls()
        return cls(
            primary=row.balance,
            secondary=row.secondary_balance,
            usd=row.usd_balance,
            bonus=row.bonus_balance,
        )

    def get(self, currency: Currency) -> Decimal:
        return {
            Currency.PRIMARY: self.primary,
            Currency.SECONDARY: self.secondary,
            Currency.USD: self.usd,
            Currency.BONUS: self.bonus,
        }[Currency(currency)]


class BalanceStore(BaseService):
    """Reads and mutates user_balances rows."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.balance_repo = UserBalanceRepository(session)

    async def get_balance(self, user_id: int) -> BalanceSnapshot:
        """
        Get a user's balances.

        Args:
            user_id: User ID

        Returns:
            Snapshot (all zeros when the user has no balance row)
        """
        row = await self.balance_repo.get_by_user(user_id)
        return BalanceSnapshot.from_row(row)

    async def lock(self, user_id: int) -> UserBalance:
        """
        Ensure the balance row exists and take its row lock.

        Check-then-act logic must call this before reading balances it
        intends to act on.

        Args:
            user_id: User ID

        Returns:
            Locked, freshly loaded balance row
        """
        await self.balance_repo.ensure(user_id)
        row = await self.balance_repo.get_by_user_for_update(user_id)
        if row is None:
            raise TransientStoreError(f"Balance row for user {user_id} vanished")
        return row

    async def apply_delta(
        self, user_id: int, currency: Currency, amount: Decimal
    ) -> None:
        """
        Atomically add a signed amount to one balance column.

        Each attempt runs in its own SAVEPOINT and first ensures the row
        exists. A failed attempt is rolled back and retried exactly once.

        Args:
            user_id: User ID
            currency: Balance column
            amount: Signed delta

        Raises:
            BalanceUpdateError: Both attempts failed
        """
        if amount == 0:
            return

        last_error: Exception | None = None
        for attempt in range(1, MAX_ATTEMPTS + 1):
            try:
                async with self.session.begin_nested():
                    await self.balance_repo.ensure(user_id)
                    updated = await self.balance_repo.increment(
                        user_id, currency, amount
                    )
                    if not updated:
                        raise TransientStoreError(
                            f"Balance row for user {user_id} not updated"
                        )
            except (SQLAlchemyError, TransientStoreError) as e:
                last_error = e
                self.logger.warning(
                    "Balance update attempt failed",
                    extra={
                        "user_id": user_id,
                        "currency": str(currency),
                        "amount": str(amount),
                        "attempt": attempt,
                        "error": str(e),
                    },
                )
                continue

            self.logger.debug(
                "Balance updated",
                extra={
                    "user_id": user_id,
                    "currency": str(currency),
                    "amount": str(amount),
                    "attempt": attempt,
                },
            )
            return

        raise BalanceUpdateError(
            f"Failed to update {currency} balance of user {user_id}: {last_error}"
        )

    async def credit(
        self, user_id: int, currency: Currency, amount: Decimal
    ) -> None:
        """Add a non-negative amount to one balance column."""
        if amount < 0:
            raise ValidationError("Credit amount must not be negative", "NEGATIVE_CREDIT")
        await self.apply_delta(user_id, currency, amount)

    async def debit(
        self,
        user_id: int,
        currency: Currency,
        amount: Decimal,
        clamp: bool = False,
    ) -> Decimal:
        """
        Subtract an amount under the balance row lock.

        Args:
            user_id: User ID
            currency: Balance column
            amount: Non-negative amount to take
            clamp: Take at most the available balance instead of failing

        Returns:
            Amount actually debited

        Raises:
            ValidationError: Balance too low and clamp is False
        """
        if amount < 0:
            raise ValidationError("Debit amount must not be negative", "NEGATIVE_DEBIT")

        row = await self.lock(user_id)
        column = UserBalance.column_name(currency)
        balance_before: Decimal = getattr(row, column)

        if balance_before < amount:
            if not clamp:
                self.logger.warning(
                    "Insufficient balance for debit",
                    extra={
                        "user_id": user_id,
                        "currency": str(currency),
                        "available": str(balance_before),
                        "requested": str(amount),
                    },
                )
                raise ValidationError(
                    f"Insufficient {currency} balance", "INSUFFICIENT_BALANCE"
                )
            amount = balance_before

        if amount > 0:
            await self.balance_repo.increment(user_id, currency, -amount)

        self.logger.info(
            "Balance debited",
            extra={
                "user_id": user_id,
                "currency": str(currency),
                "amount": str(amount),
                "balance_before": str(balance_before),
                "balance_after": str(balance_before - amount),
            },
        )
        return amount
