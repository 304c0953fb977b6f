"""
Withdrawal request handling module.

Handles the creation of withdrawal requests: package resolution, fee
calculation, policy evaluation under the balance row lock and persistence.
"""

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from adledger.config import setting_keys as keys
from adledger.config.app_settings import ConfigSnapshot
from adledger.models.enums import WithdrawalMethod, WithdrawalStatus
from adledger.repositories.user_repository import UserRepository
from adledger.repositories.withdrawal_repository import WithdrawalRepository
from adledger.services.base_service import BaseService
from adledger.services.ledger.balance_store import BalanceStore
from adledger.services.withdrawal.withdrawal_balance_manager import (
    WithdrawalBalanceManager,
)
from adledger.services.withdrawal.withdrawal_policies import (
    WithdrawalContext,
    calculate_fee,
    resolve_package,
)
from adledger.services.withdrawal.withdrawal_validator import WithdrawalValidator
from adledger.utils.exceptions import ValidationError


@dataclass(frozen=True)
class WithdrawalReceipt:
    """Outcome of a successful withdrawal request."""

    id: int
    net_amount: Decimal
    fee: Decimal


class WithdrawalRequestHandler(BaseService):
    """Handles withdrawal request creation and validation."""

    def __init__(
        self,
        session: AsyncSession,
        config: ConfigSnapshot,
        validator: WithdrawalValidator | None = None,
    ) -> None:
        """
        Initialize withdrawal request handler.

        Args:
            session: Database session (transaction owned by the caller)
            config: Settings snapshot for this operation
            validator: Policy runner (defaults to all policies)
        """
        super().__init__(session)
        self.config = config
        self.user_repo = UserRepository(session)
        self.withdrawal_repo = WithdrawalRepository(session)
        self.balance_store = BalanceStore(session)
        self.balance_manager = WithdrawalBalanceManager(session)
        self.validator = validator or WithdrawalValidator(session)

    async def request_withdrawal(
        self,
        user_id: int,
        method: WithdrawalMethod | str,
        package_selector: Decimal | float | str | None = None,
    ) -> WithdrawalReceipt:
        """
        Create a pending withdrawal request.

        Args:
            user_id: User ID
            method: Payment rail
            package_selector: Package USD amount, or None / "FULL"

        Returns:
            Receipt with request ID, net amount and fee

        Raises:
            ValidationError: Request is not allowed
        """
        try:
            method = WithdrawalMethod(method)
        except ValueError:
            raise ValidationError(
                f"Unsupported withdrawal method: {method}", "INVALID_METHOD"
            ) from None

        user = await self.user_repo.get_by_id(user_id)
        if user is None:
            raise ValidationError("User not found", "USER_NOT_FOUND")
        if user.is_banned:
            self.logger.warning(
                "Withdrawal blocked, user is banned", extra={"user_id": user_id}
            )
            raise ValidationError("Account is banned", "USER_BANNED")

        # Balance row lock is held until the caller's transaction ends
        balance = await self.balance_store.lock(user_id)

        package = resolve_package(
            package_selector, balance.usd_balance, self.config
        )
        fee_percent = self.config.get_decimal(keys.withdrawal_fee_key(method))
        fee = calculate_fee(package.amount, fee_percent)

        ctx = WithdrawalContext(
            user=user,
            balance=balance,
            method=method,
            package=package,
            fee=fee,
            config=self.config,
            last_terminal_at=await self.withdrawal_repo.get_last_terminal_at(
                user_id
            ),
        )
        result = await self.validator.validate_withdrawal_request(ctx)
        if not result.is_valid:
            self.logger.info(
                "Withdrawal request refused",
                extra={
                    "user_id": user_id,
                    "method": method.value,
                    "code": result.error_code,
                },
            )
            raise ValidationError(result.error_message, result.error_code)

        amount = package.amount
        net_amount = amount - fee
        secondary = (
            package.secondary_required
            if self.config.get_bool(keys.WITHDRAWAL_SECONDARY_REQUIREMENT_ENABLED)
            else Decimal("0")
        )

        withhold = self.config.get_bool(keys.WITHDRAWAL_WITHHOLD_ON_SUBMIT)
        if withhold:
            secondary = await self.balance_manager.deduct_balance(
                user_id, amount, secondary
            )

        withdrawal = await self.withdrawal_repo.create(
            user_id=user_id,
            amount=net_amount,
            method=method.value,
            status=WithdrawalStatus.PENDING.value,
            details={
                "requestedAmount": str(amount),
                "fee": str(fee),
                "feePercent": str(fee_percent),
                "totalDeducted": str(amount),
                "secondaryDeducted": str(secondary),
                "packageSelector": package.selector,
                "destination": user.destination_for(method),
            },
            deducted=withhold,
            refunded=False,
        )

        self.logger.info(
            "Withdrawal request created",
            extra={
                "withdrawal_id": withdrawal.id,
                "user_id": user_id,
                "method": method.value,
                "amount": str(amount),
                "fee": str(fee),
                "net_amount": str(net_amount),
                "withheld": withhold,
            },
        )
        return WithdrawalReceipt(
            id=withdrawal.id, net_amount=net_amount, fee=fee
        )
