"""
Withdrawal lifecycle handling module.

Handles approval and rejection of pending withdrawal requests. The deducted
flag on the request is the only record of whether its balance was taken.
"""

from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from adledger.config.app_settings import ConfigSnapshot
from adledger.models.enums import Currency, EarningSource, WithdrawalStatus
from adledger.models.withdrawal import Withdrawal
from adledger.repositories.user_repository import UserRepository
from adledger.repositories.withdrawal_repository import WithdrawalRepository
from adledger.services.base_service import BaseService
from adledger.services.ledger.earning_ledger import EarningLedger
from adledger.services.notification.core import PendingNotification
from adledger.services.withdrawal.withdrawal_balance_manager import (
    WithdrawalBalanceManager,
)
from adledger.services.withdrawal.withdrawal_notifications import (
    withdrawal_approved_notification,
    withdrawal_rejected_notification,
)
from adledger.utils.exceptions import InvariantViolation, ValidationError


class WithdrawalLifecycleHandler(BaseService):
    """Handles withdrawal lifecycle operations."""

    def __init__(
        self,
        session: AsyncSession,
        config: ConfigSnapshot,
        outbox: list[PendingNotification] | None = None,
    ) -> None:
        """
        Initialize withdrawal lifecycle handler.

        Args:
            session: Database session (transaction owned by the caller)
            config: Settings snapshot for this operation
            outbox: Collector for post-commit notifications
        """
        super().__init__(session)
        self.outbox = outbox if outbox is not None else []
        self.withdrawal_repo = WithdrawalRepository(session)
        self.user_repo = UserRepository(session)
        self.balance_manager = WithdrawalBalanceManager(session)
        self.ledger = EarningLedger(session, config, self.outbox)

    async def _lock_pending(self, withdrawal_id: int) -> Withdrawal:
        """Lock the request row and require it to be pending."""
        withdrawal = await self.withdrawal_repo.get_for_update(withdrawal_id)
        if withdrawal is None:
            raise ValidationError(
                f"Withdrawal {withdrawal_id} not found", "NOT_FOUND"
            )
        if not withdrawal.is_pending:
            raise InvariantViolation(
                f"Withdrawal {withdrawal_id} is already {withdrawal.status}"
            )
        return withdrawal

    async def approve_withdrawal(
        self,
        withdrawal_id: int,
        admin_note: str | None = None,
        transaction_hash: str | None = None,
    ) -> Withdrawal:
        """
        Approve a pending withdrawal.

        Deducts the balance unless the request already withheld it, records
        the negative USD audit earning and marks the request Approved.

        Args:
            withdrawal_id: Request ID
            admin_note: Note from the reviewing admin
            transaction_hash: Payout reference

        Returns:
            Approved request

        Raises:
            ValidationError: Request missing or USD balance too low
            InvariantViolation: Request is not pending
        """
        withdrawal = await self._lock_pending(withdrawal_id)
        total = withdrawal.total_deducted

        if not withdrawal.deducted:
            secondary_taken = await self.balance_manager.deduct_balance(
                withdrawal.user_id,
                total,
                withdrawal.secondary_deducted,
                withdrawal_id=withdrawal.id,
            )
            withdrawal.details = {
                **(withdrawal.details or {}),
                "secondaryDeducted": str(secondary_taken),
            }
            withdrawal.deducted = True
        else:
            self.logger.info(
                "Balance already withheld, skipping deduction",
                extra={"withdrawal_id": withdrawal.id},
            )

        await self.ledger.append_record(
            withdrawal.user_id,
            -total,
            EarningSource.WITHDRAWAL,
            f"Withdrawal via {withdrawal.method.upper()}",
            metadata={
                "withdrawalId": withdrawal.id,
                "netAmount": str(withdrawal.amount),
                "fee": (withdrawal.details or {}).get("fee"),
                "method": withdrawal.method,
            },
            currency=Currency.USD,
        )

        withdrawal.status = WithdrawalStatus.APPROVED.value
        withdrawal.admin_notes = admin_note
        withdrawal.transaction_hash = transaction_hash
        await self.session.flush()

        self.logger.info(
            "Withdrawal approved",
            extra={
                "withdrawal_id": withdrawal.id,
                "user_id": withdrawal.user_id,
                "total_deducted": str(total),
                "net_amount": str(withdrawal.amount),
                "transaction_hash": transaction_hash,
            },
        )

        user = await self.user_repo.get_by_id(withdrawal.user_id)
        if user is not None:
            self.outbox.append(withdrawal_approved_notification(user, withdrawal))
        return withdrawal

    async def reject_withdrawal(
        self, withdrawal_id: int, admin_note: str | None = None
    ) -> Withdrawal:
        """
        Reject a pending withdrawal.

        Refunds the reservation only when the request withheld it.

        Args:
            withdrawal_id: Request ID
            admin_note: Rejection reason

        Returns:
            Rejected request

        Raises:
            ValidationError: Request missing
            InvariantViolation: Request is not pending
        """
        withdrawal = await self._lock_pending(withdrawal_id)

        if withdrawal.deducted:
            total = withdrawal.total_deducted
            secondary = withdrawal.secondary_deducted
            await self.balance_manager.restore_balance(
                withdrawal.user_id,
                total,
                secondary,
                withdrawal_id=withdrawal.id,
            )
            await self.ledger.append_record(
                withdrawal.user_id,
                total,
                EarningSource.WITHDRAWAL_REFUND,
                "Withdrawal rejected - balance returned",
                metadata={
                    "withdrawalId": withdrawal.id,
                    "secondaryRefunded": str(secondary),
                },
                currency=Currency.USD,
            )
            withdrawal.deducted = False
            withdrawal.refunded = True
        else:
            withdrawal.refunded = False

        withdrawal.status = WithdrawalStatus.REJECTED.value
        withdrawal.admin_notes = admin_note
        await self.session.flush()

        self.logger.info(
            "Withdrawal rejected",
            extra={
                "withdrawal_id": withdrawal.id,
                "user_id": withdrawal.user_id,
                "refunded": withdrawal.refunded,
            },
        )

        user = await self.user_repo.get_by_id(withdrawal.user_id)
        if user is not None:
            self.outbox.append(withdrawal_rejected_notification(user, withdrawal))
        return withdrawal
