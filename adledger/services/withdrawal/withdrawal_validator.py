"""
Withdrawal validation service.

Runs the withdrawal policies in order and stops at the first failure.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from adledger.services.withdrawal.withdrawal_policies import (
    DEFAULT_POLICIES,
    ValidationResult,
    WithdrawalContext,
    WithdrawalPolicy,
)


class WithdrawalValidator:
    """Validator for withdrawal requests."""

    def __init__(
        self,
        session: AsyncSession,
        policies: list[WithdrawalPolicy] | None = None,
    ) -> None:
        """
        Initialize withdrawal validator.

        Args:
            session: Database session
            policies: Policies to evaluate (defaults to all, in order)
        """
        self.session = session
        self.policies = policies or [
            policy(session) for policy in DEFAULT_POLICIES
        ]

    async def validate_withdrawal_request(
        self, ctx: WithdrawalContext
    ) -> ValidationResult:
        """
        Run all policies and return the first failure.

        Args:
            ctx: Request context

        Returns:
            ValidationResult with is_valid and optional
            error_message/error_code
        """
        for policy in self.policies:
            result = await policy.evaluate(ctx)
            if not result.is_valid:
                return result
        return ValidationResult.success()
