"""
Withdrawal lifecycle services.

Request creation under the balance row lock, approval and rejection of
pending requests, and withdrawal queries.
"""

from adledger.services.withdrawal.withdrawal_lifecycle_handler import (
    WithdrawalLifecycleHandler,
)
from adledger.services.withdrawal.withdrawal_query_service import (
    WithdrawalQueryService,
)
from adledger.services.withdrawal.withdrawal_request_handler import (
    WithdrawalReceipt,
    WithdrawalRequestHandler,
)

__all__ = [
    "WithdrawalLifecycleHandler",
    "WithdrawalQueryService",
    "WithdrawalReceipt",
    "WithdrawalRequestHandler",
]
