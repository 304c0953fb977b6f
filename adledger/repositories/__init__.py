"""
Repositories.

Data access layer over the SQLAlchemy models.
"""

from adledger.repositories.admin_setting_repository import AdminSettingRepository
from adledger.repositories.daily_task_repository import DailyTaskRepository
from adledger.repositories.earning_repository import EarningRepository
from adledger.repositories.referral_commission_repository import (
    ReferralCommissionRepository,
)
from adledger.repositories.referral_repository import ReferralRepository
from adledger.repositories.user_balance_repository import UserBalanceRepository
from adledger.repositories.user_repository import UserRepository
from adledger.repositories.withdrawal_repository import WithdrawalRepository

__all__ = [
    "AdminSettingRepository",
    "DailyTaskRepository",
    "EarningRepository",
    "ReferralCommissionRepository",
    "ReferralRepository",
    "UserBalanceRepository",
    "UserRepository",
    "WithdrawalRepository",
]
