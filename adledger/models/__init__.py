"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from adledger.models.admin_setting import AdminSetting
from adledger.models.base import Base
from adledger.models.daily_task import DailyTask
from adledger.models.earning import Earning
from adledger.models.enums import (
    Currency,
    EarningOrigin,
    EarningSource,
    ReferralStatus,
    WithdrawalMethod,
    WithdrawalStatus,
)
from adledger.models.referral import Referral
from adledger.models.referral_commission import ReferralCommission
from adledger.models.user import User
from adledger.models.user_balance import UserBalance
from adledger.models.withdrawal import Withdrawal

__all__ = [
    "AdminSetting",
    "Base",
    "Currency",
    "DailyTask",
    "Earning",
    "EarningOrigin",
    "EarningSource",
    "Referral",
    "ReferralCommission",
    "ReferralStatus",
    "User",
    "UserBalance",
    "Withdrawal",
    "WithdrawalMethod",
    "WithdrawalStatus",
]
