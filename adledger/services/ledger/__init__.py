"""
Balance store and earning ledger.
"""

from adledger.services.ledger.balance_store import BalanceSnapshot, BalanceStore
from adledger.services.ledger.earning_ledger import EarningLedger

__all__ = [
    "BalanceSnapshot",
    "BalanceStore",
    "EarningLedger",
]
