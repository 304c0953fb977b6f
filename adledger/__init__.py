"""
adledger.

Ledger and reward-distribution engine for the ad-rewards mini-app:
balances, earnings, referral payouts, withdrawals and daily resets.
"""

__version__ = "1.0.0"
