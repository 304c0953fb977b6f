"""
Referral services.

Referral binding, activation of pending referrals and the commission
cascade.
"""
