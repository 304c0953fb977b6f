"""
Standard type definitions for database models.

Provides consistent types for monetary and JSON fields across all models.
"""

from sqlalchemy import DECIMAL, JSON
from sqlalchemy.dialects.postgresql import JSONB

# Standard money type for amounts, balances, rewards
# Precision: 30 digits total, 10 after decimal point
# Suitable for: primary/secondary tokens, USD, bonus token
MoneyType = DECIMAL(30, 10)

# JSON document type (JSONB on PostgreSQL)
# Suitable for: withdrawal details, earning metadata
JsonType = JSON().with_variant(JSONB(), "postgresql")
