"""Transformation of raw OBP records into display records."""

from .categories import categorize, classify_account
from .records import transform_accounts, transform_transactions
from .schemas import Account, Transaction

__all__ = [
    "Account",
    "Transaction",
    "categorize",
    "classify_account",
    "transform_accounts",
    "transform_transactions",
]
