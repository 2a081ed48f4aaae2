"""SQLAlchemy models."""

from finance_tracker.models.account import Account
from finance_tracker.models.base import Base
from finance_tracker.models.category import Category
from finance_tracker.models.transaction import Transaction
from finance_tracker.models.user import User

__all__ = [
    "Base",
    "User",
    "Account",
    "Transaction",
    "Category",
]
