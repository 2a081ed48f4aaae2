"""Shared API dependencies."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from finance_tracker.core.database import get_db
from finance_tracker.core.security import get_current_user
from finance_tracker.services.ledger_store import LedgerStore, SqlLedgerStore


def get_ledger_store(db: AsyncSession = Depends(get_db)) -> LedgerStore:
    return SqlLedgerStore(db)


__all__ = ["get_db", "get_current_user", "get_ledger_store"]
