"""Transaction read service: listing and lookup.

Writes go through ``TransactionWriteCoordinator`` so that account balances
follow every change.
"""

import uuid
from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from finance_tracker.core.exceptions import NotFoundError
from finance_tracker.models.transaction import Transaction
from finance_tracker.models.user import User
from finance_tracker.schemas.transaction import TransactionFilter
from finance_tracker.services.analytics_service import day_start
from finance_tracker.services.ledger_store import SqlLedgerStore


class TransactionService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_transactions(self, user: User, filters: TransactionFilter) -> list[Transaction]:
        """List the user's transactions, most recent first."""
        query = (
            select(Transaction)
            .where(Transaction.user_id == user.id)
            .options(selectinload(Transaction.category), selectinload(Transaction.account))
        )

        if filters.start_date:
            query = query.where(Transaction.occurred_at >= day_start(filters.start_date))
        if filters.end_date:
            query = query.where(
                Transaction.occurred_at < day_start(filters.end_date + timedelta(days=1))
            )
        if filters.type:
            query = query.where(Transaction.type == filters.type)
        if filters.account_id:
            query = query.where(Transaction.account_id == filters.account_id)
        if filters.category_id:
            query = query.where(Transaction.category_id == filters.category_id)

        # created_at breaks ties between transactions on the same instant
        query = (
            query.order_by(Transaction.occurred_at.desc(), Transaction.created_at.desc())
            .offset(filters.offset)
            .limit(filters.limit)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_transaction(self, transaction_id: uuid.UUID, user: User) -> Transaction:
        txn = await SqlLedgerStore(self.db).get_transaction(transaction_id, user.id)
        if txn is None:
            raise NotFoundError("Transaction")
        return txn
