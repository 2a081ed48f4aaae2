"""Owner-scoped storage for transactions and account balances.

``LedgerStore`` is the contract the transaction write path depends on; every
method is scoped by the owning user, so a row belonging to someone else is
indistinguishable from a missing one. ``SqlLedgerStore`` implements it on an
``AsyncSession``.

Balances are never written as values read earlier: ``adjust_balance`` is a
single ``balance = balance + delta`` statement executed by the database, so
concurrent writers to the same account cannot lose each other's updates.

The write path reads the transaction it is about to change with
``for_update=True``: the row stays locked until the surrounding database
transaction ends, so a concurrent edit or delete of the same transaction
waits and then sees the committed row instead of a stale one. When a
transaction moves between accounts both accounts are locked up front, in
id order, so two opposite moves cannot deadlock.
"""

import uuid
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any

import structlog
from sqlalchemy import case, delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from finance_tracker.models.account import Account
from finance_tracker.models.category import Category
from finance_tracker.models.transaction import Transaction
from finance_tracker.services.balance import TransactionType

logger = structlog.get_logger()


class StorageError(Exception):
    """The underlying store failed (connection lost, constraint violated, ...)."""


class LedgerStore(ABC):
    """Storage operations needed by the transaction write path."""

    @abstractmethod
    async def get_account(self, account_id: uuid.UUID, user_id: uuid.UUID) -> Account | None:
        ...

    @abstractmethod
    async def get_category(self, category_id: uuid.UUID, user_id: uuid.UUID) -> Category | None:
        ...

    @abstractmethod
    async def get_transaction(
        self, transaction_id: uuid.UUID, user_id: uuid.UUID, for_update: bool = False
    ) -> Transaction | None:
        """Owner-scoped read; ``for_update`` locks the row until the unit of work ends."""

    @abstractmethod
    async def lock_accounts(self, account_ids: list[uuid.UUID], user_id: uuid.UUID) -> None:
        """Lock the given accounts, always in ascending id order."""

    @abstractmethod
    async def insert_transaction(self, user_id: uuid.UUID, values: dict[str, Any]) -> Transaction:
        ...

    @abstractmethod
    async def update_transaction(self, txn: Transaction, values: dict[str, Any]) -> Transaction:
        ...

    @abstractmethod
    async def delete_transaction(self, transaction_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        """Delete the row; ``False`` if no row matched."""

    @abstractmethod
    async def adjust_balance(
        self, account_id: uuid.UUID, user_id: uuid.UUID, delta: Decimal
    ) -> Decimal:
        """Atomically add ``delta`` to the account balance and return the result.

        Raises ``StorageError`` if the account row does not exist.
        """

    @abstractmethod
    async def recompute_balance(self, account_id: uuid.UUID, user_id: uuid.UUID) -> Decimal | None:
        """Rewrite the balance as starting balance + sum of live transaction effects."""


def signed_amount_expr():
    """SQL counterpart of ``balance.signed_effect`` for transaction rows."""
    return case(
        (Transaction.type == TransactionType.INCOME.value, Transaction.amount),
        else_=-Transaction.amount,
    )


class SqlLedgerStore(LedgerStore):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_account(self, account_id: uuid.UUID, user_id: uuid.UUID) -> Account | None:
        result = await self._execute(
            select(Account).where(Account.id == account_id, Account.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_category(self, category_id: uuid.UUID, user_id: uuid.UUID) -> Category | None:
        result = await self._execute(
            select(Category).where(Category.id == category_id, Category.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_transaction(
        self, transaction_id: uuid.UUID, user_id: uuid.UUID, for_update: bool = False
    ) -> Transaction | None:
        query = (
            select(Transaction)
            .where(Transaction.id == transaction_id, Transaction.user_id == user_id)
            .options(selectinload(Transaction.category), selectinload(Transaction.account))
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update(of=Transaction)
        result = await self._execute(query)
        return result.scalar_one_or_none()

    async def lock_accounts(self, account_ids: list[uuid.UUID], user_id: uuid.UUID) -> None:
        await self._execute(
            select(Account.id)
            .where(Account.id.in_(sorted(set(account_ids))), Account.user_id == user_id)
            .order_by(Account.id)
            .with_for_update()
        )

    async def insert_transaction(self, user_id: uuid.UUID, values: dict[str, Any]) -> Transaction:
        txn = Transaction(user_id=user_id, **values)
        self.db.add(txn)
        await self._flush()
        return await self._reload(txn)

    async def update_transaction(self, txn: Transaction, values: dict[str, Any]) -> Transaction:
        for key, value in values.items():
            setattr(txn, key, value)
        await self._flush()
        return await self._reload(txn)

    async def delete_transaction(self, transaction_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        result = await self._execute(
            delete(Transaction)
            .where(Transaction.id == transaction_id, Transaction.user_id == user_id)
            .returning(Transaction.id)
            .execution_options(synchronize_session="fetch")
        )
        return result.scalar_one_or_none() is not None

    async def adjust_balance(
        self, account_id: uuid.UUID, user_id: uuid.UUID, delta: Decimal
    ) -> Decimal:
        result = await self._execute(
            update(Account)
            .where(Account.id == account_id, Account.user_id == user_id)
            .values(balance=Account.balance + delta)
            .returning(Account.balance)
            .execution_options(synchronize_session=False)
        )
        new_balance = result.scalar_one_or_none()
        if new_balance is None:
            raise StorageError(f"account {account_id} vanished while adjusting its balance")
        logger.info(
            "account_balance_adjusted",
            account_id=str(account_id),
            delta=str(delta),
            balance=str(new_balance),
        )
        return new_balance

    async def recompute_balance(self, account_id: uuid.UUID, user_id: uuid.UUID) -> Decimal | None:
        live_total = (
            select(func.coalesce(func.sum(signed_amount_expr()), 0))
            .where(Transaction.account_id == Account.id)
            .scalar_subquery()
        )
        result = await self._execute(
            update(Account)
            .where(Account.id == account_id, Account.user_id == user_id)
            .values(balance=Account.starting_balance + live_total)
            .returning(Account.balance)
            .execution_options(synchronize_session=False)
        )
        return result.scalar_one_or_none()

    async def _reload(self, txn: Transaction) -> Transaction:
        """Re-read a flushed row with its display relationships loaded."""
        reloaded = await self.get_transaction(txn.id, txn.user_id)
        if reloaded is None:
            raise StorageError(f"transaction {txn.id} missing right after write")
        return reloaded

    async def _execute(self, statement):
        try:
            return await self.db.execute(statement)
        except SQLAlchemyError as e:
            raise StorageError(str(e)) from e

    async def _flush(self) -> None:
        try:
            await self.db.flush()
        except SQLAlchemyError as e:
            raise StorageError(str(e)) from e
