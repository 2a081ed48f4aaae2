"""SqlLedgerStore against a real PostgreSQL database.

Set TEST_DATABASE_URL (postgresql+asyncpg://...) to run these; the schema is
created from the models and dropped afterwards.
"""

import asyncio
import os
import uuid
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from finance_tracker.core.exceptions import NotFoundError, PartialWriteError
from finance_tracker.models import Account, Base, Transaction, User
from finance_tracker.schemas.transaction import TransactionCreate, TransactionUpdate
from finance_tracker.services.ledger_store import SqlLedgerStore, StorageError
from finance_tracker.services.transaction_writer import TransactionWriteCoordinator

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL")

pytestmark = [
    pytest.mark.db,
    pytest.mark.skipif(not TEST_DATABASE_URL, reason="TEST_DATABASE_URL not set"),
]


@pytest.fixture
async def sessions():
    engine = create_async_engine(TEST_DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def owned_account(sessions):
    user = User(id=uuid.uuid4(), email="owner@example.com", currency="INR")
    account = Account(
        user_id=user.id,
        name="Wallet",
        type="cash",
        currency="INR",
        starting_balance=Decimal("1000.00"),
        balance=Decimal("1000.00"),
    )
    async with sessions() as db:
        db.add(user)
        await db.flush()
        db.add(account)
        await db.commit()
    return user.id, account.id


async def _balance(sessions, account_id) -> Decimal:
    async with sessions() as db:
        return (await db.get(Account, account_id)).balance


async def test_concurrent_adjustments_are_not_lost(sessions, owned_account):
    user_id, account_id = owned_account

    async def spend(amount: str):
        async with sessions() as db:
            await SqlLedgerStore(db).adjust_balance(account_id, user_id, Decimal(amount))
            await db.commit()

    await asyncio.gather(*(spend("-10.00") for _ in range(20)))

    assert await _balance(sessions, account_id) == Decimal("800.00")


async def test_create_edit_delete_round_trip(sessions, owned_account):
    user_id, account_id = owned_account

    async with sessions() as db:
        txn = await TransactionWriteCoordinator(SqlLedgerStore(db)).create(
            user_id,
            TransactionCreate(
                title="Groceries",
                amount=Decimal("200"),
                type="expense",
                account_id=account_id,
                occurred_at=datetime(2026, 10, 1, tzinfo=timezone.utc),
            ),
        )
        await db.commit()
    assert await _balance(sessions, account_id) == Decimal("800.00")

    async with sessions() as db:
        await TransactionWriteCoordinator(SqlLedgerStore(db)).update(
            user_id, txn.id, TransactionUpdate(amount=Decimal("50"))
        )
        await db.commit()
    assert await _balance(sessions, account_id) == Decimal("950.00")

    async with sessions() as db:
        await TransactionWriteCoordinator(SqlLedgerStore(db)).delete(user_id, txn.id)
        await db.commit()
    assert await _balance(sessions, account_id) == Decimal("1000.00")


async def test_recompute_repairs_drift(sessions, owned_account):
    user_id, account_id = owned_account

    async with sessions() as db:
        store = SqlLedgerStore(db)
        await TransactionWriteCoordinator(store).create(
            user_id,
            TransactionCreate(title="Salary", amount=Decimal("500"), type="income", account_id=account_id),
        )
        await store.adjust_balance(account_id, user_id, Decimal("-123.45"))
        assert await store.recompute_balance(account_id, user_id) == Decimal("1500.00")
        await db.commit()


async def test_other_owner_sees_nothing(sessions, owned_account):
    _, account_id = owned_account

    async with sessions() as db:
        store = SqlLedgerStore(db)
        assert await store.get_account(account_id, uuid.uuid4()) is None
        assert await store.recompute_balance(account_id, uuid.uuid4()) is None


async def _transaction_count(sessions) -> int:
    async with sessions() as db:
        return (await db.execute(select(func.count(Transaction.id)))).scalar_one()


def _groceries(account_id) -> TransactionCreate:
    return TransactionCreate(title="Groceries", amount=Decimal("200"), type="expense", account_id=account_id)


class BrokenBalanceStore(SqlLedgerStore):
    async def adjust_balance(self, account_id, user_id, delta):
        raise StorageError("balance update failed")


async def test_partial_write_is_rolled_back_with_the_request(sessions, owned_account):
    user_id, account_id = owned_account

    async with sessions() as db:
        with pytest.raises(PartialWriteError):
            await TransactionWriteCoordinator(BrokenBalanceStore(db)).create(user_id, _groceries(account_id))
        await db.rollback()

    assert await _transaction_count(sessions) == 0
    assert await _balance(sessions, account_id) == Decimal("1000.00")


async def test_concurrent_update_and_delete_keep_balance_consistent(sessions, owned_account):
    user_id, account_id = owned_account
    async with sessions() as db:
        txn = await TransactionWriteCoordinator(SqlLedgerStore(db)).create(user_id, _groceries(account_id))
        await db.commit()

    async def run(operation):
        async with sessions() as db:
            await operation(TransactionWriteCoordinator(SqlLedgerStore(db)))
            await db.commit()

    results = await asyncio.gather(
        run(lambda w: w.update(user_id, txn.id, TransactionUpdate(amount=Decimal("50")))),
        run(lambda w: w.delete(user_id, txn.id)),
        return_exceptions=True,
    )

    assert all(r is None or isinstance(r, NotFoundError) for r in results)
    assert await _transaction_count(sessions) == 0
    assert await _balance(sessions, account_id) == Decimal("1000.00")
