"""Shared test fixtures."""

import asyncio
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from finance_tracker.api.deps import get_current_user, get_db, get_ledger_store
from finance_tracker.main import app
from finance_tracker.models.account import Account
from finance_tracker.models.category import Category
from finance_tracker.models.transaction import Transaction
from finance_tracker.models.user import User
from finance_tracker.services.balance import signed_effect
from finance_tracker.services.ledger_store import LedgerStore, StorageError


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryLedgerStore(LedgerStore):
    """Dict-backed store with owner scoping, row locks and failure injection.

    ``fail("adjust_balance", after=1)`` lets the first call through and makes
    every later call to that method raise ``StorageError``.

    Every call yields to the event loop, so concurrent requests interleave.
    ``session()`` gives a view over the same rows with its own locks, like a
    second database connection; ``release()`` drops that view's locks, which
    is what a commit or rollback does. Row locks are taken by
    ``get_transaction(for_update=True)``, ``lock_accounts`` and
    ``adjust_balance`` and are reentrant within a view.
    """

    def __init__(self, shared: "InMemoryLedgerStore | None" = None):
        if shared is None:
            self.accounts: dict[uuid.UUID, Account] = {}
            self.categories: dict[uuid.UUID, Category] = {}
            self.transactions: dict[uuid.UUID, Transaction] = {}
            self._locks: dict[tuple[str, uuid.UUID], asyncio.Lock] = {}
        else:
            self.accounts = shared.accounts
            self.categories = shared.categories
            self.transactions = shared.transactions
            self._locks = shared._locks
        self._held: set[tuple[str, uuid.UUID]] = set()
        self._failures: dict[str, int] = {}
        self.calls: list[str] = []

    def session(self) -> "InMemoryLedgerStore":
        return InMemoryLedgerStore(shared=self)

    def release(self) -> None:
        for key in self._held:
            self._locks[key].release()
        self._held.clear()

    def fail(self, method: str, after: int = 0) -> None:
        self._failures[method] = after

    async def _step(self, method: str) -> None:
        self.calls.append(method)
        if method in self._failures:
            if self._failures[method] <= 0:
                raise StorageError(f"injected failure in {method}")
            self._failures[method] -= 1
        await asyncio.sleep(0)

    async def _lock(self, kind: str, ident: uuid.UUID) -> None:
        key = (kind, ident)
        if key in self._held:
            return
        lock = self._locks.setdefault(key, asyncio.Lock())
        await lock.acquire()
        self._held.add(key)

    def add_account(self, user_id: uuid.UUID, balance: str = "0.00", **fields) -> Account:
        account = Account(
            id=uuid.uuid4(),
            user_id=user_id,
            name=fields.pop("name", "Wallet"),
            type=fields.pop("type", "cash"),
            currency=fields.pop("currency", "INR"),
            account_number=None,
            starting_balance=Decimal(balance),
            balance=Decimal(balance),
            is_archived=fields.pop("is_archived", False),
            created_at=_now(),
            updated_at=_now(),
        )
        self.accounts[account.id] = account
        return account

    def add_category(self, user_id: uuid.UUID, name: str = "Food", type: str = "expense") -> Category:
        category = Category(
            id=uuid.uuid4(),
            user_id=user_id,
            name=name,
            type=type,
            icon=None,
            color=None,
            is_default=False,
            created_at=_now(),
            updated_at=_now(),
        )
        self.categories[category.id] = category
        return category

    def balance_of(self, account: Account) -> Decimal:
        return self.accounts[account.id].balance

    def expected_balance(self, account: Account) -> Decimal:
        """starting_balance + sum of the effects of the account's live transactions."""
        total = account.starting_balance
        for txn in self.transactions.values():
            if txn.account_id == account.id:
                total += signed_effect(txn.amount, txn.type)
        return total

    async def get_account(self, account_id, user_id):
        await self._step("get_account")
        account = self.accounts.get(account_id)
        return account if account is not None and account.user_id == user_id else None

    async def get_category(self, category_id, user_id):
        await self._step("get_category")
        category = self.categories.get(category_id)
        return category if category is not None and category.user_id == user_id else None

    async def get_transaction(self, transaction_id, user_id, for_update: bool = False):
        await self._step("get_transaction")
        if for_update:
            await self._lock("transaction", transaction_id)
        txn = self.transactions.get(transaction_id)
        return txn if txn is not None and txn.user_id == user_id else None

    async def lock_accounts(self, account_ids, user_id):
        await self._step("lock_accounts")
        for account_id in sorted(set(account_ids)):
            await self._lock("account", account_id)

    async def insert_transaction(self, user_id, values: dict[str, Any]):
        await self._step("insert_transaction")
        txn = Transaction(
            id=uuid.uuid4(),
            user_id=user_id,
            created_at=_now(),
            updated_at=_now(),
            **values,
        )
        self.transactions[txn.id] = txn
        return txn

    async def update_transaction(self, txn, values: dict[str, Any]):
        await self._step("update_transaction")
        for key, value in values.items():
            setattr(txn, key, value)
        txn.updated_at = _now()
        return txn

    async def delete_transaction(self, transaction_id, user_id):
        await self._step("delete_transaction")
        txn = self.transactions.get(transaction_id)
        if txn is None or txn.user_id != user_id:
            return False
        del self.transactions[transaction_id]
        return True

    async def adjust_balance(self, account_id, user_id, delta):
        await self._step("adjust_balance")
        await self._lock("account", account_id)
        account = self.accounts.get(account_id)
        if account is None or account.user_id != user_id:
            raise StorageError(f"account {account_id} not found")
        account.balance = account.balance + delta
        return account.balance

    async def recompute_balance(self, account_id, user_id):
        await self._step("recompute_balance")
        account = self.accounts.get(account_id)
        if account is None or account.user_id != user_id:
            return None
        account.balance = self.expected_balance(account)
        return account.balance


class FakeResult:
    def __init__(self, rows: list):
        self.rows = rows

    def all(self):
        return list(self.rows)

    def one(self):
        return self.rows[0]

    def scalar_one_or_none(self):
        return self.rows[0] if self.rows else None

    def scalars(self):
        return self


class FakeDbSession:
    """Just enough of AsyncSession for the services that query directly.

    ``execute`` records each statement and answers with the next queued
    result, or an empty one.
    """

    def __init__(self):
        self.statements: list = []
        self.results: list[FakeResult] = []
        self.deleted: list = []

    def queue(self, *rows) -> None:
        self.results.append(FakeResult(list(rows)))

    async def execute(self, statement):
        self.statements.append(statement)
        return self.results.pop(0) if self.results else FakeResult([])

    async def delete(self, obj):
        self.deleted.append(obj)

    async def flush(self):
        pass

    async def refresh(self, obj):
        pass


def make_user(**fields) -> User:
    return User(
        id=fields.pop("id", None) or uuid.uuid4(),
        email=fields.pop("email", "owner@example.com"),
        full_name=fields.pop("full_name", None),
        currency=fields.pop("currency", "INR"),
        timezone=None,
        is_active=fields.pop("is_active", True),
        created_at=_now(),
        updated_at=_now(),
    )


@pytest.fixture
def store() -> InMemoryLedgerStore:
    return InMemoryLedgerStore()


@pytest.fixture
def user() -> User:
    return make_user()


@pytest.fixture
def other_user() -> User:
    return make_user(email="someone-else@example.com")


@pytest.fixture
def account(store, user) -> Account:
    return store.add_account(user.id, balance="1000.00")


@pytest.fixture
def db_session() -> FakeDbSession:
    return FakeDbSession()


async def _no_db():
    yield None


@pytest.fixture
async def client():
    """Async test client for the FastAPI app, with no database behind it."""
    app.dependency_overrides[get_db] = _no_db
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def auth_client(client, store, user, db_session):
    """Client authenticated as ``user`` whose writes go to the in-memory store."""
    app.dependency_overrides[get_current_user] = lambda: user
    app.dependency_overrides[get_ledger_store] = lambda: store
    app.dependency_overrides[get_db] = lambda: db_session
    yield client
