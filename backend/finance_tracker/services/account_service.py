"""Account management service."""

import uuid
from datetime import date, timedelta
from decimal import Decimal

import structlog
from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from finance_tracker.config import settings
from finance_tracker.core.exceptions import NotFoundError
from finance_tracker.models.account import Account
from finance_tracker.models.transaction import Transaction
from finance_tracker.models.user import User
from finance_tracker.schemas.account import AccountCreate, AccountResponse, AccountSummary, AccountUpdate
from finance_tracker.services.analytics_service import day_start
from finance_tracker.services.ledger_store import LedgerStore, SqlLedgerStore

logger = structlog.get_logger()


class AccountService:
    def __init__(self, db: AsyncSession, store: LedgerStore | None = None):
        self.db = db
        self.store = store or SqlLedgerStore(db)

    async def list_accounts(
        self,
        user: User,
        include_archived: bool = False,
        type: str | None = None,
    ) -> list[Account]:
        """List the user's accounts, newest first."""
        query = select(Account).where(Account.user_id == user.id)
        if not include_archived:
            query = query.where(Account.is_archived.is_(False))
        if type:
            query = query.where(Account.type == type)
        result = await self.db.execute(query.order_by(Account.created_at.desc()))
        return list(result.scalars().all())

    async def list_accounts_with_stats(
        self,
        user: User,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[dict]:
        """Active accounts with their transaction count and latest transaction date."""
        join_on = [Transaction.account_id == Account.id]
        if start_date:
            join_on.append(Transaction.occurred_at >= day_start(start_date))
        if end_date:
            join_on.append(Transaction.occurred_at < day_start(end_date + timedelta(days=1)))

        result = await self.db.execute(
            select(
                Account,
                func.count(Transaction.id).label("transaction_count"),
                func.max(Transaction.occurred_at).label("last_transaction_date"),
            )
            .outerjoin(Transaction, and_(*join_on))
            .where(Account.user_id == user.id, Account.is_archived.is_(False))
            .group_by(Account.id)
            .order_by(Account.created_at.desc())
        )
        enriched = []
        for acc, count, last_date in result.all():
            enriched.append({
                "id": acc.id,
                "user_id": acc.user_id,
                "name": acc.name,
                "type": acc.type,
                "currency": acc.currency,
                "account_number": acc.account_number,
                "starting_balance": acc.starting_balance,
                "balance": acc.balance,
                "is_archived": acc.is_archived,
                "created_at": acc.created_at,
                "updated_at": acc.updated_at,
                "transaction_count": count,
                "last_transaction_date": last_date,
            })
        return enriched

    async def create_account(self, data: AccountCreate, user: User) -> Account:
        """Create an account; its balance starts at the starting balance."""
        account = Account(
            user_id=user.id,
            name=data.name,
            type=data.type,
            currency=(data.currency or user.currency or settings.default_currency).upper(),
            account_number=data.account_number,
            starting_balance=data.starting_balance,
            balance=data.starting_balance,
        )
        self.db.add(account)
        await self.db.flush()
        await self.db.refresh(account)
        return account

    async def get_account(self, account_id: uuid.UUID, user: User) -> Account:
        return await self._get_user_account(account_id, user)

    async def update_account(self, account_id: uuid.UUID, data: AccountUpdate, user: User) -> Account:
        """Update an account.

        A new starting balance moves the cached balance by the same
        difference, as one atomic increment, so transaction effects already
        in the balance are preserved.
        """
        account = await self._get_user_account(account_id, user)
        update_data = data.model_dump(exclude_unset=True, exclude_none=True)

        new_starting = update_data.pop("starting_balance", None)
        if new_starting is not None and new_starting != account.starting_balance:
            shift = new_starting - account.starting_balance
            account.starting_balance = new_starting
            await self.db.flush()
            await self.store.adjust_balance(account.id, user.id, shift)

        for key, value in update_data.items():
            setattr(account, key, value)
        await self.db.flush()
        await self.db.refresh(account)
        return account

    async def archive_account(self, account_id: uuid.UUID, user: User) -> None:
        """Archive (soft-delete) an account. Its transactions stay untouched."""
        account = await self._get_user_account(account_id, user)
        account.is_archived = True
        await self.db.flush()

    async def get_summary(self, user: User) -> AccountSummary:
        """Consolidated balance over active accounts."""
        accounts = await self.list_accounts(user)
        total = sum((a.balance for a in accounts), Decimal("0.00"))
        return AccountSummary(
            total_balance=total,
            total_accounts=len(accounts),
            accounts=[AccountResponse.model_validate(a) for a in accounts],
        )

    async def reconcile_balance(self, account_id: uuid.UUID, user: User) -> Account:
        """Recompute the cached balance from the starting balance and all transactions.

        Recovery path for balances that drifted, e.g. after a partially
        failed write reported to the client.
        """
        account = await self._get_user_account(account_id, user)
        previous = account.balance
        await self.store.recompute_balance(account.id, user.id)
        await self.db.refresh(account)
        if account.balance != previous:
            logger.warning(
                "account_balance_reconciled",
                account_id=str(account.id),
                previous=str(previous),
                balance=str(account.balance),
            )
        return account

    async def _get_user_account(self, account_id: uuid.UUID, user: User) -> Account:
        """Fetch an account owned by the user; foreign ones look missing."""
        account = await self.store.get_account(account_id, user.id)
        if not account:
            raise NotFoundError("Account")
        return account