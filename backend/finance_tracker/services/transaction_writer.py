"""Transaction write path: keeps account balances in step with transactions.

Every create/update/delete touches two things: the transaction row and the
cached balance of the account(s) it references. The coordinator validates
everything before the first write, then performs the writes in a fixed
order, turning balance changes into atomic deltas on the store.

If the store fails, the caller learns whether anything had already been
written: ``StorageFailureError`` means nothing changed, ``PartialWriteError``
means the transaction and its balance may disagree until refreshed (or
reconciled via the accounts API).
"""

import uuid
from contextlib import contextmanager
from decimal import Decimal
from typing import Any

import structlog

from finance_tracker.config import settings
from finance_tracker.core.exceptions import (
    InvalidAmountError,
    NotFoundError,
    PartialWriteError,
    StorageFailureError,
    UnauthorizedError,
)
from finance_tracker.models.transaction import Transaction
from finance_tracker.schemas.transaction import TransactionCreate, TransactionUpdate
from finance_tracker.services import balance
from finance_tracker.services.ledger_store import LedgerStore, StorageError

logger = structlog.get_logger()

# Fields that cannot be cleared by an explicit null in a patch
_REQUIRED_FIELDS = ("title", "amount", "type", "occurred_at", "currency")


class TransactionWriteCoordinator:
    def __init__(self, store: LedgerStore):
        self.store = store

    async def create(self, user_id: uuid.UUID | None, data: TransactionCreate) -> Transaction:
        """Insert a transaction and apply its effect to its account."""
        if user_id is None:
            raise UnauthorizedError()
        amount = _positive_amount(data.amount)
        txn_type = balance.parse_type(data.type)
        effect = balance.signed_effect(amount, txn_type)

        done: list[str] = []
        with self._storage_guard("create", done):
            account = None
            if data.account_id is not None:
                account = await self._owned_account(data.account_id, user_id)
            if data.category_id is not None:
                await self._owned_category(data.category_id, user_id)

            currency = data.currency or (account.currency if account else settings.default_currency)
            txn = await self.store.insert_transaction(
                user_id,
                {
                    "account_id": data.account_id,
                    "category_id": data.category_id,
                    "title": data.title,
                    "description": data.description,
                    "amount": amount,
                    "type": txn_type.value,
                    "currency": currency,
                    "occurred_at": data.occurred_at,
                },
            )
            done.append("transaction_row")

            if data.account_id is not None:
                await self.store.adjust_balance(data.account_id, user_id, effect)
                done.append("account_balance")

        logger.info(
            "transaction_created",
            transaction_id=str(txn.id),
            account_id=str(data.account_id) if data.account_id else None,
            effect=str(effect),
        )
        return txn

    async def update(
        self,
        user_id: uuid.UUID | None,
        transaction_id: uuid.UUID,
        patch: TransactionUpdate,
    ) -> Transaction:
        """Rewrite a transaction, moving its balance effect as needed.

        The old effect is undone on the account the transaction referenced
        before the update and the new effect applied to the account it
        references afterwards. When both are the same account the two steps
        collapse into one delta; otherwise each account gets its own write.
        A transaction without an account contributes nothing on that side.

        The row is read with a lock, so the old effect is the committed one
        even when another request edits or deletes the same transaction.
        Moving to another account also takes that account's currency unless
        the patch sets one.
        """
        if user_id is None:
            raise UnauthorizedError()
        changes = patch.model_dump(exclude_unset=True)
        for field in _REQUIRED_FIELDS:
            if field in changes and changes[field] is None:
                del changes[field]

        done: list[str] = []
        with self._storage_guard("update", done):
            txn = await self.store.get_transaction(transaction_id, user_id, for_update=True)
            if txn is None:
                raise NotFoundError("Transaction")

            old_account_id = txn.account_id
            old_effect = balance.signed_effect(txn.amount, txn.type)

            new_account_id = changes.get("account_id", old_account_id)
            if "amount" in changes:
                changes["amount"] = _positive_amount(changes["amount"])
            if "type" in changes:
                changes["type"] = balance.parse_type(changes["type"]).value
            new_effect = balance.signed_effect(
                changes.get("amount", txn.amount), changes.get("type", txn.type)
            )

            if new_account_id is not None and new_account_id != old_account_id:
                new_account = await self._owned_account(new_account_id, user_id)
                if "currency" not in changes:
                    changes["currency"] = new_account.currency
            if changes.get("category_id") is not None:
                await self._owned_category(changes["category_id"], user_id)

            moving = [a for a in (old_account_id, new_account_id) if a is not None]
            if old_account_id != new_account_id and len(moving) == 2:
                await self.store.lock_accounts(moving, user_id)

            txn = await self.store.update_transaction(txn, changes)
            done.append("transaction_row")

            if old_account_id == new_account_id:
                if old_account_id is not None and new_effect != old_effect:
                    await self.store.adjust_balance(old_account_id, user_id, new_effect - old_effect)
                    done.append("account_balance")
            else:
                if old_account_id is not None:
                    await self.store.adjust_balance(old_account_id, user_id, -old_effect)
                    done.append("old_account_balance")
                if new_account_id is not None:
                    await self.store.adjust_balance(new_account_id, user_id, new_effect)
                    done.append("new_account_balance")

        logger.info(
            "transaction_updated",
            transaction_id=str(transaction_id),
            old_account_id=str(old_account_id) if old_account_id else None,
            new_account_id=str(new_account_id) if new_account_id else None,
            old_effect=str(old_effect),
            new_effect=str(new_effect),
        )
        return txn

    async def delete(self, user_id: uuid.UUID | None, transaction_id: uuid.UUID) -> None:
        """Undo a transaction's effect on its account, then delete it."""
        if user_id is None:
            raise UnauthorizedError()

        done: list[str] = []
        with self._storage_guard("delete", done):
            txn = await self.store.get_transaction(transaction_id, user_id, for_update=True)
            if txn is None:
                raise NotFoundError("Transaction")

            # The stored row is the only record of what to undo
            account_id = txn.account_id
            effect = balance.signed_effect(txn.amount, txn.type)

            if account_id is not None:
                await self.store.adjust_balance(account_id, user_id, -effect)
                done.append("account_balance")

            deleted = await self.store.delete_transaction(transaction_id, user_id)
            if not deleted:
                # Someone else deleted it after our read and already undid its effect
                if account_id is not None:
                    await self.store.adjust_balance(account_id, user_id, effect)
                raise NotFoundError("Transaction")
            done.append("transaction_row")

        logger.info(
            "transaction_deleted",
            transaction_id=str(transaction_id),
            account_id=str(account_id) if account_id else None,
            reversed_effect=str(-effect),
        )

    async def _owned_account(self, account_id: uuid.UUID, user_id: uuid.UUID):
        account = await self.store.get_account(account_id, user_id)
        if account is None:
            raise NotFoundError("Account")
        return account

    async def _owned_category(self, category_id: uuid.UUID, user_id: uuid.UUID):
        category = await self.store.get_category(category_id, user_id)
        if category is None:
            raise NotFoundError("Category")
        return category

    @contextmanager
    def _storage_guard(self, operation: str, done: list[str]):
        """Translate store failures into errors that say what was written."""
        try:
            yield
        except StorageError as e:
            if done:
                logger.exception(
                    "transaction_write_partial_failure",
                    operation=operation,
                    completed=list(done),
                )
                raise PartialWriteError(operation) from e
            logger.exception("transaction_write_storage_failure", operation=operation)
            raise StorageFailureError() from e


def _positive_amount(amount: Any) -> Decimal:
    value = balance.check_amount(amount)
    if value == 0:
        raise InvalidAmountError()
    return value
