"""Transaction API routes."""

import uuid
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from finance_tracker.api.deps import get_current_user, get_db, get_ledger_store
from finance_tracker.models.user import User
from finance_tracker.schemas.transaction import (
    TransactionCreate,
    TransactionFilter,
    TransactionResponse,
    TransactionUpdate,
)
from finance_tracker.services.ledger_store import LedgerStore
from finance_tracker.services.transaction_service import TransactionService
from finance_tracker.services.transaction_writer import TransactionWriteCoordinator

router = APIRouter()


@router.get("", response_model=list[TransactionResponse])
async def list_transactions(
    start_date: date | None = None,
    end_date: date | None = None,
    type: str | None = Query(None, pattern="^(income|expense)$"),
    account_id: uuid.UUID | None = None,
    category_id: uuid.UUID | None = None,
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List transactions, most recent first."""
    filters = TransactionFilter(
        start_date=start_date,
        end_date=end_date,
        type=type,
        account_id=account_id,
        category_id=category_id,
        limit=limit,
        offset=offset,
    )
    service = TransactionService(db)
    return await service.list_transactions(current_user, filters)


@router.post("", response_model=TransactionResponse, status_code=201)
async def create_transaction(
    data: TransactionCreate,
    current_user: User = Depends(get_current_user),
    store: LedgerStore = Depends(get_ledger_store),
):
    """Create a transaction and apply it to its account balance."""
    return await TransactionWriteCoordinator(store).create(current_user.id, data)


@router.get("/{transaction_id}", response_model=TransactionResponse)
async def get_transaction(
    transaction_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    service = TransactionService(db)
    return await service.get_transaction(transaction_id, current_user)


@router.patch("/{transaction_id}", response_model=TransactionResponse)
@router.put("/{transaction_id}", response_model=TransactionResponse)
async def update_transaction(
    transaction_id: uuid.UUID,
    data: TransactionUpdate,
    current_user: User = Depends(get_current_user),
    store: LedgerStore = Depends(get_ledger_store),
):
    """Update a transaction; balances of the old and new account follow."""
    return await TransactionWriteCoordinator(store).update(current_user.id, transaction_id, data)


@router.delete("/{transaction_id}", status_code=204)
async def delete_transaction(
    transaction_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    store: LedgerStore = Depends(get_ledger_store),
):
    """Delete a transaction after reversing its balance effect."""
    await TransactionWriteCoordinator(store).delete(current_user.id, transaction_id)
