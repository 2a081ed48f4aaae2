"""Account management API routes."""

import uuid
from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from finance_tracker.api.deps import get_current_user, get_db, get_ledger_store
from finance_tracker.models.user import User
from finance_tracker.schemas.account import (
    AccountCreate,
    AccountResponse,
    AccountSummary,
    AccountType,
    AccountUpdate,
    AccountWithStats,
)
from finance_tracker.services.account_service import AccountService
from finance_tracker.services.ledger_store import LedgerStore

router = APIRouter()


def get_account_service(
    db: AsyncSession = Depends(get_db),
    store: LedgerStore = Depends(get_ledger_store),
) -> AccountService:
    return AccountService(db, store)


@router.get("", response_model=list[AccountResponse])
async def list_accounts(
    include_archived: bool = False,
    type: AccountType | None = None,
    current_user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
):
    """Accounts of the current user, archived ones only on request."""
    return await service.list_accounts(current_user, include_archived=include_archived, type=type)


@router.get("/stats", response_model=list[AccountWithStats])
async def list_accounts_with_stats(
    start_date: date | None = None,
    end_date: date | None = None,
    current_user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
):
    """Active accounts with transaction count and last transaction date."""
    return await service.list_accounts_with_stats(current_user, start_date, end_date)


@router.get("/summary", response_model=AccountSummary)
async def get_summary(
    current_user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
):
    """Total balance over active accounts."""
    return await service.get_summary(current_user)


@router.post("", response_model=AccountResponse, status_code=201)
async def create_account(
    data: AccountCreate,
    current_user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
):
    return await service.create_account(data, current_user)


@router.get("/{account_id}", response_model=AccountResponse)
async def get_account(
    account_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
):
    return await service.get_account(account_id, current_user)


@router.patch("/{account_id}", response_model=AccountResponse)
async def update_account(
    account_id: uuid.UUID,
    data: AccountUpdate,
    current_user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
):
    """Rename, (un)archive or change the starting balance; the balance follows."""
    return await service.update_account(account_id, data, current_user)


@router.post("/{account_id}/reconcile", response_model=AccountResponse)
async def reconcile_balance(
    account_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
):
    """Recompute the account balance from its starting balance and transactions."""
    return await service.reconcile_balance(account_id, current_user)


@router.delete("/{account_id}", status_code=204)
async def archive_account(
    account_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
):
    """Soft delete: the account is archived, its transactions stay."""
    await service.archive_account(account_id, current_user)
