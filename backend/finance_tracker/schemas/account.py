"""Account schemas for request/response validation."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field

AccountType = Literal["cash", "bank", "credit", "wallet", "savings", "investment"]


class AccountCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    type: AccountType
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    account_number: str | None = None
    starting_balance: Decimal = Decimal("0.00")


class AccountUpdate(BaseModel):
    """Editable account fields.

    The cached balance itself is not writable: changing starting_balance
    shifts it by the same difference.
    """

    name: str | None = Field(default=None, min_length=1, max_length=255)
    type: AccountType | None = None
    account_number: str | None = None
    starting_balance: Decimal | None = None
    is_archived: bool | None = None


class AccountResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    name: str
    type: str
    currency: str
    account_number: str | None = None
    starting_balance: Decimal
    balance: Decimal
    is_archived: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AccountWithStats(AccountResponse):
    transaction_count: int
    last_transaction_date: datetime | None = None


class AccountSummary(BaseModel):
    total_balance: Decimal
    total_accounts: int
    accounts: list[AccountResponse]
