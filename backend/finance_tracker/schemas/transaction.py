"""Transaction schemas for request/response validation."""

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

from pydantic import BaseModel, Field

# amount and type are deliberately loose here: the balance helpers reject bad
# values with their own errors (InvalidAmountError / InvalidTransactionTypeError).


class TransactionCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    amount: Decimal
    type: str
    account_id: uuid.UUID | None = None
    category_id: uuid.UUID | None = None
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    currency: str | None = Field(default=None, min_length=3, max_length=3)


class TransactionUpdate(BaseModel):
    """Partial update. An explicit null account_id detaches the account."""

    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    amount: Decimal | None = None
    type: str | None = None
    account_id: uuid.UUID | None = None
    category_id: uuid.UUID | None = None
    occurred_at: datetime | None = None
    currency: str | None = Field(default=None, min_length=3, max_length=3)


class TransactionCategory(BaseModel):
    id: uuid.UUID
    name: str
    icon: str | None = None
    color: str | None = None
    type: str

    model_config = {"from_attributes": True}


class TransactionAccount(BaseModel):
    id: uuid.UUID
    name: str
    type: str

    model_config = {"from_attributes": True}


class TransactionResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    title: str
    description: str | None = None
    amount: Decimal
    type: str
    account_id: uuid.UUID | None = None
    category_id: uuid.UUID | None = None
    occurred_at: datetime
    currency: str
    created_at: datetime
    updated_at: datetime
    category: TransactionCategory | None = None
    account: TransactionAccount | None = None

    model_config = {"from_attributes": True}


class TransactionFilter(BaseModel):
    start_date: date | None = None
    end_date: date | None = None
    type: str | None = None
    account_id: uuid.UUID | None = None
    category_id: uuid.UUID | None = None
    limit: int = 100
    offset: int = 0
