"""Analytics schemas."""

import uuid
from datetime import date
from decimal import Decimal

from pydantic import BaseModel


class TransactionSummary(BaseModel):
    total_income: Decimal
    total_expenses: Decimal
    net_savings: Decimal
    savings_rate: float  # percent of income kept, 0 when there is no income
    expense_to_income_ratio: float
    transaction_count: int


class TrendItem(BaseModel):
    month: str  # "2026-01", "2026-02", etc.
    month_start: date
    total_income: Decimal
    total_expenses: Decimal
    net_savings: Decimal


class CategoryBreakdown(BaseModel):
    category_id: uuid.UUID | None
    category_name: str
    category_icon: str | None = None
    category_color: str | None = None
    total_amount: Decimal
    transaction_count: int
    percentage: float


class CategoryBreakdownResponse(BaseModel):
    data: list[CategoryBreakdown]
    period_total: Decimal
    start_date: date | None = None
    end_date: date | None = None
