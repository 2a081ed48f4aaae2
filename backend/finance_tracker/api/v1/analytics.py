"""Analytics API routes: summary, trend, category breakdown."""

from datetime import date, datetime, timezone

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from finance_tracker.api.deps import get_current_user, get_db
from finance_tracker.models.user import User
from finance_tracker.schemas.analytics import CategoryBreakdownResponse, TransactionSummary, TrendItem
from finance_tracker.services.analytics_service import AnalyticsService, resolve_date_range
from finance_tracker.services.balance import TransactionType

router = APIRouter()


def _today() -> date:
    return datetime.now(timezone.utc).date()


@router.get("/summary", response_model=TransactionSummary)
async def summary(
    start_date: date | None = None,
    end_date: date | None = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Income, expenses and savings over an optional window."""
    service = AnalyticsService(db)
    return await service.summary(current_user, start_date, end_date)


@router.get("/trend", response_model=list[TrendItem])
async def trend(
    months_back: int = Query(6, ge=1, le=24),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Monthly income/expense totals, oldest month first."""
    service = AnalyticsService(db)
    return await service.monthly_trend(current_user, _today(), months_back)


@router.get("/by-category", response_model=CategoryBreakdownResponse)
async def by_category(
    type: TransactionType = TransactionType.EXPENSE,
    date_range: str = Query("month", pattern="^(today|week|month|year|all|custom)$"),
    start_date: date | None = None,
    end_date: date | None = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Amounts broken down by category, with each category's share of the total.

    ``date_range=custom`` requires both ``start_date`` and ``end_date``.
    """
    start, end = resolve_date_range(date_range, _today(), start_date, end_date)
    service = AnalyticsService(db)
    return await service.by_category(current_user, type, start, end)
