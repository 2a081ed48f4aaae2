"""Analytics service: summary, monthly trend, category breakdown.

Only transactions on active accounts (or without an account) are counted.
"""

from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal

from sqlalchemy import case, func, literal_column, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from finance_tracker.core.exceptions import ValidationError
from finance_tracker.models.account import Account
from finance_tracker.models.category import Category
from finance_tracker.models.transaction import Transaction
from finance_tracker.models.user import User
from finance_tracker.schemas.analytics import (
    CategoryBreakdown,
    CategoryBreakdownResponse,
    TransactionSummary,
    TrendItem,
)
from finance_tracker.services.balance import TransactionType

ZERO = Decimal("0")


def day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def resolve_date_range(
    preset: str,
    today: date,
    start_date: date | None = None,
    end_date: date | None = None,
) -> tuple[date | None, date | None]:
    """Turn a date-range preset into an inclusive (start, end) pair of days.

    Weeks start on Sunday. "all" is unbounded; "custom" needs both ends.
    """
    if preset == "all":
        return None, None
    if preset == "today":
        return today, today
    if preset == "week":
        days_since_sunday = (today.weekday() + 1) % 7
        return today - timedelta(days=days_since_sunday), today
    if preset == "month":
        return today.replace(day=1), today
    if preset == "year":
        return today.replace(month=1, day=1), today
    if preset == "custom":
        if start_date is None or end_date is None:
            raise ValidationError("custom date range needs start_date and end_date")
        if start_date > end_date:
            raise ValidationError("start_date must not be after end_date")
        return start_date, end_date
    raise ValidationError(f"Unknown date range: {preset!r}")


def month_starts(today: date, months_back: int) -> list[date]:
    """First day of each of the last ``months_back`` months, oldest first, current month last."""
    months = []
    year, month = today.year, today.month
    for _ in range(months_back):
        months.append(date(year, month, 1))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(months))


def percentage(part: Decimal, total: Decimal) -> float:
    if not total:
        return 0.0
    return round(float(part / total * 100), 1)


def summarize(income: Decimal, expenses: Decimal, count: int) -> TransactionSummary:
    net = income - expenses
    return TransactionSummary(
        total_income=income,
        total_expenses=expenses,
        net_savings=net,
        savings_rate=percentage(net, income),
        expense_to_income_ratio=percentage(expenses, income),
        transaction_count=count,
    )


class AnalyticsService:
    def __init__(self, db: AsyncSession):
        self.db = db

    def _base_filters(self, user: User, start: date | None, end: date | None) -> list:
        """Return a list of WHERE clauses (reusable). Needs an outer join on accounts."""
        clauses = [
            Transaction.user_id == user.id,
            or_(Transaction.account_id.is_(None), Account.is_archived.is_(False)),
        ]
        if start:
            clauses.append(Transaction.occurred_at >= day_start(start))
        if end:
            clauses.append(Transaction.occurred_at < day_start(end + timedelta(days=1)))
        return clauses

    async def summary(
        self,
        user: User,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> TransactionSummary:
        """Income, expenses, net savings and savings rate over a window."""
        query = (
            select(
                func.coalesce(func.sum(
                    case((Transaction.type == TransactionType.INCOME.value, Transaction.amount), else_=ZERO)
                ), ZERO).label("income"),
                func.coalesce(func.sum(
                    case((Transaction.type == TransactionType.EXPENSE.value, Transaction.amount), else_=ZERO)
                ), ZERO).label("expenses"),
                func.count(Transaction.id).label("count"),
            )
            .select_from(Transaction)
            .outerjoin(Account, Transaction.account_id == Account.id)
            .where(*self._base_filters(user, start_date, end_date))
        )
        row = (await self.db.execute(query)).one()
        return summarize(Decimal(row.income), Decimal(row.expenses), row.count)

    async def monthly_trend(self, user: User, today: date, months_back: int = 6) -> list[TrendItem]:
        """Per-month totals for the last ``months_back`` months, empty months included."""
        months = month_starts(today, months_back)
        month_col = func.date_trunc("month", Transaction.occurred_at).label("month")

        query = (
            select(
                month_col,
                func.sum(
                    case((Transaction.type == TransactionType.INCOME.value, Transaction.amount), else_=ZERO)
                ).label("income"),
                func.sum(
                    case((Transaction.type == TransactionType.EXPENSE.value, Transaction.amount), else_=ZERO)
                ).label("expenses"),
            )
            .select_from(Transaction)
            .outerjoin(Account, Transaction.account_id == Account.id)
            .where(*self._base_filters(user, months[0], None))
            .group_by(literal_column("month"))
        )
        rows = (await self.db.execute(query)).all()
        totals = {
            (row.month.year, row.month.month): (row.income or ZERO, row.expenses or ZERO)
            for row in rows
        }

        trend = []
        for start in months:
            income, expenses = totals.get((start.year, start.month), (ZERO, ZERO))
            trend.append(TrendItem(
                month=start.strftime("%Y-%m"),
                month_start=start,
                total_income=income,
                total_expenses=expenses,
                net_savings=income - expenses,
            ))
        return trend

    async def by_category(
        self,
        user: User,
        txn_type: TransactionType = TransactionType.EXPENSE,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> CategoryBreakdownResponse:
        """Totals grouped by category, largest first; uncategorized as "Other"."""
        query = (
            select(
                Transaction.category_id,
                Category.name,
                Category.icon,
                Category.color,
                func.sum(Transaction.amount).label("total"),
                func.count(Transaction.id).label("count"),
            )
            .select_from(Transaction)
            .outerjoin(Account, Transaction.account_id == Account.id)
            .outerjoin(Category, Transaction.category_id == Category.id)
            .where(
                *self._base_filters(user, start_date, end_date),
                Transaction.type == txn_type.value,
            )
            .group_by(Transaction.category_id, Category.name, Category.icon, Category.color)
        )
        rows = (await self.db.execute(query)).all()

        period_total = sum((row.total for row in rows), ZERO)
        entries = [
            CategoryBreakdown(
                category_id=row.category_id,
                category_name=row.name or "Other",
                category_icon=row.icon,
                category_color=row.color,
                total_amount=row.total,
                transaction_count=row.count,
                percentage=percentage(row.total, period_total),
            )
            for row in rows
        ]
        entries.sort(key=lambda e: e.total_amount, reverse=True)
        return CategoryBreakdownResponse(
            data=entries,
            period_total=period_total,
            start_date=start_date,
            end_date=end_date,
        )
