"""Category management service."""

import uuid

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from finance_tracker.core.exceptions import NotFoundError
from finance_tracker.models.category import Category
from finance_tracker.models.transaction import Transaction
from finance_tracker.models.user import User
from finance_tracker.schemas.category import CategoryCreate, CategoryUpdate

# (name, type, icon, color) created for every new user
DEFAULT_CATEGORIES = [
    ("Salary", "income", "briefcase", "#22c55e"),
    ("Other income", "income", "plus-circle", "#16a34a"),
    ("Food & Dining", "expense", "utensils", "#eab308"),
    ("Transport", "expense", "car", "#3b82f6"),
    ("Housing", "expense", "home", "#f97316"),
    ("Shopping", "expense", "shopping-bag", "#f43f5e"),
    ("Health", "expense", "heart", "#ec4899"),
    ("Entertainment", "expense", "film", "#8b5cf6"),
    ("Other", "expense", "more-horizontal", "#94a3b8"),
]


class CategoryService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_categories(self, user: User, type: str | None = None) -> list[Category]:
        """List the user's categories, optionally only one type."""
        query = select(Category).where(Category.user_id == user.id)
        if type:
            query = query.where(Category.type == type)
        result = await self.db.execute(query.order_by(Category.name))
        return list(result.scalars().all())

    async def create_defaults(self, user: User) -> None:
        for name, type_, icon, color in DEFAULT_CATEGORIES:
            self.db.add(
                Category(
                    user_id=user.id,
                    name=name,
                    type=type_,
                    icon=icon,
                    color=color,
                    is_default=True,
                )
            )
        await self.db.flush()

    async def create_category(self, data: CategoryCreate, user: User) -> Category:
        category = Category(
            user_id=user.id,
            name=data.name,
            type=data.type,
            icon=data.icon,
            color=data.color,
            is_default=False,
        )
        self.db.add(category)
        await self.db.flush()
        await self.db.refresh(category)
        return category

    async def update_category(
        self, category_id: uuid.UUID, data: CategoryUpdate, user: User
    ) -> Category:
        category = await self._get_user_category(category_id, user)
        update_data = data.model_dump(exclude_unset=True, exclude_none=True)
        for key, value in update_data.items():
            setattr(category, key, value)
        await self.db.flush()
        await self.db.refresh(category)
        return category

    async def delete_category(self, category_id: uuid.UUID, user: User) -> None:
        """Delete a category. Its transactions are kept, uncategorized."""
        category = await self._get_user_category(category_id, user)
        await self.db.execute(
            update(Transaction)
            .where(Transaction.category_id == category.id, Transaction.user_id == user.id)
            .values(category_id=None)
            .execution_options(synchronize_session=False)
        )
        await self.db.delete(category)
        await self.db.flush()

    async def _get_user_category(self, category_id: uuid.UUID, user: User) -> Category:
        """Fetch a category owned by the user; foreign ones look missing."""
        result = await self.db.execute(
            select(Category).where(Category.id == category_id, Category.user_id == user.id)
        )
        category = result.scalar_one_or_none()
        if not category:
            raise NotFoundError("Category")
        return category
