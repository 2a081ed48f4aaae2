"""Category API routes. Categories are per user and typed expense or income."""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from finance_tracker.api.deps import get_current_user, get_db
from finance_tracker.models.user import User
from finance_tracker.schemas.category import (
    CategoryCreate,
    CategoryResponse,
    CategoryType,
    CategoryUpdate,
)
from finance_tracker.services.category_service import CategoryService

router = APIRouter()


def get_category_service(db: AsyncSession = Depends(get_db)) -> CategoryService:
    return CategoryService(db)


@router.get("", response_model=list[CategoryResponse])
async def list_categories(
    type: CategoryType | None = None,
    current_user: User = Depends(get_current_user),
    service: CategoryService = Depends(get_category_service),
):
    """Alphabetical; pass ``type`` to get only expense or income categories."""
    return await service.list_categories(current_user, type)


@router.post("", response_model=CategoryResponse, status_code=201)
async def create_category(
    data: CategoryCreate,
    current_user: User = Depends(get_current_user),
    service: CategoryService = Depends(get_category_service),
):
    return await service.create_category(data, current_user)


@router.patch("/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: uuid.UUID,
    data: CategoryUpdate,
    current_user: User = Depends(get_current_user),
    service: CategoryService = Depends(get_category_service),
):
    return await service.update_category(category_id, data, current_user)


@router.delete("/{category_id}", status_code=204)
async def delete_category(
    category_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    service: CategoryService = Depends(get_category_service),
):
    """Remove the category; transactions that used it become uncategorized."""
    await service.delete_category(category_id, current_user)
