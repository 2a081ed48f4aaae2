"""User profile API routes."""

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from finance_tracker.api.deps import get_current_user, get_db
from finance_tracker.models.user import User
from finance_tracker.schemas.user import UserResponse, UserUpdate

logger = structlog.get_logger()

router = APIRouter()


@router.get("/me", response_model=UserResponse)
async def get_profile(current_user: User = Depends(get_current_user)):
    """Get current user profile."""
    return current_user


@router.patch("/me", response_model=UserResponse)
async def update_profile(
    data: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Update full name, default currency or timezone."""
    update_data = data.model_dump(exclude_unset=True, exclude_none=True)
    for key, value in update_data.items():
        setattr(current_user, key, value)
    await db.flush()
    await db.refresh(current_user)
    logger.info("user_profile_updated", user_id=str(current_user.id), fields=sorted(update_data))
    return current_user
