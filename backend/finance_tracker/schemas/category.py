"""Category schemas."""

import uuid
from typing import Literal

from pydantic import BaseModel, Field

CategoryType = Literal["expense", "income"]


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    type: CategoryType
    icon: str | None = None
    color: str | None = None


class CategoryUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    type: CategoryType | None = None
    icon: str | None = None
    color: str | None = None


class CategoryResponse(BaseModel):
    id: uuid.UUID
    name: str
    type: str
    icon: str | None
    color: str | None
    is_default: bool

    model_config = {"from_attributes": True}
