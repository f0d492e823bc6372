"""TagTrack IMS — Category schemas."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from tagtrack.models.category import CategoryType


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: CategoryType = CategoryType.PRODUCT
    description: str = ""
    attributes: list[str] = Field(default_factory=list)
    sort_order: int = 0


class CategoryResponse(BaseModel):
    id: UUID
    name: str
    type: str
    description: str
    attributes: list[str]
    sort_order: int
    status: str
    created_at: datetime | None = None

    model_config = {"from_attributes": True}
