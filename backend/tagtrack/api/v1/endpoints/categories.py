"""TagTrack IMS — Category endpoints. GET /categories, POST, GET/{id}."""
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from tagtrack.api.deps import get_db, require_actor
from tagtrack.models.category import CategoryType
from tagtrack.schemas.category import CategoryCreate, CategoryResponse
from tagtrack.schemas.common import ApiResponse
from tagtrack.services.category_service import CategoryService

router = APIRouter()


@router.get("", response_model=ApiResponse[list[CategoryResponse]])
async def list_categories(
    db: AsyncSession = Depends(get_db),
    type: CategoryType | None = None,
    include_inactive: bool = False,
    actor: str = Depends(require_actor),
):
    items = await CategoryService.list_categories(db, type=type, include_inactive=include_inactive)
    return ApiResponse(data=[CategoryResponse.model_validate(c) for c in items])


@router.post("", response_model=ApiResponse[CategoryResponse], status_code=status.HTTP_201_CREATED)
async def create_category(
    body: CategoryCreate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(require_actor),
):
    category = await CategoryService.create_category(
        db,
        body.name,
        body.type,
        description=body.description,
        attributes=body.attributes,
        sort_order=body.sort_order,
        actor=actor,
    )
    return ApiResponse(data=CategoryResponse.model_validate(category))


@router.get("/{id}", response_model=ApiResponse[CategoryResponse])
async def get_category(
    id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(require_actor),
):
    category = await CategoryService.get_by_id(db, id)
    if not category:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return ApiResponse(data=CategoryResponse.model_validate(category))
