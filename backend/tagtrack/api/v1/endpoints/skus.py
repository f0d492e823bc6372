"""TagTrack IMS — SKU endpoints. GET /skus, POST, GET/{id}, PUT, DELETE, cost history."""
from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from tagtrack.api.deps import get_db, require_actor
from tagtrack.models.category import CategoryType
from tagtrack.models.sku import SKUStatus
from tagtrack.schemas.common import ApiResponse, Meta
from tagtrack.schemas.sku import CostAtDateResponse, CostUpdate, SKUCreate, SKUResponse, SKUUpdate
from tagtrack.services.sku_service import SKUService

router = APIRouter()


@router.get("", response_model=ApiResponse[list[SKUResponse]])
async def list_skus(
    db: AsyncSession = Depends(get_db),
    category_id: UUID | None = None,
    category_type: CategoryType | None = None,
    search: str | None = None,
    status_filter: SKUStatus | None = Query(SKUStatus.ACTIVE, alias="status"),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    actor: str = Depends(require_actor),
):
    """List SKUs with filters."""
    items, total = await SKUService.get_skus(
        db,
        category_id=category_id,
        category_type=category_type,
        search=search,
        status=status_filter,
        page=page,
        page_size=page_size,
    )
    return ApiResponse(
        data=[SKUResponse.model_validate(i) for i in items],
        meta=Meta(page=page, page_size=page_size, total_count=total),
    )


@router.post("", response_model=ApiResponse[SKUResponse], status_code=status.HTTP_201_CREATED)
async def create_sku(
    body: SKUCreate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(require_actor),
):
    """Create SKU. Bundle SKUs list their component SKUs."""
    sku = await SKUService.create_sku(
        db,
        body.sku_code,
        body.name,
        body.category_id,
        unit_cost=body.unit_cost,
        description=body.description,
        is_bundle=body.is_bundle,
        bundle_items=[item.model_dump() for item in body.bundle_items],
        barcode=body.barcode,
        manufacturer_model=body.manufacturer_model,
        understocked_threshold=body.understocked_threshold,
        overstocked_threshold=body.overstocked_threshold,
        actor=actor,
    )
    return ApiResponse(data=SKUResponse.model_validate(sku))


@router.get("/{id}", response_model=ApiResponse[SKUResponse])
async def get_sku(
    id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(require_actor),
):
    sku = await SKUService.get_by_id(db, id)
    if not sku:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return ApiResponse(data=SKUResponse.model_validate(sku))


@router.put("/{id}", response_model=ApiResponse[SKUResponse])
async def update_sku(
    id: UUID,
    body: SKUUpdate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(require_actor),
):
    """Update SKU metadata. Cost changes go through POST /{id}/cost."""
    sku = await SKUService.update_sku(db, id, **body.model_dump(exclude_unset=True), actor=actor)
    return ApiResponse(data=SKUResponse.model_validate(sku))


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
async def archive_sku(
    id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(require_actor),
):
    """Soft-archive: status becomes discontinued."""
    await SKUService.archive_sku(db, id, actor)


@router.post("/{id}/cost", response_model=ApiResponse[SKUResponse])
async def add_cost(
    id: UUID,
    body: CostUpdate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(require_actor),
):
    """Append a cost history entry. Instances already on hand keep their acquisition cost."""
    sku = await SKUService.add_cost(
        db, id, body.cost, notes=body.notes, effective_date=body.effective_date, actor=actor
    )
    return ApiResponse(data=SKUResponse.model_validate(sku))


@router.get("/{id}/cost-at", response_model=ApiResponse[CostAtDateResponse])
async def cost_at(
    id: UUID,
    at: datetime,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(require_actor),
):
    cost = await SKUService.get_cost_at_date(db, id, at)
    return ApiResponse(data=CostAtDateResponse(sku_id=id, at=at, cost=cost))
