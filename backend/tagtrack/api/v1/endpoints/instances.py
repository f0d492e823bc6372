"""TagTrack IMS — Instance endpoints: stock receipt, adjustments, instance lists and cost views."""
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from tagtrack.api.deps import get_db, require_actor
from tagtrack.schemas.common import ApiResponse, Meta
from tagtrack.schemas.instance import (
    AdjustmentResponse,
    AdjustQuantityRequest,
    CostBreakdownLine,
    CostSummary,
    InstanceResponse,
    InstanceUpdate,
    ReceiveStockRequest,
)
from tagtrack.services.instance_service import InstanceService
from tagtrack.services.sku_service import SKUService

router = APIRouter()


@router.post("/receive", response_model=ApiResponse[list[InstanceResponse]], status_code=status.HTTP_201_CREATED)
async def receive_stock(
    body: ReceiveStockRequest,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(require_actor),
):
    """Receive stock. A bundle SKU is received as its components."""
    created = await InstanceService.receive_stock(
        db,
        body.sku_id,
        body.quantity,
        body.unit_cost,
        location=body.location,
        supplier=body.supplier,
        reference_number=body.reference_number,
        notes=body.notes,
        acquisition_date=body.acquisition_date,
        actor=actor,
    )
    return ApiResponse(data=[InstanceResponse.model_validate(i) for i in created])


@router.post("/adjust", response_model=ApiResponse[AdjustmentResponse])
async def adjust_quantity(
    body: AdjustQuantityRequest,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(require_actor),
):
    result = await InstanceService.adjust_quantity(
        db, body.sku_id, body.adjustment, reason=body.reason, actor=actor
    )
    return ApiResponse(data=AdjustmentResponse(**result))


@router.get("/cost-breakdown/{sku_id}", response_model=ApiResponse[list[CostBreakdownLine]])
async def cost_breakdown(
    sku_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(require_actor),
):
    await SKUService.require(db, sku_id)
    lines = await InstanceService.cost_breakdown(db, sku_id)
    return ApiResponse(data=[CostBreakdownLine(**line) for line in lines])


@router.get("/cost-summary/{sku_id}", response_model=ApiResponse[CostSummary])
async def cost_summary(
    sku_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(require_actor),
):
    await SKUService.require(db, sku_id)
    return ApiResponse(data=CostSummary(**await InstanceService.cost_summary(db, sku_id)))


@router.get("/{sku_id}", response_model=ApiResponse[list[InstanceResponse]])
async def list_instances(
    sku_id: UUID,
    available_only: bool = False,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(require_actor),
):
    """Instances of a SKU, oldest first."""
    await SKUService.require(db, sku_id)
    items = await InstanceService.list_for_sku(db, sku_id, available_only=available_only)
    return ApiResponse(
        data=[InstanceResponse.model_validate(i) for i in items],
        meta=Meta(page=1, page_size=len(items), total_count=len(items)),
    )


@router.put("/{id}", response_model=ApiResponse[InstanceResponse])
async def update_instance(
    id: UUID,
    body: InstanceUpdate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(require_actor),
):
    """Descriptive fields only."""
    instance = await InstanceService.update_instance(db, id, **body.model_dump(exclude_unset=True))
    return ApiResponse(data=InstanceResponse.model_validate(instance))
