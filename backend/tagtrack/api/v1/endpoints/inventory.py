"""TagTrack IMS — Inventory endpoints: counters, reconciliation, alerts and valuation."""
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from tagtrack.api.deps import get_db, require_actor
from tagtrack.schemas.common import ApiResponse, Meta
from tagtrack.schemas.inventory import InventoryResponse, ReconcileReport, SyncRequest, ValuationReport
from tagtrack.services.inventory_service import InventoryService

router = APIRouter()


@router.get("", response_model=ApiResponse[list[InventoryResponse]])
async def list_inventory(
    db: AsyncSession = Depends(get_db),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    actor: str = Depends(require_actor),
):
    items, total = await InventoryService.list_inventory(db, page=page, page_size=page_size)
    return ApiResponse(
        data=[InventoryResponse.model_validate(i) for i in items],
        meta=Meta(page=page, page_size=page_size, total_count=total),
    )


@router.post("/sync", response_model=ApiResponse[ReconcileReport])
async def sync_inventory(
    body: SyncRequest,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(require_actor),
):
    """Rebuild counters from instances. Integrity violations are reported, not repaired."""
    report = await InventoryService.reconcile_inventory(db, body.sku_id, actor=actor, strict=body.strict)
    return ApiResponse(data=ReconcileReport(**report))


@router.get("/alerts/low-stock", response_model=ApiResponse[list[InventoryResponse]])
async def low_stock(db: AsyncSession = Depends(get_db), actor: str = Depends(require_actor)):
    items = await InventoryService.low_stock(db)
    return ApiResponse(data=[InventoryResponse.model_validate(i) for i in items])


@router.get("/alerts/out-of-stock", response_model=ApiResponse[list[InventoryResponse]])
async def out_of_stock(db: AsyncSession = Depends(get_db), actor: str = Depends(require_actor)):
    items = await InventoryService.out_of_stock(db)
    return ApiResponse(data=[InventoryResponse.model_validate(i) for i in items])


@router.get("/alerts/reorder", response_model=ApiResponse[list[InventoryResponse]])
async def reorder(db: AsyncSession = Depends(get_db), actor: str = Depends(require_actor)):
    items = await InventoryService.needs_reorder(db)
    return ApiResponse(data=[InventoryResponse.model_validate(i) for i in items])


@router.get("/reports/valuation", response_model=ApiResponse[ValuationReport])
async def valuation(db: AsyncSession = Depends(get_db), actor: str = Depends(require_actor)):
    return ApiResponse(data=ValuationReport(**await InventoryService.valuation_report(db)))


@router.get("/{sku_id}", response_model=ApiResponse[InventoryResponse])
async def get_inventory(
    sku_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(require_actor),
):
    inventory = await InventoryService.get_inventory(db, sku_id)
    if not inventory:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No inventory record for this SKU")
    return ApiResponse(data=InventoryResponse.model_validate(inventory))
