"""TagTrack IMS — Tag endpoints: create, list, get, overdue, update, allocate, fulfill, cancel."""
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from tagtrack.api.deps import get_db, require_actor
from tagtrack.models.tag import TagStatus, TagType
from tagtrack.schemas.common import ApiResponse, Meta
from tagtrack.schemas.tag import (
    AllocateRequest,
    CancelRequest,
    FulfillRequest,
    TagCreate,
    TagResponse,
    TagUpdate,
)
from tagtrack.services.allocation_service import AllocationService
from tagtrack.services.fulfillment_service import FulfillmentService
from tagtrack.services.tag_service import TagService

router = APIRouter()


@router.get("", response_model=ApiResponse[list[TagResponse]])
async def list_tags(
    db: AsyncSession = Depends(get_db),
    status_filter: TagStatus | None = Query(None, alias="status"),
    tag_type: TagType | None = None,
    customer: str | None = None,
    sku_id: UUID | None = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    actor: str = Depends(require_actor),
) -> Any:
    items, total = await TagService.list_tags(
        db,
        status=status_filter,
        tag_type=tag_type,
        customer=customer,
        sku_id=sku_id,
        page=page,
        page_size=page_size,
    )
    return ApiResponse(
        data=[TagResponse.model_validate(t) for t in items],
        meta=Meta(page=page, page_size=page_size, total_count=total),
    )


@router.post("", response_model=ApiResponse[TagResponse], status_code=status.HTTP_201_CREATED)
async def create_tag(
    body: TagCreate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(require_actor),
) -> Any:
    """Create a tag and allocate every line; any failing line rejects the whole tag."""
    tag = await TagService.create_tag(
        db,
        body.customer_name,
        body.tag_type,
        [line.model_dump() for line in body.sku_items],
        project_name=body.project_name,
        notes=body.notes,
        due_date=body.due_date,
        actor=actor,
    )
    return ApiResponse(data=TagResponse.model_validate(tag))


@router.get("/overdue", response_model=ApiResponse[list[TagResponse]])
async def overdue_tags(
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(require_actor),
) -> Any:
    items = await TagService.get_overdue_tags(db)
    return ApiResponse(data=[TagResponse.model_validate(t) for t in items])


@router.get("/{tag_id}", response_model=ApiResponse[TagResponse])
async def get_tag(
    tag_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(require_actor),
) -> Any:
    tag = await TagService.require(db, tag_id)
    return ApiResponse(data=TagResponse.model_validate(tag))


@router.put("/{tag_id}", response_model=ApiResponse[TagResponse])
async def update_tag(
    tag_id: UUID,
    body: TagUpdate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(require_actor),
) -> Any:
    tag = await TagService.update_tag(db, tag_id, **body.model_dump(exclude_unset=True), actor=actor)
    return ApiResponse(data=TagResponse.model_validate(tag))


@router.post("/{tag_id}/allocate", response_model=ApiResponse[TagResponse])
async def allocate(
    tag_id: UUID,
    body: AllocateRequest,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(require_actor),
) -> Any:
    tag = await AllocationService.allocate_instances(
        db,
        tag_id,
        body.sku_id,
        quantity=body.quantity,
        instance_ids=body.instance_ids,
        method=body.method,
        cost_order=body.cost_order,
        notes=body.notes,
        actor=actor,
    )
    return ApiResponse(data=TagResponse.model_validate(tag))


@router.post("/{tag_id}/fulfill", response_model=ApiResponse[TagResponse])
async def fulfill(
    tag_id: UUID,
    body: FulfillRequest,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(require_actor),
) -> Any:
    """Consume or release held instances; omitting resolutions resolves everything."""
    resolutions = None
    if body.resolutions is not None:
        resolutions = [r.model_dump(exclude_none=True) for r in body.resolutions]
    tag = await FulfillmentService.fulfill_tag(db, tag_id, resolutions, mode=body.mode, actor=actor)
    return ApiResponse(data=TagResponse.model_validate(tag))


@router.post("/{tag_id}/cancel", response_model=ApiResponse[TagResponse])
async def cancel(
    tag_id: UUID,
    body: CancelRequest,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(require_actor),
) -> Any:
    tag = await FulfillmentService.cancel_tag(db, tag_id, body.reason, actor=actor)
    return ApiResponse(data=TagResponse.model_validate(tag))
