"""TagTrack IMS — Tool checkout and return endpoints."""
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from tagtrack.api.deps import get_db, require_actor
from tagtrack.schemas.common import ApiResponse
from tagtrack.schemas.tag import TagResponse, ToolCheckout, ToolReturnRequest, ToolReturnResponse
from tagtrack.services.fulfillment_service import FulfillmentService
from tagtrack.services.tag_service import TagService

router = APIRouter()


@router.post("/checkout", response_model=ApiResponse[TagResponse], status_code=status.HTTP_201_CREATED)
async def checkout_tools(
    body: ToolCheckout,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(require_actor),
) -> Any:
    tag = await TagService.checkout_tools(
        db,
        body.customer_name,
        [line.model_dump() for line in body.sku_items],
        tag_type=body.tag_type,
        project_name=body.project_name,
        notes=body.notes,
        due_date=body.due_date,
        actor=actor,
    )
    return ApiResponse(data=TagResponse.model_validate(tag))


@router.post("/{tag_id}/return", response_model=ApiResponse[ToolReturnResponse])
async def return_tools(
    tag_id: UUID,
    body: ToolReturnRequest,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(require_actor),
) -> Any:
    """Functional tools go back to stock; damaged ones move to a maintenance or broken tag."""
    resolutions = None
    if body.resolutions is not None:
        resolutions = [r.model_dump(exclude_none=True) for r in body.resolutions]
    tag, condition_tag = await FulfillmentService.return_tools(
        db, tag_id, resolutions, condition=body.condition, notes=body.notes, actor=actor
    )
    return ApiResponse(
        data=ToolReturnResponse(
            tag=TagResponse.model_validate(tag),
            condition_tag=TagResponse.model_validate(condition_tag) if condition_tag else None,
        )
    )
