"""TagTrack IMS — Tag schemas: creation, allocation, fulfillment and tool returns."""
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from tagtrack.models.tag import CostOrder, FulfillmentMode, SelectionMethod, TagType, ToolCondition


class TagLineIn(BaseModel):
    sku_id: UUID
    quantity: int | None = Field(None, ge=1)
    instance_ids: list[UUID] | None = None
    selection_method: SelectionMethod | None = None
    cost_order: CostOrder = CostOrder.LOWEST
    notes: str = ""

    @model_validator(mode="after")
    def _quantity_or_ids(self):
        if (self.quantity is None) == (not self.instance_ids):
            raise ValueError("Provide exactly one of quantity or instance_ids")
        return self


class TagCreate(BaseModel):
    customer_name: str = Field(..., min_length=1, max_length=255)
    tag_type: TagType = TagType.RESERVED
    project_name: str = ""
    notes: str = ""
    due_date: datetime | None = None
    sku_items: list[TagLineIn] = Field(..., min_length=1)


class ToolCheckout(BaseModel):
    customer_name: str = Field(..., min_length=1, max_length=255)
    tag_type: TagType = TagType.LOANED
    project_name: str = ""
    notes: str = ""
    due_date: datetime | None = None
    sku_items: list[TagLineIn] = Field(..., min_length=1)


class TagUpdate(BaseModel):
    customer_name: str | None = None
    project_name: str | None = None
    notes: str | None = None
    due_date: datetime | None = None


class AllocateRequest(BaseModel):
    sku_id: UUID
    quantity: int | None = Field(None, ge=1)
    instance_ids: list[UUID] | None = None
    method: SelectionMethod = SelectionMethod.FIFO
    cost_order: CostOrder = CostOrder.LOWEST
    notes: str = ""


class Resolution(BaseModel):
    sku_id: UUID
    quantity: int | None = Field(None, ge=1)
    instance_ids: list[UUID] | None = Field(None, min_length=1)


class FulfillRequest(BaseModel):
    mode: FulfillmentMode = FulfillmentMode.CONSUME
    resolutions: list[Resolution] | None = None


class CancelRequest(BaseModel):
    reason: str = ""


class ToolReturnRequest(BaseModel):
    condition: ToolCondition = ToolCondition.FUNCTIONAL
    notes: str = ""
    resolutions: list[Resolution] | None = None


class TagLineResponse(BaseModel):
    id: UUID
    sku_id: UUID
    selection_method: str
    notes: str
    quantity: int
    selected_instance_ids: list[UUID]
    value: Decimal

    model_config = {"from_attributes": True}


class TagResponse(BaseModel):
    id: UUID
    customer_name: str
    project_name: str
    tag_type: str
    status: str
    notes: str
    due_date: datetime | None
    created_by: str
    last_updated_by: str
    fulfilled_date: datetime | None
    fulfilled_by: str | None
    cancelled_date: datetime | None
    cancelled_by: str | None
    cancellation_reason: str | None
    created_at: datetime | None = None
    total_quantity: int
    total_value: Decimal
    sku_items: list[TagLineResponse]

    model_config = {"from_attributes": True}


class ToolReturnResponse(BaseModel):
    tag: TagResponse
    condition_tag: TagResponse | None = None
