"""TagTrack IMS — Instance schemas (receipt, adjustment, cost views)."""
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from tagtrack.models.instance import InstanceState


class ReceiveStockRequest(BaseModel):
    sku_id: UUID
    quantity: int = Field(..., ge=1)
    unit_cost: Decimal | None = Field(None, ge=0)
    location: str | None = None
    supplier: str = ""
    reference_number: str = ""
    notes: str = ""
    acquisition_date: datetime | None = None


class AdjustQuantityRequest(BaseModel):
    sku_id: UUID
    adjustment: int
    reason: str = ""


class InstanceUpdate(BaseModel):
    location: str | None = None
    supplier: str | None = None
    reference_number: str | None = None
    notes: str | None = None


class InstanceResponse(BaseModel):
    id: UUID
    sku_id: UUID
    acquisition_date: datetime
    acquisition_cost: Decimal
    location: str
    supplier: str
    reference_number: str
    notes: str
    added_by: str
    tag_id: UUID | None
    state: InstanceState

    model_config = {"from_attributes": True}


class AdjustmentResponse(BaseModel):
    action: str
    quantity: int
    instances_created: list[UUID] | None = None
    cost_per_unit: Decimal | None = None
    instances_removed: int | None = None
    total_value_removed: Decimal | None = None
    average_cost_removed: Decimal | None = None


class CostSummary(BaseModel):
    count: int
    average_cost: Decimal
    lowest_cost: Decimal | None
    highest_cost: Decimal | None
    total_value: Decimal
    oldest_date: datetime | None
    newest_date: datetime | None


class CostBreakdownLine(BaseModel):
    cost: Decimal
    count: int
    oldest_date: datetime | None
    newest_date: datetime | None
