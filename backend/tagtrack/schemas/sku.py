"""TagTrack IMS — SKU schemas."""
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from tagtrack.models.sku import SKUStatus


class BundleItemIn(BaseModel):
    sku_id: UUID
    quantity: int = Field(1, ge=1)


class SKUCreate(BaseModel):
    sku_code: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=255)
    category_id: UUID
    unit_cost: Decimal = Field(Decimal("0"), ge=0)
    description: str = ""
    is_bundle: bool = False
    bundle_items: list[BundleItemIn] = Field(default_factory=list)
    barcode: str | None = None
    manufacturer_model: str = ""
    understocked_threshold: int = Field(5, ge=0)
    overstocked_threshold: int = Field(100, ge=0)


class SKUUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    barcode: str | None = None
    manufacturer_model: str | None = None
    understocked_threshold: int | None = Field(None, ge=0)
    overstocked_threshold: int | None = Field(None, ge=0)
    status: SKUStatus | None = None


class CostUpdate(BaseModel):
    cost: Decimal = Field(..., ge=0)
    notes: str = ""
    effective_date: datetime | None = None


class CostHistoryResponse(BaseModel):
    cost: Decimal
    effective_date: datetime
    updated_by: str
    notes: str

    model_config = {"from_attributes": True}


class BundleItemResponse(BaseModel):
    component_sku_id: UUID
    quantity: int

    model_config = {"from_attributes": True}


class SKUResponse(BaseModel):
    id: UUID
    sku_code: str
    name: str
    description: str
    category_id: UUID
    unit_cost: Decimal
    status: str
    is_bundle: bool
    barcode: str | None
    manufacturer_model: str
    understocked_threshold: int
    overstocked_threshold: int
    created_by: str
    last_updated_by: str
    bundle_items: list[BundleItemResponse] = Field(default_factory=list)
    cost_history: list[CostHistoryResponse] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class CostAtDateResponse(BaseModel):
    sku_id: UUID
    at: datetime
    cost: Decimal
