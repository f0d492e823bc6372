"""TagTrack IMS — Inventory schemas."""
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field


class InventoryResponse(BaseModel):
    id: UUID
    sku_id: UUID
    total_quantity: int
    available_quantity: int
    reserved_quantity: int
    broken_quantity: int
    loaned_quantity: int
    total_value: Decimal
    average_cost: Decimal
    minimum_stock_level: int
    reorder_point: int
    maximum_stock_level: int | None
    primary_location: str
    is_low_stock: bool
    is_out_of_stock: bool
    is_overstock: bool
    needs_reorder: bool
    last_movement_date: datetime | None
    last_updated_by: str

    model_config = {"from_attributes": True}


class SyncRequest(BaseModel):
    sku_id: UUID | None = None
    strict: bool = False


class CounterSnapshot(BaseModel):
    total: int
    available: int
    reserved: int
    broken: int
    loaned: int


class DriftEntry(BaseModel):
    sku_id: UUID
    before: CounterSnapshot
    after: CounterSnapshot


class Violation(BaseModel):
    sku_id: UUID
    instance_id: UUID
    tag_id: UUID
    issue: str


class ReconcileReport(BaseModel):
    skus_processed: int
    records_created: int
    records_updated: int
    drift: list[DriftEntry] = Field(default_factory=list)
    violations: list[Violation] = Field(default_factory=list)


class ValuationLine(BaseModel):
    sku_id: UUID
    sku_code: str
    name: str
    quantity: int
    total_value: Decimal
    average_cost: Decimal


class ValuationReport(BaseModel):
    lines: list[ValuationLine]
    total_value: Decimal
