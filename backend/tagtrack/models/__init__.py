"""TagTrack IMS — SQLAlchemy models."""
from tagtrack.models.category import Category, CategoryStatus, CategoryType
from tagtrack.models.instance import Instance, InstanceState
from tagtrack.models.inventory import COUNTERS, Inventory
from tagtrack.models.sku import SKU, SKUBundleItem, SKUCostHistory, SKUStatus
from tagtrack.models.tag import (
    HELD_COUNTER,
    CostOrder,
    FulfillmentMode,
    SelectionMethod,
    Tag,
    TagSkuItem,
    TagStatus,
    TagType,
    ToolCondition,
)

__all__ = [
    "Category", "CategoryStatus", "CategoryType",
    "SKU", "SKUBundleItem", "SKUCostHistory", "SKUStatus",
    "Instance", "InstanceState",
    "Tag", "TagSkuItem", "TagType", "TagStatus", "SelectionMethod", "CostOrder", "FulfillmentMode", "ToolCondition", "HELD_COUNTER",
    "Inventory", "COUNTERS",
]
